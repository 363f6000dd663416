from datetime import timedelta
from decimal import Decimal
from django.test import TestCase
from django.utils import timezone

from apps.campaigns.models import Campaign, CampaignStatus, calculate_progress
from .helpers import make_campaign, make_organization, make_user


class CalculateProgressTest(TestCase):
    def test_percentage_of_goal(self):
        self.assertEqual(calculate_progress(Decimal('750'), Decimal('1000')), 75.0)

    def test_zero_goal_is_zero(self):
        self.assertEqual(calculate_progress(500, 0), 0.0)
        self.assertEqual(calculate_progress(500, None), 0.0)

    def test_clamped_to_hundred(self):
        self.assertEqual(calculate_progress(2500, 1000), 100.0)


class CampaignModelTest(TestCase):
    def setUp(self):
        self.owner = make_user()
        self.org = make_organization()

    def test_soft_deleted_hidden_from_default_manager(self):
        campaign = make_campaign(self.owner, self.org, deleted_at=timezone.now())

        self.assertFalse(Campaign.objects.filter(pk=campaign.pk).exists())
        self.assertTrue(Campaign.all_objects.filter(pk=campaign.pk).exists())
        self.assertTrue(campaign.is_deleted)

    def test_is_active_respects_window(self):
        now = timezone.now()
        running = make_campaign(self.owner, self.org)
        finished = make_campaign(self.owner, self.org, end_date=now - timedelta(days=1))
        paused = make_campaign(self.owner, self.org, status=CampaignStatus.PAUSED)

        self.assertTrue(running.is_active(now))
        self.assertFalse(finished.is_active(now))
        self.assertFalse(paused.is_active(now))

    def test_get_percentage(self):
        campaign = make_campaign(self.owner, self.org, current_amount=Decimal('250.00'))
        self.assertEqual(campaign.get_percentage(), 25.0)
