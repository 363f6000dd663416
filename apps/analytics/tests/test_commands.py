from io import StringIO
from django.core.cache import cache
from django.core.management import CommandError, call_command
from django.test import TestCase

from apps.analytics.repository import analytics_key
from apps.campaigns.tests.helpers import make_campaign, make_organization, make_user


class CampaignCacheCommandTest(TestCase):
    def setUp(self):
        cache.clear()
        self.campaign = make_campaign(make_user(), make_organization())

    def run_command(self, *args):
        out = StringIO()
        call_command('campaign_cache', *args, stdout=out)
        return out.getvalue()

    def test_warm_specific_campaigns(self):
        output = self.run_command('warm', '--campaign', str(self.campaign.pk))

        self.assertIn('Warmed 8 cache entries', output)
        self.assertTrue(cache.get(analytics_key(self.campaign.pk)))
        self.assertTrue(cache.get('campaigns:popular:limit:20') is not None)

    def test_warm_lists_only(self):
        output = self.run_command('warm', '--lists-only')

        self.assertIn('Warmed 7 cache entries', output)
        self.assertIsNone(cache.get(analytics_key(self.campaign.pk)))

    def test_invalidate(self):
        self.run_command('warm', '--campaign', str(self.campaign.pk))

        output = self.run_command('invalidate', '--campaign', str(self.campaign.pk))

        self.assertIn('Invalidated caches for 1 campaigns', output)
        self.assertIsNone(cache.get(analytics_key(self.campaign.pk)))
        self.assertIsNone(cache.get('campaigns:popular:limit:20'))

    def test_invalidate_needs_a_target(self):
        with self.assertRaises(CommandError):
            self.run_command('invalidate')

    def test_stats(self):
        output = self.run_command('stats', '--campaign', str(self.campaign.pk))

        self.assertIn('campaigns:popular:limit:20: empty', output)
        self.assertIn(f'analytics:campaign:{self.campaign.pk}: empty', output)
