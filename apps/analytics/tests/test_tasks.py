from unittest import mock
from django.core.cache import cache
from django.test import TestCase

from apps.analytics.repository import analytics_key
from apps.campaigns.tests.helpers import make_campaign, make_organization, make_user
from tasks.analytics import (
    bulk_invalidate_campaign_cache, invalidate_campaign_cache, warm_analytics_cache, warm_popular_campaigns_cache,
)


class CacheTasksTest(TestCase):
    def setUp(self):
        cache.clear()
        self.org = make_organization()
        self.campaign = make_campaign(make_user(), self.org)

    def test_warm_analytics_pass(self):
        result = warm_analytics_cache.delay(top_limit=10).get()

        self.assertEqual(result['failed_count'], 0)
        self.assertIn(analytics_key(self.campaign.pk), result['warmed'])
        self.assertTrue(cache.get(analytics_key(self.campaign.pk)))

    def test_warm_lists(self):
        result = warm_popular_campaigns_cache.delay().get()
        self.assertEqual(result['warmed_count'], 7)

    def test_invalidate(self):
        warm_analytics_cache.delay().get()

        result = invalidate_campaign_cache.delay(self.campaign.pk, self.org.pk).get()

        self.assertEqual(result, {'campaign_id': self.campaign.pk, 'organization_id': self.org.pk})
        self.assertIsNone(cache.get(analytics_key(self.campaign.pk)))

    def test_bulk_invalidate(self):
        self.assertEqual(bulk_invalidate_campaign_cache.delay([self.campaign.pk]).get(), {'invalidated': 1})

    @mock.patch('apps.analytics.repository.CampaignAnalyticsRepository.invalidate_campaign_cache')
    def test_invalidate_retries_then_raises(self, invalidate):
        invalidate.side_effect = ConnectionError('cache down')

        with mock.patch('tenacity.nap.time.sleep'):
            with self.assertRaises(ConnectionError):
                invalidate_campaign_cache.delay(self.campaign.pk).get()

        self.assertEqual(invalidate.call_count, 3)
