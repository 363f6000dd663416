from datetime import timedelta
from unittest import mock
from django.core.cache import cache
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from apps.campaigns.models import CampaignStatus
from apps.campaigns.search import DegradedReason, SearchOutcome
from .helpers import FakeSearchClient, make_campaign, make_organization, make_user


class CampaignViewsTest(APITestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.owner = make_user()
        self.org = make_organization()

    def test_discover_lists_active_campaigns(self):
        campaign = make_campaign(self.owner, self.org)
        make_campaign(self.owner, self.org, status=CampaignStatus.DRAFT)

        response = self.client.get(reverse('campaign-discover'), {'status': 'active'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['id'] for item in response.data['results']], [campaign.pk])
        self.assertEqual(response.data['total'], 1)
        self.assertIsNone(response.data['degraded'])

    def test_discover_reports_degraded_index(self):
        client = FakeSearchClient(SearchOutcome.empty(DegradedReason.INDEX_UNREACHABLE))
        with mock.patch('apps.campaigns.repository.get_search_client', return_value=client):
            response = self.client.get(reverse('campaign-discover'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['results'], [])
        self.assertEqual(response.data['degraded'], 'index_unreachable')

    def test_discover_accepts_bracketed_date_filters(self):
        old = make_campaign(self.owner, self.org, created_at=timezone.now() - timedelta(days=40))
        make_campaign(self.owner, self.org)
        cutoff = (timezone.now() - timedelta(days=30)).date().isoformat()

        response = self.client.get(reverse('campaign-discover'), {'created_at[before]': cutoff})

        self.assertEqual([item['id'] for item in response.data['results']], [old.pk])

    def test_per_page_is_clamped(self):
        response = self.client.get(reverse('campaign-discover'), {'per_page': 500})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['per_page'], 100)

        response = self.client.get(reverse('campaign-discover'), {'per_page': 0, 'page': -3})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual((response.data['page'], response.data['per_page']), (1, 1))

    def test_malformed_paging_falls_back_to_defaults(self):
        make_campaign(self.owner, self.org)

        response = self.client.get(reverse('campaign-discover'), {'page': 'abc', 'per_page': '1.5'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual((response.data['page'], response.data['per_page']), (1, 15))
        self.assertEqual(response.data['total'], 1)

    def test_mine_requires_authentication(self):
        response = self.client.get(reverse('campaign-mine'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_mine_lists_only_own_campaigns(self):
        draft = make_campaign(self.owner, self.org, status=CampaignStatus.DRAFT)
        make_campaign(make_user('stranger'), self.org)
        self.client.force_authenticate(self.owner)

        response = self.client.get(reverse('campaign-mine'))

        self.assertEqual([item['id'] for item in response.data['results']], [draft.pk])

    def test_index_only_search_returns_503_when_index_fails(self):
        self.client.force_authenticate(self.owner)
        client = FakeSearchClient(SearchOutcome.empty(DegradedReason.QUERY_FAILED))

        with mock.patch('apps.campaigns.repository.get_search_client', return_value=client):
            with self.assertLogs('apps.campaigns', level='WARNING'):
                response = self.client.get(reverse('campaign-mine'), {'search': 'water', 'index_only': '1'})

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['reason'], 'query_failed')
        self.assertEqual(response['Retry-After'], '30')
        self.assertIn('Search index is currently being updated', str(response.data['detail']))

    def test_cached_lists(self):
        make_campaign(self.owner, self.org, title='Loved', donations_count=12)

        popular = self.client.get(reverse('campaign-popular'), {'limit': 5})
        ending = self.client.get(reverse('campaign-ending-soon'), {'days': 30})

        self.assertEqual([item['title'] for item in popular.data['results']], ['Loved'])
        self.assertEqual(len(ending.data['results']), 1)
        self.assertEqual(self.client.get(reverse('campaign-trending')).data['results'], [])
        self.assertEqual(len(self.client.get(reverse('campaign-recent')).data['results']), 1)
