from datetime import timedelta
from decimal import Decimal
from unittest import mock
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone

from apps.campaigns.exceptions import SearchIndexUnavailable
from apps.campaigns.models import Bookmark, CampaignStatus
from apps.campaigns.repository import CampaignRepository
from apps.campaigns.search import ActorContext, DatabaseSearchClient, DegradedReason, FrozenClock, SearchOutcome
from apps.donations.models import Donation, DonationStatus
from .helpers import FakeSearchClient, make_campaign, make_organization, make_user


class RepositoryTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.now = timezone.now()
        self.clock = FrozenClock(self.now)
        self.owner = make_user()
        self.org = make_organization()

    def repository(self, client=None):
        return CampaignRepository(search_client=client or DatabaseSearchClient(), clock=self.clock)


class DiscoverTest(RepositoryTestCase):
    def test_index_order_and_total_are_kept(self):
        first = make_campaign(self.owner, self.org, title='First')
        second = make_campaign(self.owner, self.org, title='Second')
        third = make_campaign(self.owner, self.org, title='Third')
        client = FakeSearchClient(SearchOutcome(ids=(third.pk, first.pk, second.pk), total=41))

        page = self.repository(client).discover({'status': 'active'}, page=2, page_size=3)

        self.assertEqual(page.ids, [third.pk, first.pk, second.pk])
        self.assertEqual(page.total, 41)
        self.assertEqual(page.num_pages, 14)
        self.assertEqual(client.queries[0].filters, ('status = "active"',))
        self.assertEqual(client.queries[0].page, 2)

    def test_empty_index_returns_empty_page(self):
        make_campaign(self.owner, self.org)
        client = FakeSearchClient(SearchOutcome.empty(DegradedReason.INDEX_EMPTY))

        with self.assertLogs('apps.campaigns.repository', level='WARNING'):
            page = self.repository(client).discover({})

        self.assertEqual(page.items, [])
        self.assertEqual(page.total, 0)
        self.assertEqual(page.degraded_reason, DegradedReason.INDEX_EMPTY)

    def test_unauthenticated_favorites_touch_nothing(self):
        client = FakeSearchClient(SearchOutcome(ids=(1,), total=1))
        repository = self.repository(client)

        with self.assertNumQueries(0):
            page = repository.discover({'filter': 'favorites'}, actor=ActorContext.anonymous())

        self.assertEqual(page.total, 0)
        self.assertEqual(client.queries, [])

    def test_favorites_limit_to_bookmarks(self):
        kept = make_campaign(self.owner, self.org)
        make_campaign(self.owner, self.org)
        reader = make_user('reader')
        Bookmark.objects.create(user=reader, campaign=kept)

        page = self.repository().discover({'filter': 'favorites'}, actor=ActorContext.for_user(reader))

        self.assertEqual(page.ids, [kept.pk])

    def test_ending_soon_through_store(self):
        soon = make_campaign(self.owner, self.org, end_date=self.now + timedelta(days=3))
        make_campaign(self.owner, self.org, end_date=self.now + timedelta(days=10))
        make_campaign(self.owner, self.org, end_date=self.now - timedelta(days=1))
        make_campaign(self.owner, self.org, status=CampaignStatus.PAUSED, end_date=self.now + timedelta(days=2))

        page = self.repository().discover({'filter': 'ending-soon'})

        self.assertEqual(page.ids, [soon.pk])

    def test_nearly_funded_falls_back_to_computed_percentage(self):
        computed = make_campaign(self.owner, self.org, current_amount=Decimal('800.00'))
        precomputed = make_campaign(self.owner, self.org, goal_percentage=Decimal('75.00'))
        make_campaign(self.owner, self.org, current_amount=Decimal('500.00'))
        make_campaign(self.owner, self.org, current_amount=Decimal('1000.00'))

        page = self.repository().discover({'status': 'nearly-funded'})

        self.assertEqual(set(page.ids), {computed.pk, precomputed.pk})

    def test_unknown_date_operator_acts_as_exact_day(self):
        day = self.now - timedelta(days=4)
        match = make_campaign(self.owner, self.org, created_at=day)
        make_campaign(self.owner, self.org, created_at=day - timedelta(days=1))

        page = self.repository().discover({'created_at': {'near': day.date().isoformat()}})

        self.assertEqual(page.ids, [match.pk])


class OwnerCampaignsTest(RepositoryTestCase):
    def test_hybrid_search_merges_drafts_missing_from_index(self):
        indexed = make_campaign(self.owner, self.org, title='Water wells', created_at=self.now - timedelta(days=2))
        draft = make_campaign(
            self.owner, self.org, title='Clean water', status=CampaignStatus.DRAFT, created_at=self.now - timedelta(days=1)
        )
        make_campaign(make_user('stranger'), self.org, title='Water for all')
        client = FakeSearchClient(SearchOutcome(ids=(indexed.pk,), total=1))

        page = self.repository(client).discover_for_owner(self.owner.pk, {'search': 'water'})

        self.assertEqual(page.ids, [draft.pk, indexed.pk])
        self.assertEqual(page.total, 2)
        query = client.queries[0]
        self.assertEqual(query.page, 1)
        self.assertEqual(query.hits_per_page, 1000)
        self.assertIn(f'user_id = {self.owner.pk}', query.filters)

    def test_hybrid_search_survives_unreachable_index(self):
        campaign = make_campaign(self.owner, self.org, title='Water wells')
        client = FakeSearchClient(SearchOutcome.empty(DegradedReason.INDEX_UNREACHABLE))

        with self.assertLogs('apps.campaigns.repository', level='WARNING'):
            page = self.repository(client).discover_for_owner(self.owner.pk, {'search': 'water'})

        self.assertEqual(page.ids, [campaign.pk])

    def test_listing_without_text_uses_store(self):
        mine = make_campaign(self.owner, self.org, status=CampaignStatus.DRAFT)
        make_campaign(make_user('stranger'), self.org, status=CampaignStatus.DRAFT)
        client = FakeSearchClient()

        page = self.repository(client).discover_for_owner(self.owner.pk, {'filter': 'draft'})

        self.assertEqual(page.ids, [mine.pk])
        self.assertEqual(client.queries, [])

    def test_ending_soon_skips_unstarted_and_covers_the_whole_last_day(self):
        last_day = timezone.localtime(self.now + timedelta(days=7)).replace(hour=0, minute=0, second=0, microsecond=0)
        late = make_campaign(self.owner, self.org, end_date=last_day + timedelta(days=1, seconds=-1))
        make_campaign(self.owner, self.org, start_date=self.now + timedelta(hours=1), end_date=self.now + timedelta(days=2))
        make_campaign(self.owner, self.org, end_date=last_day + timedelta(days=1, seconds=1))

        page = self.repository(FakeSearchClient()).discover_for_owner(self.owner.pk, {'filter': 'ending-soon'})

        self.assertEqual(page.ids, [late.pk])

    def test_show_deleted(self):
        live = make_campaign(self.owner, self.org)
        deleted = make_campaign(self.owner, self.org, deleted_at=self.now)
        repository = self.repository()

        self.assertEqual(repository.discover_for_owner(self.owner.pk).ids, [live.pk])
        self.assertEqual(
            set(repository.discover_for_owner(self.owner.pk, {'show_deleted': '1'}).ids), {live.pk, deleted.pk}
        )

    def test_index_only_search_refuses_partial_results(self):
        client = FakeSearchClient(SearchOutcome.empty(DegradedReason.QUERY_FAILED))

        with self.assertLogs('apps.campaigns.repository', level='WARNING'):
            with self.assertRaises(SearchIndexUnavailable) as ctx:
                self.repository(client).search_owner_campaigns(self.owner.pk, {'search': 'water'})

        self.assertEqual(ctx.exception.reason, DegradedReason.QUERY_FAILED)
        self.assertEqual(ctx.exception.status_code, 503)

    def test_index_only_search_on_empty_index(self):
        client = FakeSearchClient(SearchOutcome.empty(DegradedReason.INDEX_EMPTY))

        page = self.repository(client).search_owner_campaigns(self.owner.pk, {'search': 'water'})

        self.assertEqual(page.items, [])
        self.assertEqual(page.degraded_reason, DegradedReason.INDEX_EMPTY)


class CachedListsTest(RepositoryTestCase):
    def test_popular_is_cached_until_invalidated(self):
        make_campaign(self.owner, self.org, title='Steady', donations_count=5)
        repository = self.repository()

        first = repository.get_popular_campaigns(limit=5)
        newcomer = make_campaign(self.owner, self.org, title='Viral', donations_count=50)
        with self.assertNumQueries(0):
            cached = repository.get_popular_campaigns(limit=5)

        self.assertEqual([c.title for c in first], ['Steady'])
        self.assertEqual([c.title for c in cached], ['Steady'])

        repository.invalidate_campaign_cache(newcomer.pk, self.org.pk)

        self.assertEqual([c.title for c in repository.get_popular_campaigns(limit=5)], ['Viral', 'Steady'])

    def test_status_lists_are_invalidated(self):
        repository = self.repository()
        self.assertEqual(repository.get_campaigns_by_status('paused'), [])

        campaign = make_campaign(self.owner, self.org, status=CampaignStatus.PAUSED)
        self.assertEqual(repository.get_campaigns_by_status('paused'), [])

        repository.invalidate_campaign_list_caches()
        self.assertEqual([c.pk for c in repository.get_campaigns_by_status('paused')], [campaign.pk])

    def test_ending_soon_and_recent(self):
        soon = make_campaign(self.owner, self.org, end_date=self.now + timedelta(days=2))
        make_campaign(self.owner, self.org, end_date=self.now + timedelta(days=12), created_at=self.now - timedelta(days=20))
        repository = self.repository()

        self.assertEqual([c.pk for c in repository.get_ending_soon_campaigns(days=7)], [soon.pk])
        self.assertEqual([c.pk for c in repository.get_recent_campaigns(days=7)], [soon.pk])

    def test_trending_needs_recent_completed_donations(self):
        hot = make_campaign(self.owner, self.org, title='Hot')
        cold = make_campaign(self.owner, self.org, title='Cold')
        for _ in range(3):
            Donation.objects.create(campaign=hot, amount=Decimal('10.00'), status=DonationStatus.COMPLETED)
        for _ in range(2):
            Donation.objects.create(campaign=cold, amount=Decimal('500.00'), status=DonationStatus.COMPLETED)
        Donation.objects.create(campaign=cold, amount=Decimal('500.00'), status=DonationStatus.FAILED)

        trending = self.repository().get_trending_campaigns()

        self.assertEqual([c.pk for c in trending], [hot.pk])

    def test_warm_continues_past_a_failing_list(self):
        repository = self.repository()

        with mock.patch.object(repository, 'get_trending_campaigns', side_effect=RuntimeError('db down')):
            with self.assertLogs('apps.caching.warming', level='WARNING'):
                report = repository.warm_popular_campaigns_cache()

        self.assertEqual(report.failed, {'trending:20': 'db down'})
        self.assertEqual(len(report.warmed), 6)
        self.assertTrue(repository.cache.has('campaigns:recent:days:30:limit:20'))
