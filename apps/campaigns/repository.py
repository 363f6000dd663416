import logging
from dataclasses import replace
from datetime import timedelta

from django.conf import settings
from django.core.paginator import EmptyPage, Paginator
from django.db.models import Count, Sum

from apps.analytics.performance import monitor_query_performance
from apps.caching import tags as cache_tags
from apps.caching.service import CacheService
from apps.caching.tags import CacheTag
from apps.caching.warming import WarmReport
from apps.donations.models import DonationStatus
from .exceptions import SearchIndexUnavailable
from .models import Campaign, CampaignStatus
from .search import (
    FilterSet, FilterTranslator, Page, SortSpec, SystemClock, get_search_client, merge_results, parse_filters,
)
from .search.merger import order_by_ids
from .search.results import DegradedReason

logger = logging.getLogger(__name__)

TRENDING_WINDOW_DAYS = 2
TRENDING_MIN_DONATIONS = 3

LIST_KEY_PATTERNS = (
    'campaigns:popular:*',
    'campaigns:trending:*',
    'campaigns:ending_soon:*',
    'campaigns:recent:*',
    'campaigns:status:*',
)

# Degraded outcomes an owner search may treat as "no indexed hits"
_OWNER_TOLERATED = (DegradedReason.INDEX_EMPTY, DegradedReason.BYPASSED)


class CampaignRepository:
    """Campaign listings: index-backed discovery, owner views and cached lists."""

    def __init__(self, search_client=None, cache_service=None, clock=None):
        self.search_client = search_client if search_client is not None else get_search_client()
        self.cache = cache_service or CacheService()
        self.clock = clock or SystemClock()
        self.translator = FilterTranslator(self.clock)

    def _base_queryset(self, show_deleted=False):
        manager = Campaign.all_objects if show_deleted else Campaign.objects
        return manager.select_related('organization', 'owner', 'category')

    def _filter_set(self, filters, owner_scoped=False):
        if isinstance(filters, FilterSet):
            return filters
        return parse_filters(filters or {}, owner_scoped=owner_scoped)

    def fetch_in_order(self, ids, show_deleted=False) -> list:
        """One bulk fetch, returned in the order of ``ids``."""
        if not ids:
            return []
        records = self._base_queryset(show_deleted).filter(pk__in=list(ids))
        return order_by_ids(ids, records)

    @monitor_query_performance
    def query_store(self, query, page=1, page_size=15, show_deleted=False) -> Page:
        queryset = query.store.apply(self._base_queryset(show_deleted))
        paginator = Paginator(queryset, page_size)
        try:
            items = list(paginator.page(page).object_list)
        except EmptyPage:
            items = []
        return Page(items=items, total=paginator.count, page=page, page_size=page_size)

    @monitor_query_performance
    def discover(self, filters=None, sort=None, page=1, page_size=15, actor=None) -> Page:
        """Public listing. Served from the index; the store is only used when the index is switched off."""
        filter_set = self._filter_set(filters)
        query = self.translator.translate(filter_set, sort or SortSpec(), page, page_size, actor=actor)
        if query.always_empty:
            return Page.empty(page, page_size)

        if self.search_client.bypassed:
            return self.query_store(query, page, page_size)

        outcome = self.search_client.execute(query.index)
        if outcome.degraded:
            logger.warning(
                f"Campaign discovery degraded: {outcome.degraded_reason.value}",
                extra={'reason': outcome.degraded_reason.value, 'filter': query.index.filter_expression},
            )
            return Page.empty(page, page_size, outcome.degraded_reason)

        return Page(items=self.fetch_in_order(outcome.ids), total=outcome.total, page=page, page_size=page_size)

    @monitor_query_performance
    def discover_for_owner(self, owner_id, filters=None, sort=None, page=1, page_size=15, actor=None) -> Page:
        """An owner's own campaigns. Searches merge index hits with store-only records such as drafts."""
        filter_set = self._filter_set(filters, owner_scoped=True)
        query = self.translator.translate(
            filter_set, sort or SortSpec(), page, page_size, actor=actor, owner_id=owner_id
        )
        if query.always_empty:
            return Page.empty(page, page_size)

        if filter_set.text is not None:
            return self._hybrid_search(query, filter_set.show_deleted, page, page_size)
        return self.query_store(query, page, page_size, show_deleted=filter_set.show_deleted)

    def _owner_index_search(self, index_query):
        outcome = self.search_client.execute(index_query)
        if outcome.degraded and outcome.degraded_reason not in _OWNER_TOLERATED:
            logger.warning(f"Owner campaign search failed: {outcome.degraded_reason.value}")
            raise SearchIndexUnavailable(reason=outcome.degraded_reason)
        return outcome

    def search_owner_campaigns(self, owner_id, filters=None, sort=None, page=1, page_size=15) -> Page:
        """
        Index-only search over an owner's campaigns.

        Raises SearchIndexUnavailable instead of returning a partial list.
        """
        filter_set = self._filter_set(filters, owner_scoped=True)
        query = self.translator.translate(filter_set, sort or SortSpec(), page, page_size, owner_id=owner_id)
        if query.always_empty:
            return Page.empty(page, page_size)

        if self.search_client.bypassed:
            return self.query_store(query, page, page_size, show_deleted=filter_set.show_deleted)

        outcome = self._owner_index_search(query.index)
        items = self.fetch_in_order(outcome.ids, show_deleted=filter_set.show_deleted)
        return Page(items=items, total=outcome.total, page=page, page_size=page_size,
                    degraded_reason=outcome.degraded_reason)

    def _hybrid_search(self, query, show_deleted, page, page_size) -> Page:
        limit = settings.SEARCH_INDEX.get('OWNER_SEARCH_LIMIT', 1000)
        try:
            outcome = self._owner_index_search(replace(query.index, page=1, hits_per_page=limit))
            federated_ids = list(outcome.ids)
        except SearchIndexUnavailable:
            federated_ids = []

        base = self._base_queryset(show_deleted)
        resolved = list(base.filter(pk__in=federated_ids)) if federated_ids else []
        fallback = query.store.apply(base)
        if federated_ids:
            fallback = fallback.exclude(pk__in=federated_ids)

        return merge_results(federated_ids, resolved, list(fallback), query.sort, page, page_size)

    # Cached lists

    def _active(self):
        return self._base_queryset().filter(status=CampaignStatus.ACTIVE)

    def get_popular_campaigns(self, limit=20) -> list:
        return self.cache.remember(
            f'campaigns:popular:limit:{limit}',
            'medium',
            (cache_tags.CAMPAIGNS, cache_tags.POPULAR_CAMPAIGNS),
            lambda: list(self._active().order_by('-donations_count')[:limit]),
        )

    def get_trending_campaigns(self, limit=20) -> list:
        def produce():
            since = self.clock.now() - timedelta(days=TRENDING_WINDOW_DAYS)
            return list(
                self._active()
                .filter(donations__created_at__gte=since, donations__status=DonationStatus.COMPLETED)
                .annotate(recent_donations=Count('donations'), recent_amount=Sum('donations__amount'))
                .filter(recent_donations__gte=TRENDING_MIN_DONATIONS)
                .order_by('-recent_amount')[:limit]
            )

        return self.cache.remember(
            f'campaigns:trending:limit:{limit}',
            'short',
            (cache_tags.CAMPAIGNS, cache_tags.TRENDING_CAMPAIGNS, cache_tags.DONATIONS),
            produce,
        )

    def get_ending_soon_campaigns(self, days=7, limit=20) -> list:
        def produce():
            now = self.clock.now()
            return list(
                self._active()
                .filter(end_date__gt=now, end_date__lte=now + timedelta(days=days))
                .order_by('end_date')[:limit]
            )

        return self.cache.remember(
            f'campaigns:ending_soon:days:{days}:limit:{limit}',
            'short',
            (cache_tags.CAMPAIGNS, cache_tags.ENDING_SOON_CAMPAIGNS),
            produce,
        )

    def get_recent_campaigns(self, days=7, limit=20) -> list:
        def produce():
            since = self.clock.now() - timedelta(days=days)
            return list(self._active().filter(created_at__gte=since).order_by('-created_at')[:limit])

        return self.cache.remember(
            f'campaigns:recent:days:{days}:limit:{limit}',
            'medium',
            (cache_tags.CAMPAIGNS, cache_tags.RECENT_CAMPAIGNS),
            produce,
        )

    def get_campaigns_by_status(self, status, limit=100) -> list:
        status = CampaignStatus(status)
        return self.cache.remember(
            f'campaigns:status:{status.value}:limit:{limit}',
            'medium',
            (cache_tags.CAMPAIGNS, CacheTag.status(status)),
            lambda: list(self._base_queryset().filter(status=status).order_by('-created_at')[:limit]),
        )

    def warm_popular_campaigns_cache(self) -> WarmReport:
        report = WarmReport()
        report.run('popular:20', lambda: self.get_popular_campaigns(20))
        report.run('popular:50', lambda: self.get_popular_campaigns(50))
        report.run('trending:20', lambda: self.get_trending_campaigns(20))
        report.run('ending_soon:7', lambda: self.get_ending_soon_campaigns(7, 20))
        report.run('ending_soon:14', lambda: self.get_ending_soon_campaigns(14, 20))
        report.run('recent:7', lambda: self.get_recent_campaigns(7, 20))
        report.run('recent:30', lambda: self.get_recent_campaigns(30, 20))
        logger.info(f"Warmed {len(report.warmed)} campaign lists, {len(report.failed)} failed")
        return report

    def invalidate_campaign_list_caches(self):
        list_tags = cache_tags.LIST_TAGS + tuple(CacheTag.status(status) for status in CampaignStatus)
        removed = self.cache.invalidate_by_tags(list_tags)

        # Entries written before the tag index existed (or whose index entry was lost)
        if self.cache.supports_pattern_delete:
            for pattern in LIST_KEY_PATTERNS:
                try:
                    removed += self.cache.delete_pattern(pattern)
                except Exception as e:
                    logger.warning(f"Failed to invalidate campaign cache pattern {pattern}: {e}")
        return removed

    def invalidate_campaign_cache(self, campaign_id, organization_id=None):
        scoped = [CacheTag.campaign(campaign_id)]
        if organization_id:
            scoped.append(CacheTag.organization(organization_id))
        self.cache.invalidate_by_tags(scoped)
        self.invalidate_campaign_list_caches()
        logger.info(f"Invalidated caches for campaign {campaign_id}")

    def get_campaign_list_cache_statistics(self) -> dict:
        keys = (
            'campaigns:popular:limit:20',
            'campaigns:trending:limit:20',
            'campaigns:ending_soon:days:7:limit:20',
            'campaigns:recent:days:7:limit:20',
        )
        return {key: {'cached': self.cache.has(key), 'key': key} for key in keys}
