import logging
from datetime import timedelta

from django.conf import settings
from django.db.models import Avg, Count, F, FloatField, Max, Min, Q, Sum
from django.db.models.functions import Cast, TruncDate, TruncWeek

from apps.caching.service import CacheService
from apps.caching.tags import CacheTag, analytics_tags
from apps.caching.warming import WarmReport
from apps.campaigns.models import Campaign, CampaignStatus, calculate_progress
from apps.campaigns.search.context import SystemClock
from apps.donations.models import Donation, DonationStatus
from .performance import monitor_query_performance
from .read_models import BULK_OMITTED_FIELDS, CampaignAnalyticsReadModel

logger = logging.getLogger(__name__)

DAILY_TREND_DAYS = 30
WEEKLY_TREND_WEEKS = 12
TRENDING_WINDOW_DAYS = 1
TRENDING_MIN_DONATIONS = 3


def analytics_key(campaign_id):
    return f"analytics:campaign:{campaign_id}"


def donation_aggregates():
    """Aggregates shared by the single and bulk builds."""
    completed = Q(status=DonationStatus.COMPLETED)
    refunded = Q(status=DonationStatus.REFUNDED)
    return {
        'total_donations': Count('id'),
        'unique_donors': Count('donor', distinct=True),
        'total_amount': Sum('amount'),
        'average_amount': Avg('amount'),
        'min_amount': Min('amount'),
        'max_amount': Max('amount'),
        'anonymous_donations': Count('id', filter=Q(anonymous=True)),
        'recurring_donations': Count('id', filter=Q(recurring=True)),
        'completed_donations': Count('id', filter=completed),
        'pending_donations': Count('id', filter=Q(status=DonationStatus.PENDING)),
        'failed_donations': Count('id', filter=Q(status=DonationStatus.FAILED)),
        'refunded_donations': Count('id', filter=refunded),
        'completed_amount': Sum('amount', filter=completed),
        'refunded_amount': Sum('amount', filter=refunded),
        # Aliased: an annotation may not reuse a model field name
        'corporate_match_total': Sum('corporate_match_amount'),
    }


_COUNT_FIELDS = (
    'total_donations', 'unique_donors', 'anonymous_donations', 'recurring_donations',
    'completed_donations', 'pending_donations', 'failed_donations', 'refunded_donations',
)
_AMOUNT_FIELDS = (
    'total_amount', 'average_amount', 'min_amount', 'max_amount',
    'completed_amount', 'refunded_amount', 'corporate_match_total',
)


def _normalise_stats(stats):
    """Zero-fill aggregate rows; a campaign without donations has no row at all."""
    stats = stats or {}
    normalised = {name: int(stats.get(name) or 0) for name in _COUNT_FIELDS}
    normalised.update({name: float(stats.get(name) or 0) for name in _AMOUNT_FIELDS})
    normalised['corporate_match_amount'] = normalised.pop('corporate_match_total')
    return normalised


def _iso(value):
    return value.isoformat() if value else None


def time_metrics(campaign, now) -> dict:
    start, end = campaign.start_date, campaign.end_date
    days_active = max(0, (min(now, end or now) - start).days) if start else 0
    days_remaining = max(0, (end - now).days) if end else 0
    duration = max(0, ((end or start) - start).days) if start else 0
    return {
        'days_active': days_active,
        'days_remaining': days_remaining,
        'campaign_duration': duration,
    }


def _owner_name(owner):
    if owner is None:
        return None
    return owner.get_full_name() or owner.get_username()


class CampaignAnalyticsRepository:
    """Builds, caches and warms per-campaign analytics read models."""

    def __init__(self, cache_service=None, clock=None):
        self.cache = cache_service or CacheService()
        self.clock = clock or SystemClock()

    def _campaigns(self):
        return (
            Campaign.objects
            .select_related('organization', 'owner', 'category')
            .annotate(bookmarks_total=Count('bookmarks', distinct=True))
        )

    def _version(self) -> int:
        return int(self.clock.now().timestamp() * 1_000_000)

    def _base_data(self, campaign, stats, now) -> dict:
        data = {
            'title': campaign.title,
            'status': campaign.status,
            'visibility': campaign.visibility,
            'organization_id': campaign.organization_id,
            'organization_name': campaign.organization.name,
            'user_id': campaign.owner_id,
            'creator_name': _owner_name(campaign.owner),
            'category_id': campaign.category_id,
            'category_name': campaign.category.name if campaign.category else None,
            'goal_amount': float(campaign.goal_amount or 0),
            'current_amount': float(campaign.current_amount or 0),
            'progress_percentage': calculate_progress(campaign.current_amount, campaign.goal_amount),
            'start_date': _iso(campaign.start_date),
            'end_date': _iso(campaign.end_date),
            'is_active': campaign.is_active(now),
            'bookmarks_count': getattr(campaign, 'bookmarks_total', 0) or 0,
            'shares_count': 0,
            'views_count': 0,
            'created_at': _iso(campaign.created_at),
            'updated_at': _iso(campaign.updated_at),
            'completed_at': _iso(campaign.completed_at),
        }
        data.update(time_metrics(campaign, now))
        data.update(_normalise_stats(stats))
        return data

    @monitor_query_performance
    def build(self, campaign_id):
        """Full read model for one campaign, or None if it does not exist."""
        campaign = self._campaigns().filter(pk=campaign_id).first()
        if campaign is None:
            return None

        now = self.clock.now()
        donations = Donation.objects.filter(campaign_id=campaign.pk)
        stats = donations.aggregate(**donation_aggregates())

        data = self._base_data(campaign, stats, now)
        completed = donations.filter(status=DonationStatus.COMPLETED).order_by()
        data['payment_gateway_stats'] = self._gateway_stats(completed)
        data['payment_method_stats'] = self._method_stats(completed)
        data['donations_by_day'] = self._daily_trend(donations, now)
        data['donations_by_week'] = self._weekly_trend(donations, now)

        return CampaignAnalyticsReadModel(campaign_id=campaign.pk, data=data, version=self._version())

    def _gateway_stats(self, completed) -> dict:
        rows = completed.values('payment_gateway').annotate(
            count=Count('id'), total_amount=Sum('amount'), average_amount=Avg('amount'),
        )
        return {
            row['payment_gateway']: {
                'count': row['count'],
                'total_amount': float(row['total_amount'] or 0),
                'average_amount': float(row['average_amount'] or 0),
            }
            for row in rows
        }

    def _method_stats(self, completed) -> dict:
        rows = completed.values('payment_method').annotate(count=Count('id'), total_amount=Sum('amount'))
        return {
            row['payment_method']: {'count': row['count'], 'total_amount': float(row['total_amount'] or 0)}
            for row in rows
        }

    def _daily_trend(self, donations, now) -> list:
        rows = (
            donations.filter(created_at__gte=now - timedelta(days=DAILY_TREND_DAYS))
            .annotate(day=TruncDate('created_at'))
            .values('day')
            .annotate(count=Count('id'), amount=Sum('amount'))
            .order_by('day')
        )
        return [
            {'date': row['day'].isoformat(), 'count': row['count'], 'amount': float(row['amount'] or 0)}
            for row in rows
        ]

    def _weekly_trend(self, donations, now) -> list:
        rows = (
            donations.filter(created_at__gte=now - timedelta(weeks=WEEKLY_TREND_WEEKS))
            .annotate(week=TruncWeek('created_at'))
            .values('week')
            .annotate(count=Count('id'), amount=Sum('amount'))
            .order_by('week')
        )
        trend = []
        for row in rows:
            year, week, _ = row['week'].isocalendar()
            trend.append({'week': f"{year}-W{week:02d}", 'count': row['count'], 'amount': float(row['amount'] or 0)})
        return trend

    @monitor_query_performance
    def build_many(self, campaign_ids) -> dict:
        """
        Read models for many campaigns in two queries.

        Breakdown and trend fields are left empty in this path.
        """
        ids = list(dict.fromkeys(int(i) for i in campaign_ids))
        if not ids:
            return {}

        campaigns = {campaign.pk: campaign for campaign in self._campaigns().filter(pk__in=ids)}
        if not campaigns:
            return {}

        stats_rows = (
            Donation.objects.filter(campaign_id__in=list(campaigns))
            .values('campaign_id')
            .annotate(**donation_aggregates())
            .order_by()
        )
        stats_by_campaign = {row['campaign_id']: row for row in stats_rows}

        now = self.clock.now()
        version = self._version()
        models = {}
        for campaign_id in ids:
            campaign = campaigns.get(campaign_id)
            if campaign is None:
                continue
            data = self._base_data(campaign, stats_by_campaign.get(campaign_id), now)
            data.update({name: [] if name.startswith('donations_by') else {} for name in BULK_OMITTED_FIELDS})
            models[campaign_id] = CampaignAnalyticsReadModel(
                campaign_id=campaign_id, data=data, version=version, partial=True,
            )
        return models

    def get_analytics(self, campaign_id):
        return self.cache.remember(
            analytics_key(campaign_id), 'short', analytics_tags(campaign_id), lambda: self.build(campaign_id),
        )

    def get_bulk_analytics(self, campaign_ids) -> dict:
        ids = list(dict.fromkeys(int(i) for i in campaign_ids))
        if not ids:
            return {}

        keys = {campaign_id: analytics_key(campaign_id) for campaign_id in ids}
        cached = self.cache.get_many(keys.values())
        results = {campaign_id: cached[key] for campaign_id, key in keys.items() if key in cached}

        missing = [campaign_id for campaign_id in ids if campaign_id not in results]
        if missing:
            ttl = settings.CAMPAIGN_ANALYTICS_BULK_TTL
            for campaign_id, model in self.build_many(missing).items():
                self.cache.put(keys[campaign_id], model, ttl, analytics_tags(campaign_id))
                results[campaign_id] = model

        return {campaign_id: results[campaign_id] for campaign_id in ids if campaign_id in results}

    def find_top_performing(self, limit=10) -> list:
        ids = list(self._top_performing_ids(limit))
        return [model for model in (self.get_analytics(i) for i in ids) if model is not None]

    def find_by_organization(self, organization_id) -> list:
        ids = Campaign.objects.filter(organization_id=organization_id).order_by('-created_at').values_list('pk', flat=True)
        return list(self.get_bulk_analytics(list(ids)).values())

    def _top_performing_ids(self, limit):
        ratio = Cast('current_amount', FloatField()) / Cast(F('goal_amount'), FloatField())
        return (
            Campaign.objects.exclude(status=CampaignStatus.DRAFT)
            .filter(goal_amount__gt=0)
            .annotate(progress_ratio=ratio)
            .order_by('-progress_ratio')
            .values_list('pk', flat=True)[:limit]
        )

    # Warming

    def warm_cache_for_campaigns(self, campaign_ids) -> WarmReport:
        report = WarmReport()
        for campaign_id in campaign_ids:
            report.run(analytics_key(campaign_id), lambda campaign_id=campaign_id: self.get_analytics(campaign_id))
        logger.info(f"Warmed analytics for {len(report.warmed)} campaigns, {len(report.failed)} failed")
        return report

    def warm_top_performing_campaigns(self, limit=50) -> WarmReport:
        return self.warm_cache_for_campaigns(list(self._top_performing_ids(limit)))

    def _recently_active(self, since):
        return (
            Campaign.objects
            .filter(donations__created_at__gte=since, donations__status=DonationStatus.COMPLETED)
            .annotate(recent_donations=Count('donations'), recent_amount=Sum('donations__amount'))
        )

    def warm_recently_active_campaigns(self, days=7, limit=100) -> WarmReport:
        since = self.clock.now() - timedelta(days=days)
        ids = self._recently_active(since).order_by('-recent_donations').values_list('pk', flat=True)[:limit]
        return self.warm_cache_for_campaigns(list(ids))

    def preload_trending_campaigns(self, limit=30) -> WarmReport:
        since = self.clock.now() - timedelta(days=TRENDING_WINDOW_DAYS)
        ids = (
            self._recently_active(since)
            .filter(recent_donations__gte=TRENDING_MIN_DONATIONS)
            .order_by('-recent_amount')
            .values_list('pk', flat=True)[:limit]
        )
        return self.warm_cache_for_campaigns(list(ids))

    def preload_ending_soon_campaigns(self, days=7, limit=50) -> WarmReport:
        now = self.clock.now()
        ids = (
            Campaign.objects.filter(
                status=CampaignStatus.ACTIVE, end_date__gt=now, end_date__lte=now + timedelta(days=days),
            )
            .order_by('end_date')
            .values_list('pk', flat=True)[:limit]
        )
        return self.warm_cache_for_campaigns(list(ids))

    # Invalidation

    def invalidate_campaign_cache(self, campaign_id, organization_id=None):
        tags = [CacheTag.campaign(campaign_id)]
        if organization_id:
            tags.append(CacheTag.organization(organization_id))
        self.cache.forget(analytics_key(campaign_id))
        self.cache.invalidate_by_tags(tags)

    def bulk_invalidate_campaign_cache(self, campaign_ids):
        for campaign_id in campaign_ids:
            self.invalidate_campaign_cache(campaign_id)

    def get_cache_statistics(self, campaign_id) -> dict:
        key = analytics_key(campaign_id)
        return {
            'cache_key': key,
            'cache_tags': [str(tag) for tag in analytics_tags(campaign_id)],
            'cached': self.cache.has(key),
        }
