from celery import shared_task
from tenacity import retry, stop_after_attempt, wait_exponential
import logging

logger = logging.getLogger(__name__)


def _campaign_repository():
    from apps.campaigns.repository import CampaignRepository
    from apps.campaigns.search import DatabaseSearchClient

    # Cache maintenance never talks to the search index
    return CampaignRepository(search_client=DatabaseSearchClient())


def _analytics_repository():
    from apps.analytics.repository import CampaignAnalyticsRepository

    return CampaignAnalyticsRepository()


@shared_task
@retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=1, max=10), reraise=True)
def invalidate_campaign_cache(campaign_id, organization_id=None):
    """Drop a campaign's analytics entry, its tagged entries and every list cache"""
    _analytics_repository().invalidate_campaign_cache(campaign_id, organization_id)
    _campaign_repository().invalidate_campaign_cache(campaign_id, organization_id)
    logger.info(f"Campaign cache invalidated for campaign {campaign_id}")
    return {'campaign_id': campaign_id, 'organization_id': organization_id}


@shared_task
@retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=1, max=10), reraise=True)
def bulk_invalidate_campaign_cache(campaign_ids):
    _analytics_repository().bulk_invalidate_campaign_cache(campaign_ids)
    _campaign_repository().invalidate_campaign_list_caches()
    logger.info(f"Campaign cache invalidated for {len(campaign_ids)} campaigns")
    return {'invalidated': len(campaign_ids)}


@shared_task
@retry(stop=stop_after_attempt(2), reraise=True)
def warm_popular_campaigns_cache():
    """Popular, trending, ending-soon and recent lists"""
    report = _campaign_repository().warm_popular_campaigns_cache()
    return report.as_dict()


@shared_task
def warm_campaign_analytics(campaign_ids):
    report = _analytics_repository().warm_cache_for_campaigns(campaign_ids)
    return report.as_dict()


@shared_task
@retry(stop=stop_after_attempt(2), reraise=True)
def warm_analytics_cache(top_limit=50, recent_days=7, recent_limit=100):
    """Periodic warm pass over the campaigns most likely to be read"""
    repository = _analytics_repository()
    report = repository.warm_top_performing_campaigns(top_limit)
    report.merge(repository.warm_recently_active_campaigns(recent_days, recent_limit))
    report.merge(repository.preload_trending_campaigns())
    report.merge(repository.preload_ending_soon_campaigns())

    logger.info(f"Analytics warm pass: {len(report.warmed)} warmed, {len(report.failed)} failed")
    return report.as_dict()
