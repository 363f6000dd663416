from core.celery import app as celery_app

__all__ = ('celery_app',)

# Register tasks explicitly
from .analytics import (  # noqa: E402,F401
    invalidate_campaign_cache,
    bulk_invalidate_campaign_cache,
    warm_popular_campaigns_cache,
    warm_campaign_analytics,
    warm_analytics_cache,
)

# Register periodic tasks
from celery.schedules import crontab  # noqa: E402
from django.conf import settings  # noqa: E402

if getattr(settings, 'CAMPAIGN_CACHE_WARMING_ENABLED', False):
    celery_app.conf.beat_schedule = {
        'warm-popular-campaign-lists': {
            'task': 'tasks.analytics.warm_popular_campaigns_cache',
            'schedule': crontab(minute='*/5'),  # Matches the short TTL tier
        },
        'warm-campaign-analytics': {
            'task': 'tasks.analytics.warm_analytics_cache',
            'schedule': crontab(minute='*/15'),
        },
    }
