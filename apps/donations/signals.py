import logging
from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from apps.campaigns.models import Campaign
from .models import Donation

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Donation)
def invalidate_campaign_on_donation(sender, instance, created, **kwargs):
    """Any donation write can move totals, so drop the campaign's cached analytics and lists."""
    from tasks.analytics import invalidate_campaign_cache

    campaign_id = instance.campaign_id
    organization_id = (
        Campaign.all_objects.filter(pk=campaign_id).values_list('organization_id', flat=True).first()
    )
    transaction.on_commit(lambda: invalidate_campaign_cache.delay(campaign_id, organization_id))
    logger.debug(f"Scheduled cache invalidation for campaign {campaign_id} after donation {instance.pk}")
