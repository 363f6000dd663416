import logging
from django.db import transaction
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .models import Campaign

logger = logging.getLogger(__name__)


@receiver(pre_save, sender=Campaign)
def remember_previous_status(sender, instance, **kwargs):
    if instance.pk is None:
        instance._previous_status = None
        return
    instance._previous_status = (
        Campaign.all_objects.filter(pk=instance.pk).values_list('status', flat=True).first()
    )


@receiver(post_save, sender=Campaign)
def invalidate_campaign_on_status_change(sender, instance, created, **kwargs):
    if created or getattr(instance, '_previous_status', None) == instance.status:
        return

    from tasks.analytics import invalidate_campaign_cache

    campaign_id, organization_id = instance.pk, instance.organization_id
    transaction.on_commit(lambda: invalidate_campaign_cache.delay(campaign_id, organization_id))
    logger.info(f"Campaign {campaign_id} status changed to {instance.status}, cache invalidation scheduled")
