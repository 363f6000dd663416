from django.conf import settings
from django.db import models
from django.utils import timezone


class DonationStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'
    REFUNDED = 'refunded', 'Refunded'


class Donation(models.Model):
    """Donation rows as written by the payments module; read-only here."""

    class Meta:
        app_label = 'donations'
        indexes = [
            models.Index(fields=['campaign', 'status'], name='donation_campaign_status_idx'),
            models.Index(fields=['campaign', 'created_at'], name='donation_campaign_created_idx'),
        ]

    campaign = models.ForeignKey('campaigns.Campaign', on_delete=models.CASCADE, related_name='donations')
    donor = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='donations'
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=20, choices=DonationStatus.choices, default=DonationStatus.PENDING)
    payment_gateway = models.CharField(max_length=50, blank=True, default='')
    payment_method = models.CharField(max_length=50, blank=True, default='')
    anonymous = models.BooleanField(default=False)
    recurring = models.BooleanField(default=False)
    corporate_match_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)
