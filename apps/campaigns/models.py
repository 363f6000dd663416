from django.conf import settings
from django.db import models
from django.utils import timezone


def calculate_progress(current, goal):
    """Progress towards the goal, clamped to [0, 100]. A zero goal is 0%."""
    goal = float(goal or 0)
    if goal <= 0:
        return 0.0
    return max(0.0, min(100.0, float(current or 0) / goal * 100))


class CampaignStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    PENDING_APPROVAL = 'pending_approval', 'Pending approval'
    ACTIVE = 'active', 'Active'
    PAUSED = 'paused', 'Paused'
    COMPLETED = 'completed', 'Completed'

    @classmethod
    def try_from(cls, value):
        try:
            return cls(value)
        except ValueError:
            return None


class Organization(models.Model):
    class Meta:
        app_label = 'campaigns'

    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return self.name


class Category(models.Model):
    class Meta:
        app_label = 'campaigns'
        verbose_name_plural = 'categories'

    name = models.CharField(max_length=100)
    slug = models.SlugField(max_length=100, unique=True)

    def __str__(self):
        return self.name


class ActiveCampaignManager(models.Manager):
    """Hides soft-deleted campaigns."""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class Campaign(models.Model):
    class Meta:
        app_label = 'campaigns'
        indexes = [
            models.Index(fields=['status', 'end_date'], name='campaign_status_end_idx'),
            models.Index(fields=['status', 'created_at'], name='campaign_status_created_idx'),
            models.Index(fields=['owner', 'created_at'], name='campaign_owner_created_idx'),
            models.Index(fields=['organization', 'status'], name='campaign_org_status_idx'),
        ]

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    status = models.CharField(max_length=20, choices=CampaignStatus.choices, default=CampaignStatus.DRAFT)
    visibility = models.CharField(max_length=20, default='public')
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='campaigns')
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='campaigns')
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='campaigns')
    goal_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    current_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    # Maintained by the indexing pipeline; may lag or be missing
    goal_percentage = models.DecimalField(max_digits=7, decimal_places=2, null=True, blank=True)
    donations_count = models.PositiveIntegerField(default=0)
    is_featured = models.BooleanField(default=False)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = ActiveCampaignManager()
    all_objects = models.Manager()

    def __str__(self):
        return self.title

    def get_percentage(self):
        return calculate_progress(self.current_amount, self.goal_amount)

    def is_active(self, now=None):
        now = now or timezone.now()
        if self.status != CampaignStatus.ACTIVE:
            return False
        if self.start_date and self.start_date > now:
            return False
        return not (self.end_date and self.end_date <= now)

    @property
    def is_deleted(self):
        return self.deleted_at is not None


class Bookmark(models.Model):
    class Meta:
        app_label = 'campaigns'
        constraints = [
            models.UniqueConstraint(fields=['user', 'campaign'], name='unique_bookmark_per_user'),
        ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='bookmarks')
    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name='bookmarks')
    created_at = models.DateTimeField(default=timezone.now)
