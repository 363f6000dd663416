from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from apps.campaigns.models import calculate_progress

# Keys left empty when a model is built by the bulk path
BULK_OMITTED_FIELDS = ('payment_gateway_stats', 'payment_method_stats', 'donations_by_day', 'donations_by_week')


@dataclass
class CampaignAnalyticsReadModel:
    """
    Denormalised analytics for one campaign, rebuilt from source on demand.

    ``version`` is a wall-clock stamp in microseconds. ``partial`` marks
    models built in bulk, whose breakdown and trend fields are empty.
    """

    campaign_id: int
    data: Dict[str, Any] = field(default_factory=dict)
    version: int = 0
    partial: bool = False

    def get(self, key, default=None):
        value = self.data.get(key, default)
        return default if value is None else value

    # Campaign

    @property
    def title(self) -> str:
        return self.get('title', '')

    @property
    def status(self) -> Optional[str]:
        return self.get('status')

    @property
    def organization_id(self):
        return self.get('organization_id')

    @property
    def is_active(self) -> bool:
        return bool(self.get('is_active', False))

    # Financial

    @property
    def goal_amount(self) -> float:
        return float(self.get('goal_amount', 0.0))

    @property
    def current_amount(self) -> float:
        return float(self.get('current_amount', 0.0))

    @property
    def corporate_match_amount(self) -> float:
        return float(self.get('corporate_match_amount', 0.0))

    @property
    def refunded_amount(self) -> float:
        return float(self.get('refunded_amount', 0.0))

    @property
    def progress_percentage(self) -> float:
        return calculate_progress(self.current_amount, self.goal_amount)

    @property
    def remaining_amount(self) -> float:
        return max(0.0, self.goal_amount - self.current_amount)

    @property
    def has_reached_goal(self) -> bool:
        return self.current_amount >= self.goal_amount

    @property
    def total_raised(self) -> float:
        return self.current_amount + self.corporate_match_amount

    # Time

    @property
    def days_active(self) -> int:
        return int(self.get('days_active', 0))

    @property
    def days_remaining(self) -> int:
        return int(self.get('days_remaining', 0))

    @property
    def campaign_duration(self) -> int:
        return int(self.get('campaign_duration', 0))

    # Donations

    @property
    def total_donations(self) -> int:
        return int(self.get('total_donations', 0))

    @property
    def unique_donors(self) -> int:
        return int(self.get('unique_donors', 0))

    @property
    def average_donation_amount(self) -> float:
        if self.total_donations <= 0:
            return 0.0
        return self.current_amount / self.total_donations

    @property
    def donation_velocity(self) -> float:
        """Amount raised per active day."""
        if self.days_active <= 0:
            return 0.0
        return self.current_amount / self.days_active

    @property
    def average_donations_per_day(self) -> float:
        if self.days_active <= 0:
            return 0.0
        return self.total_donations / self.days_active

    @property
    def fundraising_efficiency(self) -> float:
        """Share of the goal raised per day of planned duration, as a percentage."""
        if self.goal_amount <= 0 or self.campaign_duration <= 0:
            return 0.0
        return (self.current_amount / self.goal_amount) / self.campaign_duration * 100

    def to_dict(self) -> dict:
        return {
            'campaign_id': self.campaign_id,
            'version': self.version,
            'partial': self.partial,
            **self.data,
        }

    def to_analytics_dict(self) -> dict:
        return {
            'campaign': {
                'id': self.campaign_id,
                'title': self.title,
                'status': self.status,
                'visibility': self.get('visibility'),
                'is_active': self.is_active,
                'organization_id': self.organization_id,
                'organization_name': self.get('organization_name'),
                'creator_name': self.get('creator_name'),
                'category_name': self.get('category_name'),
            },
            'financial': {
                'goal_amount': self.goal_amount,
                'current_amount': self.current_amount,
                'remaining_amount': self.remaining_amount,
                'progress_percentage': self.progress_percentage,
                'corporate_match_amount': self.corporate_match_amount,
                'total_raised': self.total_raised,
                'refunded_amount': self.refunded_amount,
                'has_reached_goal': self.has_reached_goal,
            },
            'time': {
                'start_date': self.get('start_date'),
                'end_date': self.get('end_date'),
                'days_remaining': self.days_remaining,
                'days_active': self.days_active,
                'campaign_duration': self.campaign_duration,
            },
            'donations': {
                'total_donations': self.total_donations,
                'unique_donors': self.unique_donors,
                'average_donation_amount': self.average_donation_amount,
                'anonymous_donations': int(self.get('anonymous_donations', 0)),
                'recurring_donations': int(self.get('recurring_donations', 0)),
                'completed_donations': int(self.get('completed_donations', 0)),
                'pending_donations': int(self.get('pending_donations', 0)),
                'failed_donations': int(self.get('failed_donations', 0)),
                'refunded_donations': int(self.get('refunded_donations', 0)),
            },
            'performance': {
                'donation_velocity': self.donation_velocity,
                'average_donations_per_day': self.average_donations_per_day,
                'fundraising_efficiency': self.fundraising_efficiency,
            },
            'engagement': {
                'bookmarks_count': int(self.get('bookmarks_count', 0)),
                'shares_count': int(self.get('shares_count', 0)),
                'views_count': int(self.get('views_count', 0)),
            },
            'timestamps': {
                'created_at': self.get('created_at'),
                'updated_at': self.get('updated_at'),
                'completed_at': self.get('completed_at'),
            },
        }
