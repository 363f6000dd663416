import strawberry
import strawberry_django
from strawberry import auto
from strawberry.scalars import JSON
from typing import List, Optional
from apps.campaigns.models import Campaign, Organization


@strawberry_django.type(Organization)
class OrganizationType:
    id: auto
    name: auto


@strawberry_django.type(Campaign)
class CampaignType:
    id: auto
    title: auto
    description: auto
    status: auto
    organization: OrganizationType
    goal_amount: auto
    current_amount: auto
    donations_count: auto
    is_featured: auto
    start_date: auto
    end_date: auto
    created_at: auto

    @strawberry.field
    def progress_percentage(self) -> float:
        return round(self.get_percentage(), 2)


@strawberry.type
class CampaignPageType:
    items: List[CampaignType]
    total: int
    page: int
    per_page: int
    last_page: int
    degraded: Optional[str] = None


@strawberry.type
class CampaignAnalyticsType:
    campaign_id: int
    # Microsecond stamps overflow GraphQL Int
    version: str
    partial: bool
    title: str
    status: Optional[str]
    goal_amount: float
    current_amount: float
    progress_percentage: float
    remaining_amount: float
    total_raised: float
    total_donations: int
    unique_donors: int
    average_donation_amount: float
    donation_velocity: float
    days_active: int
    days_remaining: int
    metrics: JSON

    @classmethod
    def from_read_model(cls, model):
        return cls(
            campaign_id=model.campaign_id,
            version=str(model.version),
            partial=model.partial,
            title=model.title,
            status=model.status,
            goal_amount=model.goal_amount,
            current_amount=model.current_amount,
            progress_percentage=model.progress_percentage,
            remaining_amount=model.remaining_amount,
            total_raised=model.total_raised,
            total_donations=model.total_donations,
            unique_donors=model.unique_donors,
            average_donation_amount=model.average_donation_amount,
            donation_velocity=model.donation_velocity,
            days_active=model.days_active,
            days_remaining=model.days_remaining,
            metrics=model.to_analytics_dict(),
        )
