from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class TagKind(Enum):
    CAMPAIGNS = "campaigns"
    CAMPAIGN_ANALYTICS = "campaign_analytics"
    DONATIONS = "donations"
    POPULAR_CAMPAIGNS = "popular_campaigns"
    TRENDING_CAMPAIGNS = "trending_campaigns"
    ENDING_SOON_CAMPAIGNS = "ending_soon_campaigns"
    RECENT_CAMPAIGNS = "recent_campaigns"
    # Entity-scoped kinds, rendered with their scope
    CAMPAIGN = "campaign"
    ORGANIZATION = "org"
    CAMPAIGN_STATUS = "campaigns_status"


_SCOPE_SEPARATORS = {
    TagKind.CAMPAIGN: ":",
    TagKind.ORGANIZATION: ":",
    TagKind.CAMPAIGN_STATUS: "_",
}


@dataclass(frozen=True)
class CacheTag:
    """A cache tag. Scoped kinds must carry an entity id or status value."""

    kind: TagKind
    scope: Optional[Union[int, str]] = None

    def __post_init__(self):
        scoped = self.kind in _SCOPE_SEPARATORS
        if scoped and self.scope in (None, ""):
            raise ValueError(f"Tag kind {self.kind.value} requires a scope")
        if not scoped and self.scope is not None:
            raise ValueError(f"Tag kind {self.kind.value} does not take a scope")

    def __str__(self):
        if self.scope is None:
            return self.kind.value
        return f"{self.kind.value}{_SCOPE_SEPARATORS[self.kind]}{self.scope}"

    @classmethod
    def campaign(cls, campaign_id):
        return cls(TagKind.CAMPAIGN, int(campaign_id))

    @classmethod
    def organization(cls, organization_id):
        return cls(TagKind.ORGANIZATION, int(organization_id))

    @classmethod
    def status(cls, status):
        return cls(TagKind.CAMPAIGN_STATUS, str(getattr(status, "value", status)))


CAMPAIGNS = CacheTag(TagKind.CAMPAIGNS)
CAMPAIGN_ANALYTICS = CacheTag(TagKind.CAMPAIGN_ANALYTICS)
DONATIONS = CacheTag(TagKind.DONATIONS)
POPULAR_CAMPAIGNS = CacheTag(TagKind.POPULAR_CAMPAIGNS)
TRENDING_CAMPAIGNS = CacheTag(TagKind.TRENDING_CAMPAIGNS)
ENDING_SOON_CAMPAIGNS = CacheTag(TagKind.ENDING_SOON_CAMPAIGNS)
RECENT_CAMPAIGNS = CacheTag(TagKind.RECENT_CAMPAIGNS)

LIST_TAGS = (POPULAR_CAMPAIGNS, TRENDING_CAMPAIGNS, ENDING_SOON_CAMPAIGNS, RECENT_CAMPAIGNS)


def analytics_tags(campaign_id):
    return (CAMPAIGN_ANALYTICS, CAMPAIGNS, DONATIONS, CacheTag.campaign(campaign_id))
