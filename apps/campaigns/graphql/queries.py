import strawberry
from typing import Optional
from apps.analytics.repository import CampaignAnalyticsRepository
from apps.campaigns.repository import CampaignRepository
from apps.campaigns.search import ActorContext, SortSpec
from .types import CampaignAnalyticsType, CampaignPageType


@strawberry.type
class CampaignQueries:

    @strawberry.field
    def discover_campaigns(
        self,
        info: strawberry.Info,
        search: Optional[str] = None,
        status: Optional[str] = None,
        filter: Optional[str] = None,
        organization_id: Optional[int] = None,
        category_id: Optional[int] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        per_page: int = 15,
    ) -> CampaignPageType:
        filters = {
            "search": search,
            "status": status,
            "filter": filter,
            "organization_id": organization_id,
            "category_id": category_id,
        }
        user = getattr(info.context.request, "user", None)
        actor = ActorContext.for_user(user, load_bookmarks=filter == "favorites")
        per_page = min(max(per_page, 1), 100)

        result = CampaignRepository().discover(
            filters, SortSpec.parse(sort_by, sort_order), max(page, 1), per_page, actor=actor,
        )
        return CampaignPageType(
            items=result.items,
            total=result.total,
            page=result.page,
            per_page=result.page_size,
            last_page=result.num_pages,
            degraded=result.degraded_reason.value if result.degraded_reason else None,
        )

    @strawberry.field
    def campaign_analytics(self, id: int) -> Optional[CampaignAnalyticsType]:
        model = CampaignAnalyticsRepository().get_analytics(id)
        return CampaignAnalyticsType.from_read_model(model) if model is not None else None
