import strawberry
from apps.campaigns.graphql.queries import CampaignQueries


@strawberry.type
class Query(CampaignQueries):
    pass


schema = strawberry.Schema(query=Query)
