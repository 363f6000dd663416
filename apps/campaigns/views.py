from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from .repository import CampaignRepository
from .search import ActorContext, SortSpec
from .search.filters import filters_from_query_params, is_truthy
from .serializers import CachedListParamsSerializer, CampaignSerializer, ListingParamsSerializer, PageSerializer


def _listing_params(request):
    params = ListingParamsSerializer(data=request.query_params)
    params.is_valid(raise_exception=True)
    data = params.validated_data
    return SortSpec.parse(data['sort_by'], data['sort_order']), data['page'], data['per_page']


def _list_params(request):
    params = CachedListParamsSerializer(data=request.query_params)
    params.is_valid(raise_exception=True)
    return params.validated_data


@api_view(['GET'])
@permission_classes([AllowAny])
def discover_campaigns(request):
    """Public campaign listing backed by the search index"""
    sort, page, per_page = _listing_params(request)
    filters = filters_from_query_params(request.query_params)
    actor = ActorContext.for_user(request.user, load_bookmarks=filters.get('filter') == 'favorites')

    result = CampaignRepository().discover(filters, sort, page, per_page, actor=actor)
    return Response(PageSerializer(result, context={'request': request}).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_campaigns(request):
    """The caller's own campaigns. ``index_only=1`` refuses to answer while the index is down."""
    sort, page, per_page = _listing_params(request)
    filters = filters_from_query_params(request.query_params)
    repository = CampaignRepository()

    if is_truthy(request.query_params.get('index_only', False)):
        result = repository.search_owner_campaigns(request.user.pk, filters, sort, page, per_page)
    else:
        actor = ActorContext.for_user(request.user, load_bookmarks=False)
        result = repository.discover_for_owner(request.user.pk, filters, sort, page, per_page, actor=actor)
    return Response(PageSerializer(result, context={'request': request}).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def popular_campaigns(request):
    params = _list_params(request)
    campaigns = CampaignRepository().get_popular_campaigns(params['limit'])
    return Response({'results': CampaignSerializer(campaigns, many=True).data})


@api_view(['GET'])
@permission_classes([AllowAny])
def trending_campaigns(request):
    params = _list_params(request)
    campaigns = CampaignRepository().get_trending_campaigns(params['limit'])
    return Response({'results': CampaignSerializer(campaigns, many=True).data})


@api_view(['GET'])
@permission_classes([AllowAny])
def ending_soon_campaigns(request):
    params = _list_params(request)
    campaigns = CampaignRepository().get_ending_soon_campaigns(params['days'], params['limit'])
    return Response({'results': CampaignSerializer(campaigns, many=True).data})


@api_view(['GET'])
@permission_classes([AllowAny])
def recent_campaigns(request):
    params = _list_params(request)
    campaigns = CampaignRepository().get_recent_campaigns(params['days'], params['limit'])
    return Response({'results': CampaignSerializer(campaigns, many=True).data})
