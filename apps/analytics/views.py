from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.campaigns.models import Campaign
from apps.campaigns.repository import CampaignRepository
from apps.campaigns.search import get_search_client
from tasks.analytics import (
    invalidate_campaign_cache, warm_analytics_cache, warm_campaign_analytics, warm_popular_campaigns_cache,
)
from .repository import CampaignAnalyticsRepository
from .serializers import BulkAnalyticsRequestSerializer, CacheWarmRequestSerializer, serialize_read_model


@api_view(['GET'])
@permission_classes([AllowAny])
def campaign_analytics(request, campaign_id):
    """Cached analytics read model for one campaign"""
    model = CampaignAnalyticsRepository().get_analytics(campaign_id)
    if model is None:
        return Response({'detail': 'Campaign not found.'}, status=status.HTTP_404_NOT_FOUND)
    return Response(serialize_read_model(model))


class BulkAnalyticsView(APIView):
    """Analytics for many campaigns; unknown ids are simply absent from the response."""

    permission_classes = [AllowAny]

    def post(self, request):
        serializer = BulkAnalyticsRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        models = CampaignAnalyticsRepository().get_bulk_analytics(serializer.validated_data['campaign_ids'])
        return Response({
            'results': {str(campaign_id): serialize_read_model(model) for campaign_id, model in models.items()},
            'count': len(models),
        })


@api_view(['POST'])
@permission_classes([IsAdminUser])
def invalidate_cache(request, campaign_id):
    organization_id = (
        Campaign.all_objects.filter(pk=campaign_id).values_list('organization_id', flat=True).first()
    )
    result = invalidate_campaign_cache.delay(campaign_id, organization_id)
    return Response(
        {'campaign_id': campaign_id, 'task_id': result.id, 'status': 'queued'},
        status=status.HTTP_202_ACCEPTED,
    )


@api_view(['POST'])
@permission_classes([IsAdminUser])
def warm_cache(request):
    serializer = CacheWarmRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    options = serializer.validated_data

    queued = {}
    if options.get('campaign_ids'):
        queued['campaigns'] = warm_campaign_analytics.delay(options['campaign_ids']).id
    elif options['analytics']:
        queued['analytics'] = warm_analytics_cache.delay().id
    if options['lists']:
        queued['lists'] = warm_popular_campaigns_cache.delay().id

    return Response({'queued': queued, 'status': 'queued'}, status=status.HTTP_202_ACCEPTED)


@api_view(['GET'])
@permission_classes([IsAdminUser])
def cache_statistics(request):
    client = get_search_client()
    breaker = getattr(client, 'breaker', None)
    data = {
        'lists': CampaignRepository(search_client=client).get_campaign_list_cache_statistics(),
        'search_index': breaker.status() if breaker else {'state': 'bypassed'},
    }

    campaign_id = request.query_params.get('campaign_id')
    if campaign_id and campaign_id.isdigit():
        data['campaign'] = CampaignAnalyticsRepository().get_cache_statistics(int(campaign_id))
    return Response(data)
