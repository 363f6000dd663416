from rest_framework import serializers


class BulkAnalyticsRequestSerializer(serializers.Serializer):
    campaign_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1), allow_empty=False, max_length=100,
    )


class CacheWarmRequestSerializer(serializers.Serializer):
    campaign_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)
    lists = serializers.BooleanField(default=True)
    analytics = serializers.BooleanField(default=True)


def serialize_read_model(model) -> dict:
    """Grouped analytics plus the breakdown and trend series."""
    return {
        **model.to_analytics_dict(),
        'payment_breakdowns': {
            'gateways': model.get('payment_gateway_stats', {}),
            'methods': model.get('payment_method_stats', {}),
        },
        'trends': {
            'daily': model.get('donations_by_day', []),
            'weekly': model.get('donations_by_week', []),
        },
        'version': model.version,
        'partial': model.partial,
    }
