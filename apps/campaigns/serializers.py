from rest_framework import serializers
from .models import Campaign


class CampaignSerializer(serializers.ModelSerializer):
    organization_name = serializers.CharField(source='organization.name', read_only=True)
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    progress_percentage = serializers.SerializerMethodField()

    class Meta:
        model = Campaign
        fields = [
            'id', 'title', 'description', 'status', 'visibility',
            'organization', 'organization_name', 'category', 'category_name',
            'goal_amount', 'current_amount', 'progress_percentage', 'donations_count',
            'is_featured', 'start_date', 'end_date', 'created_at', 'updated_at', 'deleted_at',
        ]
        read_only_fields = fields

    def get_progress_percentage(self, obj) -> float:
        return round(obj.get_percentage(), 2)


class PageSerializer(serializers.Serializer):
    """Renders a search Page; ``degraded`` names why an index-backed page came back empty."""

    def to_representation(self, page):
        return {
            'results': CampaignSerializer(page.items, many=True, context=self.context).data,
            'total': page.total,
            'page': page.page,
            'per_page': page.page_size,
            'last_page': page.num_pages,
            'degraded': page.degraded_reason.value if page.degraded_reason else None,
        }


class LenientIntegerField(serializers.IntegerField):
    """Clamps into range; anything that is not an integer falls back to the default."""

    def to_internal_value(self, data):
        try:
            value = int(str(data).strip())
        except (TypeError, ValueError):
            return self.get_default()
        if self.min_value is not None:
            value = max(value, self.min_value)
        if self.max_value is not None:
            value = min(value, self.max_value)
        return value


class ListingParamsSerializer(serializers.Serializer):
    page = LenientIntegerField(min_value=1, default=1)
    per_page = LenientIntegerField(min_value=1, max_value=100, default=15)
    sort_by = serializers.CharField(required=False, default='created_at')
    sort_order = serializers.CharField(required=False, default='desc')


class CachedListParamsSerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=100, default=20)
    days = serializers.IntegerField(min_value=1, max_value=90, default=7)
