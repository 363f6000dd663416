from django.urls import path
from . import views

urlpatterns = [
    path('campaigns/<int:campaign_id>/', views.campaign_analytics, name='campaign-analytics'),
    path('campaigns/bulk/', views.BulkAnalyticsView.as_view(), name='campaign-analytics-bulk'),
    path('cache/invalidate/<int:campaign_id>/', views.invalidate_cache, name='analytics-cache-invalidate'),
    path('cache/warm/', views.warm_cache, name='analytics-cache-warm'),
    path('cache/stats/', views.cache_statistics, name='analytics-cache-stats'),
]
