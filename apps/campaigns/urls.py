from django.urls import path
from . import views

urlpatterns = [
    path('campaigns/', views.discover_campaigns, name='campaign-discover'),
    path('campaigns/mine/', views.my_campaigns, name='campaign-mine'),
    path('campaigns/popular/', views.popular_campaigns, name='campaign-popular'),
    path('campaigns/trending/', views.trending_campaigns, name='campaign-trending'),
    path('campaigns/ending-soon/', views.ending_soon_campaigns, name='campaign-ending-soon'),
    path('campaigns/recent/', views.recent_campaigns, name='campaign-recent'),
]
