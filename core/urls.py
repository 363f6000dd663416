"""
URL configuration for the fundraising discovery project.
"""

from django.contrib import admin
from django.urls import path
from django.urls import include
from django.http import JsonResponse
from strawberry.django.views import GraphQLView
from core.graphql.schema import schema
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView


def home_view(request):
    return JsonResponse({
        "message": "Fundraising Discovery API",
        "status": "running",
        "endpoints": {
            "admin": "/admin/",
            "campaigns": "/api/v1/campaigns/",
            "analytics": "/api/v1/analytics/",
            "graphql": "/graphql/",
            "docs": "/api/docs/",
            "schema": "/api/schema/"
        }
    })


urlpatterns = [
    path("", home_view, name="home"),
    path("admin/", admin.site.urls),
    path("api/v1/analytics/", include("apps.analytics.urls")),
    path("api/v1/", include("apps.campaigns.urls")),
    path('graphql/', GraphQLView.as_view(schema=schema, graphiql=True)),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
