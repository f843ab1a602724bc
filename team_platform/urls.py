"""
URL configuration for team_platform project.

The admin lives under ``/admin/`` and the meet entry API under ``/api/``.
"""
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('meets.urls')),
    path('api-auth/', include('rest_framework.urls')),
]
