"""
URL configuration for core project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

# Import scouting URL patterns
from scouting.urls import photo_urlpatterns as scouting_photo_urls
from scouting.urls import cloud_sync_urlpatterns as cloud_sync_urls

urlpatterns = [
    path('', RedirectView.as_view(url='/admin/', permanent=False)),
    path('admin/', admin.site.urls),
    path('api/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/scouting/sessions/', include('scouting.urls')),  # Sessions, observations, change feed
    path('api/scouting/photos/', include((scouting_photo_urls, 'scouting_photos'))),  # Photo metadata
    path('api/cloud/sync/', include((cloud_sync_urls, 'cloud_sync'))),  # Edge-to-cloud sync
]
