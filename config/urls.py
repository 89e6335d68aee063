"""URL configuration for the Sweet Narcisse booking platform.

The `urlpatterns` list routes URLs to the thin API handlers of each app.
"""
from django.urls import include, path  # type: ignore
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView  # type: ignore

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('api/v1/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/v1/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/v1/bookings/', include('apps.bookings.urls')),
    path('api/v1/fleet/', include('apps.fleet.urls')),
]
