"""Core App URLs - Authentication & Health.

Prefix: /api/
Routes:
    GET  /api/health/              - Health check (no auth)
    POST /api/auth/token/          - JWT token obtain with user/role info
    POST /api/auth/token/refresh/  - JWT token refresh
    GET  /api/auth/me/             - Current user info (requires auth)
"""

from django.urls import path

from rest_framework_simplejwt.views import TokenRefreshView

from renal_backend.core.views import (
    health,
    LoginView,
    MeView,
)

app_name = 'core'

urlpatterns = [
    # Health check
    path('health/', health, name='health'),

    # JWT Authentication
    path('auth/token/', LoginView.as_view(), name='token'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', MeView.as_view(), name='me'),
]
