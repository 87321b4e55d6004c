"""Core app views.

Contains:
- health: Health check endpoint
- LoginView: JWT token obtain with user/role info
- MeView: Current authenticated user info
"""

import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from rest_framework_simplejwt.tokens import RefreshToken

from renal_backend.core.serializers import (
    LoginSerializer,
    RoleSerializer,
    UserMeSerializer,
)

logger = logging.getLogger(__name__)


def health(request):
    """Health check endpoint - no authentication required."""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1;')
    except DatabaseError as exc:
        logger.error('Health check failed: %s', exc)
        return JsonResponse({'status': 'error', 'detail': str(exc)}, status=503)

    return JsonResponse({'status': 'ok'})


class LoginView(APIView):
    """Obtain JWT access and refresh tokens.

    POST /api/auth/token/
    Body: {"username": "...", "password": "..."}
    Returns: {"user": {...}, "access": "...", "refresh": "..."}

    The refresh token carries the user's role as ``role`` claim.
    """

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = serializer.validated_data['user']
        role = getattr(user, 'role', None)

        refresh = RefreshToken.for_user(user)
        refresh['role'] = role.name if role else None

        return Response(
            {
                'user': {
                    'id': user.id,
                    'username': user.username,
                    'email': user.email,
                    'first_name': user.first_name,
                    'last_name': user.last_name,
                    'role': RoleSerializer(role).data if role else None,
                },
                'access': str(refresh.access_token),
                'refresh': str(refresh),
            },
            status=status.HTTP_200_OK,
        )


class MeView(APIView):
    """Get current authenticated user info.

    GET /api/auth/me/
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        serializer = UserMeSerializer(request.user)
        return Response(serializer.data, status=status.HTTP_200_OK)
