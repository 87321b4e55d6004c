"""Serializers for the core app.

Contains serializers for Role, User and the login endpoint.
"""

from django.contrib.auth import authenticate

from rest_framework import serializers

from renal_backend.core.models import Role, User


# -----------------------------------------------------------------------------
# Role / User Serializers
# -----------------------------------------------------------------------------


class RoleSerializer(serializers.ModelSerializer):
    """Read-only serializer for Role model."""

    class Meta:
        model = Role
        fields = ['id', 'name', 'label']
        read_only_fields = fields


class UserMeSerializer(serializers.ModelSerializer):
    """Serializer for the /auth/me/ endpoint."""

    role = RoleSerializer(read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'first_name',
            'last_name',
            'is_active',
            'role',
        ]
        read_only_fields = fields


class UserBriefSerializer(serializers.ModelSerializer):
    """Lightweight user reference (doctor of a patient, author of a change)."""

    role_name = serializers.CharField(source='role.name', read_only=True, allow_null=True, default=None)

    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name', 'role_name']
        read_only_fields = fields


# -----------------------------------------------------------------------------
# Authentication Serializers
# -----------------------------------------------------------------------------


class LoginSerializer(serializers.Serializer):
    """Validates credentials and returns the user."""

    username = serializers.CharField(required=True)
    password = serializers.CharField(required=True, write_only=True)

    def validate(self, attrs):
        user = authenticate(username=attrs.get('username'), password=attrs.get('password'))

        # authenticate() returns None for inactive users as well
        if user is None:
            raise serializers.ValidationError('Invalid credentials.')

        attrs['user'] = user
        return attrs
