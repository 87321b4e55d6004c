"""Tests for Authentication endpoints.

Tests cover:
- Login (POST /api/auth/token/)
- Refresh (POST /api/auth/token/refresh/)
- Me (GET /api/auth/me/)
- RBAC: refresh tokens contain role info

Uses only the default/system test DB.
"""

from __future__ import annotations

from django.test import TestCase

from rest_framework import status
from rest_framework.test import APIClient

from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from renal_backend.core.models import AuditLog, Role, User
from renal_backend.core.utils import log_patient_action


class AuthenticationTest(TestCase):
    """Tests for /api/auth/ endpoints."""

    databases = {"default"}

    def setUp(self):
        self.role_admin, _ = Role.objects.using("default").get_or_create(
            name="admin",
            defaults={"label": "Administrator"},
        )
        self.role_doctor, _ = Role.objects.using("default").get_or_create(
            name="doctor",
            defaults={"label": "Nephrologist"},
        )

        self.admin = User.objects.db_manager("default").create_user(
            username="admin_auth_test",
            email="admin_auth@example.com",
            password="SecurePass123!",
            role=self.role_admin,
        )
        self.doctor = User.objects.db_manager("default").create_user(
            username="doctor_auth_test",
            email="doctor_auth@example.com",
            password="SecurePass123!",
            role=self.role_doctor,
        )
        self.inactive_user = User.objects.db_manager("default").create_user(
            username="inactive_auth_test",
            email="inactive_auth@example.com",
            password="SecurePass123!",
            role=self.role_doctor,
            is_active=False,
        )

        self.client = APIClient()
        self.client.defaults["HTTP_HOST"] = "localhost"

    def _login(self, username):
        return self.client.post(
            "/api/auth/token/",
            {"username": username, "password": "SecurePass123!"},
            format="json",
        )

    # ========== LOGIN TESTS ==========

    def test_login_success_returns_tokens_and_user(self):
        """Successful login returns access, refresh tokens and user info."""
        response = self._login("admin_auth_test")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)

        user_data = response.data["user"]
        self.assertEqual(user_data["id"], self.admin.id)
        self.assertEqual(user_data["username"], "admin_auth_test")
        self.assertEqual(user_data["email"], "admin_auth@example.com")
        self.assertEqual(user_data["role"]["name"], "admin")

    def test_login_doctor_returns_doctor_role(self):
        response = self._login("doctor_auth_test")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["user"]["role"]["name"], "doctor")

    def test_login_wrong_password_returns_400(self):
        """Wrong password returns 400 (validation error)."""
        response = self.client.post(
            "/api/auth/token/",
            {"username": "admin_auth_test", "password": "WrongPassword!"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertNotIn("access", response.data)

    def test_login_inactive_user_returns_400(self):
        response = self._login("inactive_auth_test")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_missing_fields_returns_400(self):
        response = self.client.post("/api/auth/token/", {"username": "admin_auth_test"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post("/api/auth/token/", {"password": "SecurePass123!"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    # ========== REFRESH TESTS ==========

    def test_refresh_success_returns_new_access_token(self):
        refresh_token = self._login("admin_auth_test").data["refresh"]

        response = self.client.post(
            "/api/auth/token/refresh/",
            {"refresh": refresh_token},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data)

    def test_refresh_invalid_token_returns_401(self):
        response = self.client.post(
            "/api/auth/token/refresh/",
            {"refresh": "invalid_token_here"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_missing_token_returns_400(self):
        response = self.client.post("/api/auth/token/refresh/", {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    # ========== ME ENDPOINT TESTS ==========

    def test_me_with_valid_token_returns_user(self):
        access_token = self._login("admin_auth_test").data["access"]

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access_token}")
        response = self.client.get("/api/auth/me/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["id"], self.admin.id)
        self.assertEqual(response.data["role"]["name"], "admin")

    def test_me_without_token_returns_401(self):
        response = self.client.get("/api/auth/me/")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_with_invalid_token_returns_401(self):
        self.client.credentials(HTTP_AUTHORIZATION="Bearer invalid_token_here")
        response = self.client.get("/api/auth/me/")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    # ========== TOKEN CONTENT TESTS ==========

    def test_access_token_identifies_user(self):
        access_token = self._login("admin_auth_test").data["access"]

        decoded = AccessToken(access_token)

        # numeric claims may come back as strings depending on settings
        self.assertEqual(int(decoded["user_id"]), self.admin.id)

    def test_refresh_token_contains_role(self):
        refresh_token = self._login("doctor_auth_test").data["refresh"]

        decoded = RefreshToken(refresh_token)

        self.assertEqual(decoded["role"], "doctor")

    def test_health_endpoint_no_auth_required(self):
        response = self.client.get("/api/health/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["status"], "ok")


class AuthenticationEdgeCasesTest(TestCase):
    """Edge case tests for authentication."""

    databases = {"default"}

    def setUp(self):
        self.user_no_role = User.objects.db_manager("default").create_user(
            username="norole_auth_test",
            email="norole_auth@example.com",
            password="SecurePass123!",
            role=None,
        )
        self.client = APIClient()
        self.client.defaults["HTTP_HOST"] = "localhost"

    def test_login_user_without_role(self):
        """User without role can still login."""
        response = self.client.post(
            "/api/auth/token/",
            {"username": "norole_auth_test", "password": "SecurePass123!"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data["user"]["role"])

    def test_user_without_role_denied_on_patients(self):
        """RBAC denies users without a role."""
        self.client.force_authenticate(user=self.user_no_role)
        response = self.client.get("/api/patients/")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AuditLogTest(TestCase):
    databases = {"default"}

    def setUp(self):
        self.role_doctor, _ = Role.objects.using("default").get_or_create(
            name="doctor",
            defaults={"label": "Nephrologist"},
        )
        self.doctor = User.objects.db_manager("default").create_user(
            username="doctor_audit_test",
            email="doctor_audit@example.com",
            password="SecurePass123!",
            role=self.role_doctor,
        )

    def test_log_patient_action_records_role(self):
        log_patient_action(self.doctor, "patient_view", patient_id=7, meta={"source": "test"})

        entry = AuditLog.objects.using("default").get()
        self.assertEqual(entry.user_id, self.doctor.id)
        self.assertEqual(entry.role_name, "doctor")
        self.assertEqual(entry.action, "patient_view")
        self.assertEqual(entry.patient_id, 7)
        self.assertEqual(entry.meta, {"source": "test"})
