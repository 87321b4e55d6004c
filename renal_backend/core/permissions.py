"""Core permissions for RBAC (Role-Based Access Control).

Base permission class with the project's read_roles/write_roles pattern,
plus the doctor-owns-patient object check shared by the patients and
clinical apps.

Standard roles: admin, doctor, nurse
"""

from rest_framework.permissions import BasePermission, SAFE_METHODS


class RBACPermission(BasePermission):
    """Base class for RBAC permissions with read_roles/write_roles pattern.

    Subclasses should define:
    - read_roles: set of role names that can perform GET/HEAD/OPTIONS
    - write_roles: set of role names that can perform POST/PUT/PATCH/DELETE

    Example:
        class MyPermission(RBACPermission):
            read_roles = {"admin", "doctor", "nurse"}
            write_roles = {"admin", "doctor"}
    """

    read_roles: set = set()
    write_roles: set = set()

    def _role_name(self, request):
        user = getattr(request, "user", None)
        role = getattr(user, "role", None)
        return getattr(role, "name", None)

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False

        role_name = self._role_name(request)
        if not role_name:
            return False

        if request.method in SAFE_METHODS:
            return role_name in self.read_roles

        return role_name in self.write_roles

    def has_object_permission(self, request, view, obj):
        return True


class PatientOwnershipPermission(RBACPermission):
    """RBAC plus ownership: a doctor only sees their own patients.

    Subclasses implement ``_patient_of(obj)``.
    """

    def _patient_of(self, obj):
        return obj

    def has_object_permission(self, request, view, obj):
        role_name = self._role_name(request)
        if not role_name:
            return False
        if role_name != "doctor":
            return True
        patient = self._patient_of(obj)
        return getattr(patient, "doctor_id", None) == request.user.id


def doctor_scope(queryset, request, field="doctor"):
    """Restrict a queryset to the requesting doctor's patients.

    Non-doctor roles see everything their RBAC role allows.
    """
    role = getattr(getattr(request, "user", None), "role", None)
    if getattr(role, "name", None) == "doctor":
        return queryset.filter(**{field: request.user})
    return queryset
