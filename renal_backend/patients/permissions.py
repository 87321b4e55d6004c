from renal_backend.core.permissions import PatientOwnershipPermission


class PatientPermission(PatientOwnershipPermission):
    """RBAC for Patient endpoints.

    - admin: full access (read + write)
    - doctor: read + write, own patients only
    - nurse: read-only
    """

    read_roles = {"admin", "doctor", "nurse"}
    write_roles = {"admin", "doctor"}
