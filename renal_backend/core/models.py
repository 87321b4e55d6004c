from django.contrib.auth.models import AbstractUser
from django.db import models
from django.conf import settings


class Role(models.Model):
    """User roles for RBAC.

    Standard roles: admin, doctor, nurse
    """

    name = models.CharField(max_length=64, unique=True, db_index=True)
    label = models.CharField(max_length=128)

    class Meta:
        db_table = 'core_role'
        ordering = ['name']
        verbose_name = 'Role'
        verbose_name_plural = 'Roles'

    def __str__(self) -> str:
        return self.label


class User(AbstractUser):
    """Clinic staff account.

    Adds a unique email (login identifier for the JWT endpoints) and the
    RBAC role. Doctors own patients through ``Patient.doctor``.
    """

    email = models.EmailField('email address', blank=True, unique=True)
    role = models.ForeignKey(
        Role,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name='users',
    )

    class Meta:
        db_table = 'core_user'
        ordering = ['username']
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    @property
    def role_name(self) -> str | None:
        return getattr(self.role, 'name', None)


class AuditLog(models.Model):
    """Audit trail of patient-related actions.

    patient_id is a plain integer so entries outlive deleted patients.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
    )
    role_name = models.CharField(max_length=50, blank=True, db_index=True)
    action = models.CharField(max_length=50, db_index=True)
    patient_id = models.IntegerField(null=True, blank=True, db_index=True)
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)
    meta = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = 'core_auditlog'
        ordering = ['-timestamp', '-id']
        verbose_name = 'Audit Log'
        verbose_name_plural = 'Audit Logs'
        indexes = [
            models.Index(fields=['action', 'timestamp'], name='core_auditl_action_8a4d1e_idx'),
            models.Index(fields=['patient_id', 'timestamp'], name='core_auditl_patient_3c9f2b_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.timestamp} {self.action} (patient_id={self.patient_id})"
