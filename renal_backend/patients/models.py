from django.conf import settings
from django.db import models


class Patient(models.Model):
    """Dialysis patient.

    Each patient is owned by one doctor; doctors only see their own patients.
    Visits and lab values live in the clinical app (``patient.visits``).
    """

    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]

    name = models.CharField(max_length=200)
    age = models.PositiveSmallIntegerField()
    gender = models.CharField(max_length=16, choices=GENDER_CHOICES)
    national_id = models.CharField(max_length=32, unique=True, db_index=True)
    contact_info = models.CharField(max_length=255, blank=True, default='')
    doctor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='patients',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name', 'id']
        verbose_name = 'Patient'
        verbose_name_plural = 'Patients'

    def __str__(self) -> str:
        return f"{self.name} ({self.national_id})"
