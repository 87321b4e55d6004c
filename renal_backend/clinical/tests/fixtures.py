"""Shared setup for the database-backed clinical tests."""

from datetime import timedelta

from django.utils import timezone

from rest_framework.test import APIClient

from renal_backend.clinical.models import (
    MedicationPrescription,
    MedicationType,
    Option,
    Question,
    RecommendationTemplate,
    TestResult,
)
from renal_backend.clinical.services.visits import record_visit
from renal_backend.core.models import Role, User
from renal_backend.patients.models import Patient


# Group 2 (no vascular flag), first visit PTH 300 -> bucket 2,
# CaCorr 9.0 and P 4.5 -> T17 (situation id 50)
BASE_VALUES = {
    "PTH": 300,
    "Ca": 9.0,
    "Albumin": 4.0,
    "Phos": 4.5,
    "Echo": 0,
    "LARad": 0,
}


class ClinicalTestMixin:
    """Roles, users, a patient and two medication types."""

    databases = {"default"}

    def setUp(self):
        super().setUp()
        self.role_admin, _ = Role.objects.using("default").get_or_create(
            name="admin", defaults={"label": "Administrator"}
        )
        self.role_doctor, _ = Role.objects.using("default").get_or_create(
            name="doctor", defaults={"label": "Nephrologist"}
        )
        self.role_nurse, _ = Role.objects.using("default").get_or_create(
            name="nurse", defaults={"label": "Nurse"}
        )

        self.admin = User.objects.db_manager("default").create_user(
            username="admin_clinical",
            email="admin_clinical@test.local",
            password="DummyPass123!",
            role=self.role_admin,
        )
        self.doctor = User.objects.db_manager("default").create_user(
            username="doctor_clinical",
            email="doctor_clinical@test.local",
            password="DummyPass123!",
            role=self.role_doctor,
        )
        self.other_doctor = User.objects.db_manager("default").create_user(
            username="other_doctor_clinical",
            email="other_doctor_clinical@test.local",
            password="DummyPass123!",
            role=self.role_doctor,
        )
        self.nurse = User.objects.db_manager("default").create_user(
            username="nurse_clinical",
            email="nurse_clinical@test.local",
            password="DummyPass123!",
            role=self.role_nurse,
        )

        self.patient = Patient.objects.using("default").create(
            name="Amina Haddad",
            age=63,
            gender="female",
            national_id="CLIN-1",
            doctor=self.doctor,
        )

        self.calcitriol = MedicationType.objects.using("default").create(
            name="Calcitriol", unit="mcg", group_name="Vitamin D"
        )
        self.cinacalcet = MedicationType.objects.using("default").create(
            name="Cinacalcet", unit="mg", group_name="Calcimimetics"
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def record(self, days_ago=10, patient=None, report_date=None, **overrides):
        values = dict(BASE_VALUES)
        values.update(overrides)
        return record_visit(
            patient or self.patient,
            values,
            self.doctor,
            report_date=report_date or timezone.now() - timedelta(days=days_ago),
        )

    def result_id(self, visit, code):
        return (
            TestResult.objects.using("default")
            .get(visit=visit, test_type__code=code)
            .id
        )

    def stored_value(self, visit, code):
        return (
            TestResult.objects.using("default")
            .get(visit=visit, test_type__code=code)
            .value
        )

    def prescribe(self, visit, medication_type=None, dosage=0.5):
        return MedicationPrescription.objects.using("default").create(
            visit=visit,
            medication_type=medication_type or self.calcitriol,
            dosage=dosage,
            prescribed_by=self.doctor,
        )

    def question(self, text, option_texts, situation_id=None, default=None):
        """Question with options; optionally templated for a situation."""
        question = Question.objects.using("default").create(text=text)
        options = [
            Option.objects.using("default").create(question=question, text=option_text)
            for option_text in option_texts
        ]
        if situation_id is not None:
            RecommendationTemplate.objects.using("default").create(
                situation_id=situation_id,
                question=question,
                default_option=options[default] if default is not None else None,
            )
        return question, options

    def client_for(self, user) -> APIClient:
        client = APIClient()
        client.defaults["HTTP_HOST"] = "localhost"
        client.force_authenticate(user=user)
        return client
