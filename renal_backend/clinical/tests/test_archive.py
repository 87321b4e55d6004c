"""
Tests for visit deletion with archiving.

Tests cover:
- Snapshot contents and removed rows
- Missing visit
- API access per role
"""

from django.test import TestCase

from renal_backend.clinical.exceptions import VisitNotFound
from renal_backend.clinical.models import (
    ArchivedVisit,
    AssignedRecommendation,
    MedicationPrescription,
    TestResult,
    Visit,
)
from renal_backend.clinical.services.archive import delete_visit
from renal_backend.clinical.services.recommendations import assign_recommendations
from renal_backend.core.models import AuditLog

from .fixtures import ClinicalTestMixin


class DeleteVisitTest(ClinicalTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.visit = self.record(notes="Routine").visit
        self.prescribe(self.visit, self.cinacalcet, dosage=30)
        question, options = self.question("Vitamin D dose", ["Increase", "Keep"], self.visit.situation_id)
        assign_recommendations(
            self.visit, [{"question_id": question.id, "selected_option_id": options[0].id}], self.doctor
        )

    def test_archives_and_removes_rows(self):
        result = delete_visit(self.visit.id, self.doctor, reason="Entered for wrong patient")

        self.assertEqual(
            result["deleted"],
            {"test_results": 7, "recommendations": 1, "medications": 1},
        )
        self.assertFalse(Visit.objects.using("default").filter(id=self.visit.id).exists())
        self.assertFalse(TestResult.objects.using("default").filter(visit_id=self.visit.id).exists())
        self.assertFalse(MedicationPrescription.objects.using("default").filter(visit_id=self.visit.id).exists())
        self.assertFalse(AssignedRecommendation.objects.using("default").filter(visit_id=self.visit.id).exists())

        archived = ArchivedVisit.objects.using("default").get(id=result["archive_id"])
        self.assertEqual(archived.visit_id, self.visit.id)
        self.assertEqual(archived.patient_id, self.patient.id)
        self.assertEqual(archived.deleted_by_id, self.doctor.id)
        self.assertEqual(archived.deletion_reason, "Entered for wrong patient")
        self.assertEqual(archived.report_data["notes"], "Routine")
        self.assertEqual(archived.report_data["situation_id"], 50)
        self.assertEqual(
            {row["test_type__code"]: row["value"] for row in archived.test_results}["PTH"],
            300,
        )
        self.assertEqual(archived.medications[0]["dosage"], 30)
        self.assertEqual(len(archived.recommendations), 1)

    def test_writes_audit_entry(self):
        result = delete_visit(self.visit.id, self.doctor)

        entry = AuditLog.objects.using("default").get(action="visit_deleted")
        self.assertEqual(entry.patient_id, self.patient.id)
        self.assertEqual(entry.meta["archive_id"], result["archive_id"])

    def test_missing_visit(self):
        with self.assertRaises(VisitNotFound):
            delete_visit(999999, self.doctor)
        self.assertFalse(ArchivedVisit.objects.using("default").exists())

    def test_previous_pth_skips_deleted_visit(self):
        self.record(days_ago=60, PTH=150)
        delete_visit(self.visit.id, self.doctor)

        self.assertEqual(self.record(days_ago=5).previous_pth, 150)


class DeleteVisitApiTest(ClinicalTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.visit = self.record().visit
        self.url = f"/api/clinical/visits/{self.visit.id}/"

    def test_doctor_deletes_own_visit(self):
        response = self.client_for(self.doctor).delete(
            self.url, {"deletion_reason": "Duplicate entry"}, format="json"
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["visit_id"], self.visit.id)
        self.assertEqual(response.data["deleted"]["test_results"], 7)
        archived = ArchivedVisit.objects.using("default").get(visit_id=self.visit.id)
        self.assertEqual(archived.deletion_reason, "Duplicate entry")
        self.assertEqual(self.client_for(self.doctor).get(self.url).status_code, 404)

    def test_nurse_cannot_delete(self):
        response = self.client_for(self.nurse).delete(self.url)

        self.assertEqual(response.status_code, 403)
        self.assertTrue(Visit.objects.using("default").filter(id=self.visit.id).exists())

    def test_other_doctor_gets_404(self):
        response = self.client_for(self.other_doctor).delete(self.url)

        self.assertEqual(response.status_code, 404)
        self.assertTrue(Visit.objects.using("default").filter(id=self.visit.id).exists())
