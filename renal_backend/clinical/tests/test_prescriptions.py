"""
Tests for saving prescriptions and the previous-visit lookup.
"""

from django.test import TestCase

from renal_backend.clinical.exceptions import InvalidInput
from renal_backend.clinical.models import MedicationPrescription
from renal_backend.clinical.services.prescriptions import (
    previous_visit_prescriptions,
    save_prescriptions,
)

from .fixtures import ClinicalTestMixin


class SavePrescriptionsTest(ClinicalTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.visit = self.record().visit

    def test_replaces_active_and_skips_zero_dosage(self):
        self.prescribe(self.visit, self.calcitriol, dosage=0.25)

        active = save_prescriptions(
            self.visit,
            [
                {"medication_type_id": self.calcitriol.id, "dosage": 0},
                {"medication_type_id": self.cinacalcet.id, "dosage": "30"},
            ],
            self.doctor,
        )

        self.assertEqual([(p.medication_type_id, p.dosage) for p in active], [(self.cinacalcet.id, 30.0)])
        self.assertEqual(active[0].prescribed_by_id, self.doctor.id)
        self.assertEqual(
            MedicationPrescription.objects.using("default").filter(visit=self.visit).count(),
            1,
        )

    def test_outdated_history_is_kept(self):
        old = self.prescribe(self.visit, self.calcitriol, dosage=0.25)
        old.is_outdated = True
        old.save()

        save_prescriptions(self.visit, [{"medication_type_id": self.calcitriol.id, "dosage": 0.5}], self.doctor)

        rows = MedicationPrescription.objects.using("default").filter(visit=self.visit)
        self.assertEqual(rows.filter(is_outdated=True).count(), 1)
        self.assertEqual(rows.filter(is_outdated=False).count(), 1)

    def test_empty_list_clears_active(self):
        self.prescribe(self.visit)

        self.assertEqual(save_prescriptions(self.visit, [], self.doctor), [])
        self.assertFalse(MedicationPrescription.objects.using("default").filter(visit=self.visit).exists())

    def test_negative_dosage_rejected(self):
        existing = self.prescribe(self.visit)

        with self.assertRaises(InvalidInput):
            save_prescriptions(self.visit, [{"medication_type_id": self.calcitriol.id, "dosage": -1}], self.doctor)

        self.assertTrue(MedicationPrescription.objects.using("default").filter(id=existing.id).exists())

    def test_unknown_medication_type_rejected(self):
        with self.assertRaises(InvalidInput) as ctx:
            save_prescriptions(self.visit, [{"medication_type_id": 999999, "dosage": 1}], self.doctor)
        self.assertEqual(ctx.exception.field, "medication_type_id")

    def test_duplicate_medication_type_rejected(self):
        items = [
            {"medication_type_id": self.calcitriol.id, "dosage": 0.25},
            {"medication_type_id": self.calcitriol.id, "dosage": 0.5},
        ]
        with self.assertRaises(InvalidInput):
            save_prescriptions(self.visit, items, self.doctor)

    def test_non_numeric_dosage_rejected(self):
        with self.assertRaises(InvalidInput) as ctx:
            save_prescriptions(self.visit, [{"medication_type_id": self.calcitriol.id, "dosage": "a lot"}], self.doctor)
        self.assertEqual(ctx.exception.field, "dosage")


class PreviousVisitPrescriptionsTest(ClinicalTestMixin, TestCase):
    def test_returns_active_prescriptions_of_earlier_visit(self):
        earlier = self.record(days_ago=60).visit
        kept = self.prescribe(earlier, self.cinacalcet, dosage=30)
        outdated = self.prescribe(earlier, self.calcitriol)
        outdated.is_outdated = True
        outdated.save()
        current = self.record(days_ago=10).visit

        previous, prescriptions = previous_visit_prescriptions(current)

        self.assertEqual(previous.id, earlier.id)
        self.assertEqual([p.id for p in prescriptions], [kept.id])

    def test_first_visit_has_no_previous(self):
        visit = self.record().visit

        self.assertEqual(previous_visit_prescriptions(visit), (None, []))
