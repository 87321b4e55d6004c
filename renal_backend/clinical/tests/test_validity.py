"""
Tests for the per-patient test validity overview.
"""

from django.test import TestCase
from django.utils import timezone

from renal_backend.clinical.services import validity
from renal_backend.patients.models import Patient

from .fixtures import ClinicalTestMixin


class TestValidityTest(ClinicalTestMixin, TestCase):
    def test_no_results_all_expired(self):
        overview = validity.test_validity(self.patient)

        self.assertEqual(overview["summary"]["total_tests"], 7)
        self.assertEqual(overview["summary"]["valid_tests"], 0)
        self.assertIsNone(overview["tests"]["PTH"]["last_result"])
        self.assertIsNone(overview["tests"]["PTH"]["days_since_test"])

    def test_window_depends_on_validity_months(self):
        self.record(days_ago=90)

        overview = validity.test_validity(self.patient, now=timezone.now())
        tests = overview["tests"]

        self.assertEqual(tests["PTH"]["validity_days"], 90)
        self.assertEqual(tests["PTH"]["days_since_test"], 90)
        self.assertEqual(tests["PTH"]["status"], "valid")
        self.assertEqual(tests["Ca"]["status"], "expired")
        self.assertEqual(tests["Echo"]["validity_days"], 360)
        self.assertEqual(tests["Echo"]["status"], "valid")
        self.assertEqual(overview["summary"], {"total_tests": 7, "valid_tests": 3, "expired_tests": 4})

    def test_latest_result_is_used(self):
        self.record(days_ago=200, PTH=150)
        recent = self.record(days_ago=5, PTH=320).visit

        pth = validity.test_validity(self.patient)["tests"]["PTH"]

        self.assertEqual(pth["last_result"]["value"], 320)
        self.assertEqual(pth["last_result"]["visit_id"], recent.id)
        self.assertEqual(pth["status"], "valid")

    def test_other_patients_results_ignored(self):
        self.record(days_ago=5)
        other = Patient.objects.using("default").create(
            name="Jonas Berg", age=58, gender="male", national_id="CLIN-3", doctor=self.doctor
        )

        overview = validity.test_validity(other)

        self.assertEqual(overview["patient_id"], other.id)
        self.assertEqual(overview["summary"]["valid_tests"], 0)
