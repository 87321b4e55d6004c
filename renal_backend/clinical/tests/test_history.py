"""
Tests for the patient history and lab-value trends.

Tests cover:
- Visit history ordering and content
- Trend values per visit (same-day result, carried-forward result, expired)
- API access per role
"""

from django.test import TestCase

from renal_backend.clinical.models import MedicationPrescription, TestResult
from renal_backend.clinical.services.history import patient_history, patient_trends
from renal_backend.clinical.services.recommendations import assign_recommendations

from .fixtures import ClinicalTestMixin


class PatientHistoryTest(ClinicalTestMixin, TestCase):
    def test_visits_newest_first_with_details(self):
        older = self.record(days_ago=60, PTH=150).visit
        newer = self.record(days_ago=10).visit
        outdated = self.prescribe(newer, self.cinacalcet, dosage=30)
        MedicationPrescription.objects.using("default").filter(id=outdated.id).update(is_outdated=True)
        self.prescribe(newer)
        question, options = self.question("Vitamin D dose", ["Increase", "Keep"], newer.situation_id)
        assign_recommendations(
            newer, [{"question_id": question.id, "selected_option_id": options[1].id}], self.doctor
        )

        history = patient_history(self.patient)

        self.assertEqual(history["patient_id"], self.patient.id)
        self.assertEqual([v["id"] for v in history["visits"]], [newer.id, older.id])
        latest = history["visits"][0]
        self.assertEqual(latest["situation"]["code"], "T17")
        self.assertEqual(latest["situation"]["bucket"], 2)
        self.assertEqual(
            [r["code"] for r in latest["test_results"]],
            ["PTH", "Ca", "Albumin", "CaCorrected", "Phos", "Echo", "LARad"],
        )
        self.assertEqual(
            latest["recommendations"],
            [
                {
                    "question_id": question.id,
                    "question_text": "Vitamin D dose",
                    "selected_option_id": options[1].id,
                    "selected_option_text": "Keep",
                }
            ],
        )
        self.assertEqual([p["is_outdated"] for p in latest["prescriptions"]], [False, True])
        self.assertEqual(history["visits"][1]["prescriptions"], [])

    def test_patient_without_visits(self):
        self.assertEqual(patient_history(self.patient)["visits"], [])


class PatientTrendsTest(ClinicalTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.first = self.record(days_ago=90, PTH=150, Echo=1).visit
        self.second = self.record(days_ago=10, PTH=300, Echo=1).visit

    def _drop(self, visit, code):
        TestResult.objects.using("default").filter(visit=visit, test_type__code=code).delete()

    def test_timeline_oldest_first(self):
        trends = patient_trends(self.patient)

        self.assertEqual(trends["total_visits"], 2)
        self.assertEqual([p["visit_id"] for p in trends["timeline"]], [self.first.id, self.second.id])
        self.assertEqual([p["visit_number"] for p in trends["timeline"]], [1, 2])
        self.assertEqual(trends["timeline"][0]["situation"]["group"], 1)
        self.assertEqual(list(trends["trends"]), ["PTH", "Ca", "Albumin", "CaCorrected", "Phos", "Echo", "LARad"])

    def test_same_day_result_is_current(self):
        pth = patient_trends(self.patient)["trends"]["PTH"]

        self.assertEqual(pth["metadata"]["validity_months"], 3)
        self.assertEqual([p["value"] for p in pth["visit_data"]], [150, 300])
        self.assertTrue(all(p["is_current_test"] for p in pth["visit_data"]))
        self.assertEqual(pth["visit_data"][1]["days_since_test"], 0)
        self.assertEqual(len(pth["all_results"]), 2)

    def test_result_carried_forward_within_validity(self):
        self._drop(self.second, "PTH")

        point = patient_trends(self.patient)["trends"]["PTH"]["visit_data"][1]

        # 80 days apart, PTH stays valid for 90 days
        self.assertEqual(point["value"], 150)
        self.assertFalse(point["is_current_test"])
        self.assertEqual(point["days_since_test"], 80)
        self.assertEqual(point["test_id"], self.result_id(self.first, "PTH"))

    def test_expired_result_is_not_carried(self):
        self._drop(self.second, "Phos")

        point = patient_trends(self.patient)["trends"]["Phos"]["visit_data"][1]

        self.assertIsNone(point["value"])
        self.assertIsNone(point["test_id"])
        self.assertFalse(point["is_current_test"])

    def test_later_results_do_not_count(self):
        self._drop(self.first, "Ca")

        point = patient_trends(self.patient)["trends"]["Ca"]["visit_data"][0]

        self.assertIsNone(point["value"])


class PatientHistoryApiTest(ClinicalTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.visit = self.record().visit

    def test_history_and_trends_for_nurse(self):
        client = self.client_for(self.nurse)

        history = client.get(f"/api/patients/{self.patient.id}/history/")
        self.assertEqual(history.status_code, 200)
        self.assertEqual(history.data["visits"][0]["id"], self.visit.id)

        trends = client.get(f"/api/patients/{self.patient.id}/trends/")
        self.assertEqual(trends.status_code, 200)
        self.assertEqual(trends.data["total_visits"], 1)

    def test_other_doctor_gets_404(self):
        client = self.client_for(self.other_doctor)

        self.assertEqual(client.get(f"/api/patients/{self.patient.id}/history/").status_code, 404)
        self.assertEqual(client.get(f"/api/patients/{self.patient.id}/trends/").status_code, 404)
