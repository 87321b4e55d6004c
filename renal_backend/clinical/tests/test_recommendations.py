"""
Tests for situation-keyed treatment recommendations.

Tests cover:
- Templates per situation (options, default answer, ordering)
- Assigning recommendations to a visit (replace, clear, validation)
- API access per role
"""

from django.test import TestCase

from renal_backend.clinical.exceptions import InvalidInput
from renal_backend.clinical.models import AssignedRecommendation
from renal_backend.clinical.services.recommendations import (
    assign_recommendations,
    recommendations_for_situation,
)
from renal_backend.core.models import AuditLog

from .fixtures import ClinicalTestMixin

# BASE_VALUES classify as group 2 T17
SITUATION_ID = 50


class RecommendationsForSituationTest(ClinicalTestMixin, TestCase):
    def test_templates_with_options_and_default(self):
        dose, dose_options = self.question("Vitamin D dose", ["Increase", "Keep"], SITUATION_ID, default=1)
        binder, _ = self.question("Phosphate binder", ["Start", "Keep"], SITUATION_ID)

        rows = recommendations_for_situation(SITUATION_ID)

        self.assertEqual([row["question_id"] for row in rows], [dose.id, binder.id])
        self.assertEqual(rows[0]["question_text"], "Vitamin D dose")
        self.assertEqual(
            rows[0]["options"],
            [{"id": dose_options[0].id, "text": "Increase"}, {"id": dose_options[1].id, "text": "Keep"}],
        )
        self.assertEqual(rows[0]["default_option_id"], dose_options[1].id)
        self.assertEqual(rows[0]["default_option_text"], "Keep")
        self.assertIsNone(rows[1]["default_option_id"])
        self.assertIsNone(rows[1]["default_option_text"])

    def test_other_situation_has_no_templates(self):
        self.question("Vitamin D dose", ["Increase", "Keep"], SITUATION_ID)

        self.assertEqual(recommendations_for_situation(1), [])


class AssignRecommendationsTest(ClinicalTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.visit = self.record().visit
        self.dose, self.dose_options = self.question("Vitamin D dose", ["Increase", "Keep"], SITUATION_ID)
        self.binder, self.binder_options = self.question("Phosphate binder", ["Start", "Keep"], SITUATION_ID)

    def _assigned(self):
        return dict(
            AssignedRecommendation.objects.using("default")
            .filter(visit=self.visit)
            .values_list("question_id", "selected_option_id")
        )

    def test_assign_replaces_previous_set(self):
        assign_recommendations(
            self.visit,
            [
                {"question_id": self.dose.id, "selected_option_id": self.dose_options[0].id},
                {"question_id": self.binder.id, "selected_option_id": self.binder_options[1].id},
            ],
            self.doctor,
        )
        rows = assign_recommendations(
            self.visit,
            [{"question_id": self.dose.id, "selected_option_id": self.dose_options[1].id}],
            self.doctor,
        )

        self.assertEqual(self._assigned(), {self.dose.id: self.dose_options[1].id})
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].selected_option.text, "Keep")
        self.assertEqual(rows[0].assigned_by_id, self.doctor.id)

    def test_empty_list_clears(self):
        assign_recommendations(
            self.visit,
            [{"question_id": self.dose.id, "selected_option_id": self.dose_options[0].id}],
            self.doctor,
        )

        self.assertEqual(assign_recommendations(self.visit, [], self.doctor), [])
        self.assertEqual(self._assigned(), {})

    def test_option_of_other_question_is_rejected(self):
        assign_recommendations(
            self.visit,
            [{"question_id": self.dose.id, "selected_option_id": self.dose_options[0].id}],
            self.doctor,
        )

        with self.assertRaises(InvalidInput) as ctx:
            assign_recommendations(
                self.visit,
                [{"question_id": self.dose.id, "selected_option_id": self.binder_options[0].id}],
                self.doctor,
            )

        self.assertEqual(ctx.exception.field, "selected_option_id")
        self.assertEqual(self._assigned(), {self.dose.id: self.dose_options[0].id})

    def test_missing_ids_are_rejected(self):
        with self.assertRaises(InvalidInput):
            assign_recommendations(self.visit, [{"question_id": self.dose.id}], self.doctor)

    def test_duplicate_question_is_rejected(self):
        with self.assertRaises(InvalidInput) as ctx:
            assign_recommendations(
                self.visit,
                [
                    {"question_id": self.dose.id, "selected_option_id": self.dose_options[0].id},
                    {"question_id": self.dose.id, "selected_option_id": self.dose_options[1].id},
                ],
                self.doctor,
            )
        self.assertEqual(ctx.exception.field, "question_id")
        self.assertEqual(self._assigned(), {})

    def test_writes_audit_entry(self):
        assign_recommendations(
            self.visit,
            [{"question_id": self.dose.id, "selected_option_id": self.dose_options[0].id}],
            self.doctor,
        )

        entry = AuditLog.objects.using("default").get(action="recommendations_assigned")
        self.assertEqual(entry.patient_id, self.patient.id)
        self.assertEqual(entry.meta, {"visit_id": self.visit.id, "count": 1})


class RecommendationApiTest(ClinicalTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.visit = self.record().visit
        self.dose, self.dose_options = self.question("Vitamin D dose", ["Increase", "Keep"], SITUATION_ID, default=1)
        self.url = f"/api/clinical/visits/{self.visit.id}/recommendations/"

    def test_situation_templates(self):
        response = self.client_for(self.nurse).get(f"/api/clinical/situations/{SITUATION_ID}/recommendations/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["situation"]["code"], "T17")
        self.assertEqual(len(response.data["recommendations"]), 1)
        self.assertEqual(response.data["recommendations"][0]["default_option_text"], "Keep")

    def test_unknown_situation_returns_404(self):
        response = self.client_for(self.doctor).get("/api/clinical/situations/999/recommendations/")
        self.assertEqual(response.status_code, 404)

    def test_assign_and_list(self):
        client = self.client_for(self.doctor)
        response = client.post(
            self.url,
            {"recommendations": [{"question_id": self.dose.id, "selected_option_id": self.dose_options[0].id}]},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["situation_id"], SITUATION_ID)
        self.assertEqual(response.data["recommendations"][0]["selected_option_text"], "Increase")

        listing = self.client_for(self.nurse).get(self.url)
        self.assertEqual(listing.status_code, 200)
        self.assertEqual(len(listing.data["recommendations"]), 1)
        self.assertEqual(listing.data["recommendations"][0]["question_text"], "Vitamin D dose")

    def test_invalid_option_returns_400(self):
        response = self.client_for(self.doctor).post(
            self.url,
            {"recommendations": [{"question_id": self.dose.id, "selected_option_id": 99999}]},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "invalid_input")

    def test_nurse_cannot_assign(self):
        response = self.client_for(self.nurse).post(self.url, {"recommendations": []}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_other_doctor_gets_404(self):
        response = self.client_for(self.other_doctor).get(self.url)
        self.assertEqual(response.status_code, 404)
