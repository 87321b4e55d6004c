"""
Clinical Services Module.

This package contains the service-layer logic of the clinical app:
- classification: Pure rule engine (group / bucket / situation code)
- situations: Situation catalog definitions and lookup
- repository: ORM-backed data access used by the engine
- matching: Nearest-match recommender for a starting prescription
- revision: Change detection and prescription invalidation cascade
- visits: Recording of new visits with their test results
- prescriptions: Saving and reading prescriptions of a visit
- validity: Test validity summary per patient
- recommendations: Situation-keyed treatment recommendations of a visit
- history: Patient visit history and lab-value trends
- archive: Visit deletion with an archived snapshot
"""

from renal_backend.clinical.services.classification import (
    ClassificationResult,
    TestValues,
    build_test_values,
    classify,
    corrected_calcium,
    situation_id_for,
)
from renal_backend.clinical.services.matching import (
    VisitMatch,
    find_closest_prior_visit,
    suggest_prescription,
)
from renal_backend.clinical.services.repository import ClinicalRepository, VisitCandidate
from renal_backend.clinical.services.revision import RevisionOutcome, revise_visit
from renal_backend.clinical.services.situations import resolve_situation, situation_catalog

__all__ = [
    # Classification
    "ClassificationResult",
    "TestValues",
    "build_test_values",
    "classify",
    "corrected_calcium",
    "situation_id_for",
    # Catalog
    "resolve_situation",
    "situation_catalog",
    # Data access
    "ClinicalRepository",
    "VisitCandidate",
    # Matching
    "VisitMatch",
    "find_closest_prior_visit",
    "suggest_prescription",
    # Revision
    "RevisionOutcome",
    "revise_visit",
]
