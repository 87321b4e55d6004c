"""
Nearest-match recommender.

Finds the historical visit (with a medication prescription) whose lab
picture is closest to the given values, so its prescription can serve as a
starting point. Priority: group, then bucket, then corrected calcium and
phosphate distance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from renal_backend.clinical.services.classification import TestValues, classify
from renal_backend.clinical.services.repository import VisitCandidate

if TYPE_CHECKING:
    from renal_backend.clinical.services.repository import ClinicalRepository

logger = logging.getLogger(__name__)

GROUP_MISMATCH_PENALTY = 1000
BUCKET_MISMATCH_PENALTY = 100


@dataclass(frozen=True)
class VisitMatch:
    visit_id: int
    score: float


def score_candidate(candidate: VisitCandidate, *, group: int, bucket: int, values: TestValues) -> float:
    score = 0.0
    if candidate.group != group:
        score += GROUP_MISMATCH_PENALTY
    if candidate.bucket != bucket:
        score += BUCKET_MISMATCH_PENALTY
    score += abs(candidate.corrected_calcium - values.corrected_calcium)
    score += abs(candidate.phosphate - values.phosphate)
    return score


def find_closest_prior_visit(values: TestValues, candidates: Iterable[VisitCandidate]) -> VisitMatch | None:
    """Return the lowest scoring candidate, or None.

    Candidates without corrected calcium or phosphate are skipped. On a tie
    the first candidate in input order wins.
    """
    classification = classify(values)
    best: VisitMatch | None = None

    for candidate in candidates:
        if candidate.corrected_calcium is None or candidate.phosphate is None:
            logger.debug('Skipping visit %s: missing CaCorrected or Phos', candidate.visit_id)
            continue
        score = score_candidate(
            candidate,
            group=classification.group,
            bucket=classification.bucket,
            values=values,
        )
        if best is None or score < best.score:
            best = VisitMatch(visit_id=candidate.visit_id, score=score)

    return best


def suggest_prescription(values: TestValues, repository: 'ClinicalRepository') -> dict:
    """Pre-fill a prescription from the closest historical visit.

    Every medication type is listed; dosages come from the matched visit's
    active prescriptions (0 when it has none for that type, or when nothing
    matched).
    """
    match = find_closest_prior_visit(values, repository.visits_with_medication())

    dosages: dict[int, float] = {}
    matched_values: dict[str, float] = {}
    if match is not None:
        for prescription in repository.active_prescriptions(match.visit_id):
            dosages[prescription.medication_type_id] = prescription.dosage
        matched_values = {r.code: r.value for r in repository.test_results_for_visit(match.visit_id)}
        logger.info('Closest visit %s (score %.3f)', match.visit_id, match.score)
    else:
        logger.info('No prior visit with medication found')

    medications = [
        {
            'medication_type_id': med.id,
            'name': med.name,
            'unit': med.unit,
            'group_name': med.group_name,
            'dosage': dosages.get(med.id, 0),
        }
        for med in repository.medication_types()
    ]
    return {
        'matched_visit_id': match.visit_id if match else None,
        'score': match.score if match else None,
        'matched_test_values': matched_values,
        'medications': medications,
    }
