"""
Visit recording.

Creates a visit with its test results, classifies it and assigns the
resolved situation. Used for the first visit of a new patient as well as for
follow-up visits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping

from django.db import transaction
from django.utils import timezone

from renal_backend.clinical.exceptions import InvalidInput
from renal_backend.clinical.models import TestResult, TestType, Visit
from renal_backend.clinical.services.classification import (
    CORRECTED_CALCIUM,
    ENGINE_CODES,
    ClassificationResult,
    build_test_values,
    classify,
    coerce_number,
)
from renal_backend.clinical.services.repository import ClinicalRepository
from renal_backend.clinical.services.situations import resolve_situation
from renal_backend.core.utils import log_patient_action

logger = logging.getLogger(__name__)

REQUIRED_CODES = tuple(code for code in ENGINE_CODES if code != CORRECTED_CALCIUM)


@dataclass
class RecordedVisit:
    visit: Visit
    classification: ClassificationResult
    previous_pth: float | None
    corrected_calcium: float


def _validate_codes(test_values: Mapping[str, object], known_codes: set[str]) -> dict[str, object]:
    submitted = {code: value for code, value in test_values.items() if value not in (None, '')}
    if CORRECTED_CALCIUM in submitted:
        raise InvalidInput(
            'CaCorrected is calculated from Ca and Albumin and cannot be submitted',
            field=CORRECTED_CALCIUM,
        )
    unknown = sorted(set(submitted) - known_codes)
    if unknown:
        raise InvalidInput(f'Unknown test codes: {", ".join(unknown)}', field='test_values')
    for code in REQUIRED_CODES:
        if code not in submitted:
            raise InvalidInput(f'{code} is required', field=code)
    return submitted


def record_visit(
    patient,
    test_values: Mapping[str, object],
    user,
    *,
    notes: str = '',
    report_date: datetime | None = None,
    repository: ClinicalRepository | None = None,
) -> RecordedVisit:
    """
    Record a visit with its lab values.

    Args:
        patient: Patient instance
        test_values: Mapping test code -> value (CaCorrected is derived)
        user: Acting user (doctor of the visit, entered_by of the results)
        notes: Free text
        report_date: Date of the lab report (defaults to now)

    Raises:
        InvalidInput: Unknown code, missing or non-numeric value
        CatalogResolutionError: No situation row for the classification
            (nothing is written)
    """
    repository = repository or ClinicalRepository()
    report_date = report_date or timezone.now()

    types = {t.code: t for t in TestType.objects.using('default').all()}
    if CORRECTED_CALCIUM not in types:
        raise InvalidInput('Test type CaCorrected is not configured', field=CORRECTED_CALCIUM)
    submitted = _validate_codes(test_values, set(types) - {CORRECTED_CALCIUM})
    rows: dict[str, float] = {code: coerce_number(submitted, code) for code in submitted}

    previous_pth = repository.latest_pth_before(patient_id=patient.id, before=report_date)
    values = build_test_values(rows, previous_pth=previous_pth)
    classification = classify(values)
    situation = resolve_situation(classification, repository)

    rows[CORRECTED_CALCIUM] = values.corrected_calcium

    entered_by = user if getattr(user, 'is_authenticated', False) else None
    with transaction.atomic(using='default'):
        visit = Visit.objects.using('default').create(
            patient=patient,
            doctor=entered_by,
            report_date=report_date,
            notes=notes or '',
            situation=situation,
        )
        TestResult.objects.using('default').bulk_create(
            [
                TestResult(
                    visit=visit,
                    test_type=types[code],
                    value=value,
                    test_date=report_date,
                    entered_by=entered_by,
                )
                for code, value in rows.items()
            ]
        )

    logger.info(
        'Visit %s recorded for patient %s: group=%s bucket=%s situation=%s',
        visit.id,
        patient.id,
        classification.group,
        classification.bucket,
        classification.situation_code,
    )
    log_patient_action(
        user,
        'visit_recorded',
        patient_id=patient.id,
        meta={
            'visit_id': visit.id,
            'situation_id': situation.id,
            'situation_code': classification.situation_code,
            'group': classification.group,
            'bucket': classification.bucket,
        },
    )
    return RecordedVisit(
        visit=visit,
        classification=classification,
        previous_pth=previous_pth,
        corrected_calcium=values.corrected_calcium,
    )
