"""
Prescriptions of a visit.

Saving replaces the visit's *active* prescriptions; outdated prescriptions
are history and stay untouched.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Mapping

from django.db import transaction

from renal_backend.clinical.exceptions import InvalidInput
from renal_backend.clinical.models import MedicationPrescription, MedicationType, Visit
from renal_backend.clinical.services.repository import ClinicalRepository
from renal_backend.core.utils import log_patient_action

logger = logging.getLogger(__name__)


def _coerce_items(items: Iterable[Mapping]) -> dict[int, float]:
    dosages: dict[int, float] = {}
    for item in items:
        try:
            medication_type_id = int(item.get('medication_type_id'))
        except (TypeError, ValueError):
            raise InvalidInput('medication_type_id is required', field='medication_type_id')
        raw = item.get('dosage')
        try:
            dosage = float(raw)
        except (TypeError, ValueError):
            raise InvalidInput(f'Dosage for medication {medication_type_id} must be a number', field='dosage')
        if not math.isfinite(dosage) or dosage < 0:
            raise InvalidInput(
                f'Dosage for medication {medication_type_id} must be zero or positive',
                field='dosage',
            )
        if medication_type_id in dosages:
            raise InvalidInput(f'Medication {medication_type_id} listed twice', field='medication_type_id')
        dosages[medication_type_id] = dosage
    return dosages


def save_prescriptions(visit: Visit, items: Iterable[Mapping], user) -> list[MedicationPrescription]:
    """
    Replace the active prescriptions of a visit.

    Only items with a dosage > 0 are stored. Returns the new active
    prescriptions.

    Raises:
        InvalidInput: Unknown medication type, duplicate or negative dosage
    """
    dosages = _coerce_items(items)
    known = set(
        MedicationType.objects.using('default')
        .filter(id__in=list(dosages))
        .values_list('id', flat=True)
    )
    unknown = sorted(set(dosages) - known)
    if unknown:
        raise InvalidInput(
            f'Unknown medication types: {", ".join(str(i) for i in unknown)}',
            field='medication_type_id',
        )

    prescribed_by = user if getattr(user, 'is_authenticated', False) else None
    with transaction.atomic(using='default'):
        deleted, _ = MedicationPrescription.objects.using('default').filter(
            visit=visit,
            is_outdated=False,
        ).delete()
        created = MedicationPrescription.objects.using('default').bulk_create(
            [
                MedicationPrescription(
                    visit=visit,
                    medication_type_id=medication_type_id,
                    dosage=dosage,
                    prescribed_by=prescribed_by,
                )
                for medication_type_id, dosage in dosages.items()
                if dosage > 0
            ]
        )

    logger.info('Visit %s: %s active prescription(s) replaced by %s', visit.id, deleted, len(created))
    log_patient_action(
        user,
        'prescriptions_saved',
        patient_id=visit.patient_id,
        meta={'visit_id': visit.id, 'count': len(created)},
    )
    return ClinicalRepository().active_prescriptions(visit.id)


def previous_visit_prescriptions(visit: Visit) -> tuple[Visit | None, list[MedicationPrescription]]:
    """Active prescriptions of the patient's visit before ``visit``."""
    repository = ClinicalRepository()
    previous = repository.previous_visit(visit)
    if previous is None:
        return None, []
    return previous, repository.active_prescriptions(previous.id)
