"""
Change-Detection & Invalidation Cascade.

Entry point: ``revise_visit()``. Applies edited test values to an existing
visit, recomputes corrected calcium and the classification, reassigns the
visit's situation and outdates the visit's active prescriptions when the
clinical picture changed materially.

Architecture Rules:
- Validation (InvalidInput, NotLinkedError) happens before any write
- All writes run in one transaction; UpdateFailed rolls back the revision
- A CatalogResolutionError keeps the test-value edits but skips the
  situation update and the invalidation
- A situation code change inside the same group and bucket is recorded but
  never outdates prescriptions on its own
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Mapping

from django.db import transaction
from django.utils import timezone

from renal_backend.clinical.exceptions import (
    CatalogResolutionError,
    InvalidInput,
    NotLinkedError,
)
from renal_backend.clinical.services.classification import (
    ALBUMIN,
    CALCIUM,
    CORRECTED_CALCIUM,
    ECHO,
    LATERAL_RADIOGRAPHY,
    PHOSPHATE,
    PTH,
    build_test_values,
    classify,
    corrected_calcium,
)
from renal_backend.clinical.services.repository import ClinicalRepository
from renal_backend.clinical.services.situations import resolve_situation
from renal_backend.core.utils import log_patient_action

if TYPE_CHECKING:
    from renal_backend.clinical.models import Situation

logger = logging.getLogger(__name__)

CRITICAL_CODES = frozenset({PTH, CALCIUM, CORRECTED_CALCIUM, PHOSPHATE, ECHO, LATERAL_RADIOGRAPHY})
CRITICAL_CHANGE_THRESHOLD = 5.0

MESSAGE_OUTDATED = (
    'Test values changed significantly. Previous medication prescriptions have been '
    'marked as outdated and require review.'
)
MESSAGE_STILL_VALID = 'Test values updated. Existing medications remain valid (no significant changes).'
MESSAGE_SUCCESS = 'Test values updated successfully.'


@dataclass(frozen=True)
class SituationRef:
    id: int
    group: int
    bucket: int
    code: str
    description: str

    @classmethod
    def from_model(cls, situation: 'Situation | None') -> 'SituationRef | None':
        if situation is None:
            return None
        return cls(
            id=situation.id,
            group=situation.group,
            bucket=situation.bucket,
            code=situation.code,
            description=situation.description,
        )


@dataclass
class RevisionOutcome:
    visit_id: int
    updated_test_ids: list[int] = field(default_factory=list)
    corrected_calcium_recalculated: bool = False
    classification_changed: bool = False
    significant_classification_change: bool = False
    old_situation: SituationRef | None = None
    new_situation: SituationRef | None = None
    critical_changes: list[str] = field(default_factory=list)
    classification_changes: list[str] = field(default_factory=list)
    had_active_prescriptions: bool = False
    medications_outdated_count: int = 0
    outdated_reason: str = ''
    catalog_warning: str | None = None
    warning_message: str = ''

    @property
    def requires_review(self) -> bool:
        return self.medications_outdated_count > 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data['requires_review'] = self.requires_review
        return data


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def percent_change(old: float, new: float) -> float:
    """Relative change in percent. ``old == 0`` counts as a full (100 %) change."""
    if new == old:
        return 0.0
    if old == 0:
        return 100.0
    return abs(new - old) / abs(old) * 100


def _fmt(value: float) -> str:
    return f'{value:g}'


def _coerce_edits(edits: Mapping) -> dict[int, float]:
    staged: dict[int, float] = {}
    for raw_id, raw_value in edits.items():
        try:
            test_result_id = int(raw_id)
        except (TypeError, ValueError):
            raise InvalidInput(f'Invalid test result id: {raw_id!r}', field='test_results')
        if raw_value is None or isinstance(raw_value, bool):
            raise InvalidInput(f'Test result {test_result_id} needs a numeric value', field='test_results')
        try:
            value = float(raw_value)
        except (TypeError, ValueError):
            raise InvalidInput(f'Test result {test_result_id} needs a numeric value', field='test_results')
        if not math.isfinite(value):
            raise InvalidInput(f'Test result {test_result_id} needs a finite value', field='test_results')
        staged[test_result_id] = value
    return staged


def _describe_classification_change(old: SituationRef, new: SituationRef) -> list[str]:
    changes: list[str] = []
    if old.group != new.group:
        changes.append(f'Group: {old.group} → {new.group}')
    if old.bucket != new.bucket:
        changes.append(f'Bucket: {old.bucket} → {new.bucket}')
    if old.code != new.code:
        changes.append(f'Situation: {old.code} → {new.code}')
    return changes


def _warning_message(outcome: RevisionOutcome) -> str:
    if outcome.catalog_warning:
        return (
            'Test values updated, but the clinical situation could not be resolved '
            f'({outcome.catalog_warning}). Classification and medications were not '
            'updated; check the situation catalog.'
        )
    if outcome.medications_outdated_count:
        changes = outcome.critical_changes + outcome.classification_changes
        return (
            f'{MESSAGE_OUTDATED} Changes: {", ".join(changes)}. '
            f'Outdated prescriptions: {outcome.medications_outdated_count}.'
        )
    if outcome.had_active_prescriptions:
        return MESSAGE_STILL_VALID
    return MESSAGE_SUCCESS


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def revise_visit(
    visit_id: int,
    edits: Mapping,
    user,
    *,
    repository: ClinicalRepository | None = None,
    now: datetime | None = None,
) -> RevisionOutcome:
    """
    Revise the test values of a visit and cascade the consequences.

    Args:
        visit_id: Visit to revise
        edits: Mapping test_result_id -> new value
        user: Acting user (stored as last_modified_by / outdated_by)
        repository: Data access, defaults to the ORM repository
        now: Timestamp for all writes (defaults to timezone.now())

    Returns:
        RevisionOutcome

    Raises:
        VisitNotFound: Unknown visit
        InvalidInput: Non-numeric value, edit of CaCorrected, incomplete visit
        NotLinkedError: An edited test result belongs to another visit
        UpdateFailed: A write did not complete (nothing is kept)
    """
    repository = repository or ClinicalRepository()
    staged = _coerce_edits(edits)
    when = now or timezone.now()

    with transaction.atomic(using=repository.using):
        visit = repository.get_visit(visit_id, for_update=True)
        outcome = RevisionOutcome(visit_id=visit.id)

        linked = repository.test_results_for_visit(visit.id)
        by_id = {r.id: r for r in linked}

        # 1. Every edit must target a test result of this visit
        for test_result_id in staged:
            result = by_id.get(test_result_id)
            if result is None:
                raise NotLinkedError(test_result_id=test_result_id, visit_id=visit.id)
            if result.code == CORRECTED_CALCIUM:
                raise InvalidInput(
                    'CaCorrected is calculated from Ca and Albumin and cannot be edited',
                    field=CORRECTED_CALCIUM,
                )

        # 2. Snapshot with edits applied
        snapshot = {r.code: r.value for r in linked}
        writes: dict[int, float] = {}
        for test_result_id, value in staged.items():
            result = by_id[test_result_id]
            snapshot[result.code] = value
            writes[test_result_id] = value

            pct = percent_change(result.value, value)
            if result.code in CRITICAL_CODES and pct > CRITICAL_CHANGE_THRESHOLD:
                outcome.critical_changes.append(
                    f'{result.code}: {_fmt(result.value)} → {_fmt(value)} ({pct:.1f}% change)'
                )

        # 3. Corrected calcium follows Ca / Albumin
        edited_codes = {by_id[t].code for t in staged}
        if edited_codes & {CALCIUM, ALBUMIN}:
            cc_row = next((r for r in linked if r.code == CORRECTED_CALCIUM), None)
            if cc_row is not None and CALCIUM in snapshot and ALBUMIN in snapshot:
                new_cc = corrected_calcium(snapshot[CALCIUM], snapshot[ALBUMIN])
                snapshot[CORRECTED_CALCIUM] = new_cc
                writes[cc_row.id] = new_cc
                outcome.corrected_calcium_recalculated = True

                pct = percent_change(cc_row.value, new_cc)
                if pct > CRITICAL_CHANGE_THRESHOLD:
                    outcome.critical_changes.append(
                        f'CaCorrected: {cc_row.value:.2f} → {new_cc:.2f} (auto-calculated, {pct:.1f}% change)'
                    )

        # 4. Reclassify against the previous visit's PTH
        previous_pth = repository.latest_pth_before(
            patient_id=visit.patient_id,
            before=visit.report_date,
            visit_id=visit.id,
        )
        classification = classify(build_test_values(snapshot, previous_pth=previous_pth))

        new_situation = None
        try:
            new_situation = resolve_situation(classification, repository)
        except CatalogResolutionError as exc:
            logger.warning('Visit %s: situation not resolved, keeping value edits only (%s)', visit.id, exc)
            outcome.catalog_warning = str(exc)

        # 5. Persist test values
        for test_result_id, value in writes.items():
            repository.update_test_result(test_result_id=test_result_id, value=value, user=user, when=when)
            outcome.updated_test_ids.append(test_result_id)

        outcome.old_situation = SituationRef.from_model(visit.situation)
        active = repository.active_prescriptions(visit.id)
        outcome.had_active_prescriptions = bool(active)

        if new_situation is not None:
            outcome.new_situation = SituationRef.from_model(new_situation)
            old = outcome.old_situation
            new = outcome.new_situation

            # 6. Situation reassignment
            if old is None or old.id != new.id:
                outcome.classification_changed = True
                repository.update_visit_situation(visit_id=visit.id, situation_id=new.id)
            if old is not None and outcome.classification_changed:
                outcome.classification_changes = _describe_classification_change(old, new)
                outcome.significant_classification_change = (
                    old.group != new.group or old.bucket != new.bucket
                )

            # 7. Invalidation
            if active and (outcome.critical_changes or outcome.significant_classification_change):
                reason = 'Test values updated: ' + ', '.join(
                    outcome.critical_changes + outcome.classification_changes
                )
                outcome.outdated_reason = reason
                outcome.medications_outdated_count = repository.outdate_active_prescriptions(
                    visit_id=visit.id,
                    reason=reason,
                    user=user,
                    when=when,
                )
                logger.info(
                    'Visit %s: %s prescription(s) outdated (%s)',
                    visit.id,
                    outcome.medications_outdated_count,
                    reason,
                )

        # 8. Visit metadata
        repository.touch_visit(visit_id=visit.id, user=user, when=when)

    outcome.warning_message = _warning_message(outcome)

    if outcome.critical_changes:
        logger.info('Visit %s critical changes: %s', visit.id, '; '.join(outcome.critical_changes))

    log_patient_action(
        user,
        'visit_revised',
        patient_id=visit.patient_id,
        meta={
            'visit_id': visit.id,
            'updated_test_ids': outcome.updated_test_ids,
            'classification_changed': outcome.classification_changed,
            'medications_outdated_count': outcome.medications_outdated_count,
            'catalog_warning': outcome.catalog_warning,
        },
    )
    return outcome
