"""
ORM-backed data access for the clinical engine.

The engine functions (matching, revision) take a repository object instead of
querying the ORM themselves, so tests can pass a stub and the queries stay in
one place. All access uses the ``default`` database alias.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from django.db import DatabaseError
from django.db.models import Q
from django.utils import timezone

from renal_backend.clinical.exceptions import UpdateFailed, VisitNotFound
from renal_backend.clinical.models import (
    MedicationPrescription,
    MedicationType,
    Situation,
    TestResult,
    Visit,
)
from renal_backend.clinical.services.classification import CORRECTED_CALCIUM, PHOSPHATE, PTH

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VisitCandidate:
    """A historical visit considered by the nearest-match recommender."""
    visit_id: int
    group: int | None
    bucket: int | None
    corrected_calcium: float | None
    phosphate: float | None


@dataclass(frozen=True)
class LinkedTestResult:
    id: int
    code: str
    value: float


class ClinicalRepository:
    """Reads and writes used by the clinical services."""

    using = 'default'

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_visit(self, visit_id: int, *, for_update: bool = False) -> Visit:
        qs = Visit.objects.using(self.using).select_related('situation', 'patient')
        if for_update:
            qs = qs.select_for_update(of=('self',))
        visit = qs.filter(id=visit_id).first()
        if visit is None:
            raise VisitNotFound(visit_id)
        return visit

    def test_results_for_visit(self, visit_id: int) -> list[LinkedTestResult]:
        rows = (
            TestResult.objects.using(self.using)
            .filter(visit_id=visit_id)
            .select_related('test_type')
            .order_by('id')
        )
        return [LinkedTestResult(id=r.id, code=r.test_type.code, value=r.value) for r in rows]

    def latest_pth_before(
        self,
        *,
        patient_id: int,
        before: datetime,
        visit_id: int | None = None,
    ) -> float | None:
        """PTH of the patient's most recent visit preceding a visit.

        Visits on the same report date precede the visit when their id is
        lower. Without ``visit_id`` (visit not stored yet) every visit on that
        date precedes it.
        """
        same_day = Q(visit__report_date=before)
        if visit_id is not None:
            same_day &= Q(visit_id__lt=visit_id)
        qs = TestResult.objects.using(self.using).filter(
            Q(visit__report_date__lt=before) | same_day,
            visit__patient_id=patient_id,
            test_type__code=PTH,
        )
        row = qs.order_by('-visit__report_date', '-visit_id').values_list('value', flat=True).first()
        return row

    def visits_with_medication(self) -> list[VisitCandidate]:
        visits = (
            Visit.objects.using(self.using)
            .filter(prescriptions__isnull=False)
            .distinct()
            .select_related('situation')
            .order_by('id')
        )
        visit_list = list(visits)
        values: dict[int, dict[str, float]] = {}
        results = TestResult.objects.using(self.using).filter(
            visit_id__in=[v.id for v in visit_list],
            test_type__code__in=(CORRECTED_CALCIUM, PHOSPHATE),
        ).values_list('visit_id', 'test_type__code', 'value')
        for visit_id, code, value in results:
            values.setdefault(visit_id, {})[code] = value

        candidates: list[VisitCandidate] = []
        for visit in visit_list:
            situation = visit.situation
            own = values.get(visit.id, {})
            candidates.append(
                VisitCandidate(
                    visit_id=visit.id,
                    group=situation.group if situation else None,
                    bucket=situation.bucket if situation else None,
                    corrected_calcium=own.get(CORRECTED_CALCIUM),
                    phosphate=own.get(PHOSPHATE),
                )
            )
        return candidates

    def find_situation(self, *, group: int, code: str) -> Situation | None:
        return Situation.objects.using(self.using).filter(group=group, code=code).first()

    def active_prescriptions(self, visit_id: int) -> list[MedicationPrescription]:
        return list(
            MedicationPrescription.objects.using(self.using)
            .filter(visit_id=visit_id, is_outdated=False)
            .select_related('medication_type')
            .order_by('medication_type_id', 'id')
        )

    def medication_types(self) -> list[MedicationType]:
        return list(MedicationType.objects.using(self.using).order_by('id'))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def update_test_result(self, *, test_result_id: int, value: float, user, when: datetime) -> None:
        try:
            updated = TestResult.objects.using(self.using).filter(id=test_result_id).update(
                value=value,
                last_modified=when,
                last_modified_by=_user_or_none(user),
            )
        except DatabaseError as exc:
            logger.exception('Test result update failed (test_result_id=%s)', test_result_id)
            raise UpdateFailed(test_result_id=test_result_id, reason=str(exc)) from exc
        if updated != 1:
            raise UpdateFailed(test_result_id=test_result_id, reason='row not found')

    def update_visit_situation(self, *, visit_id: int, situation_id: int) -> None:
        try:
            updated = Visit.objects.using(self.using).filter(id=visit_id).update(situation_id=situation_id)
        except DatabaseError as exc:
            logger.exception('Visit situation update failed (visit_id=%s)', visit_id)
            raise UpdateFailed(reason=f'visit {visit_id}: {exc}') from exc
        if updated != 1:
            raise UpdateFailed(reason=f'visit {visit_id} not found')

    def outdate_active_prescriptions(self, *, visit_id: int, reason: str, user, when: datetime) -> int:
        try:
            return MedicationPrescription.objects.using(self.using).filter(
                visit_id=visit_id,
                is_outdated=False,
            ).update(
                is_outdated=True,
                outdated_at=when,
                outdated_reason=reason,
                outdated_by=_user_or_none(user),
            )
        except DatabaseError as exc:
            logger.exception('Outdating prescriptions failed (visit_id=%s)', visit_id)
            raise UpdateFailed(reason=f'prescriptions of visit {visit_id}: {exc}') from exc

    def touch_visit(self, *, visit_id: int, user, when: datetime | None = None) -> None:
        when = when or timezone.now()
        try:
            Visit.objects.using(self.using).filter(id=visit_id).update(
                last_modified=when,
                last_modified_by=_user_or_none(user),
            )
        except DatabaseError as exc:
            logger.exception('Visit metadata update failed (visit_id=%s)', visit_id)
            raise UpdateFailed(reason=f'visit {visit_id}: {exc}') from exc

    def previous_visit(self, visit: Visit) -> Visit | None:
        return (
            Visit.objects.using(self.using)
            .filter(patient_id=visit.patient_id)
            .filter(
                Q(report_date__lt=visit.report_date)
                | Q(report_date=visit.report_date, id__lt=visit.id)
            )
            .order_by('-report_date', '-id')
            .first()
        )


def _user_or_none(user):
    if user is not None and getattr(user, 'is_authenticated', False):
        return user
    return None
