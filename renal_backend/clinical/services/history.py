"""
Read models over a patient's visits: the visit history and lab-value trends.
"""

from __future__ import annotations

from datetime import datetime

from django.db.models import Prefetch
from django.utils import timezone

from renal_backend.clinical.models import (
    AssignedRecommendation,
    MedicationPrescription,
    TestResult,
    TestType,
    Visit,
)
from renal_backend.clinical.services.classification import ENGINE_CODES
from renal_backend.clinical.services.validity import DAYS_PER_MONTH

SECONDS_PER_DAY = 24 * 60 * 60


def _code_rank(code: str) -> int:
    try:
        return ENGINE_CODES.index(code)
    except ValueError:
        return len(ENGINE_CODES)


def _situation_dict(situation) -> dict | None:
    if situation is None:
        return None
    return {
        'id': situation.id,
        'group': situation.group,
        'bucket': situation.bucket,
        'code': situation.code,
        'description': situation.description,
    }


def _test_result_dicts(visit: Visit) -> list[dict]:
    results = sorted(visit.test_results.all(), key=lambda r: (_code_rank(r.test_type.code), r.id))
    return [
        {
            'id': r.id,
            'code': r.test_type.code,
            'name': r.test_type.name,
            'unit': r.test_type.unit,
            'value': r.value,
            'test_date': r.test_date,
        }
        for r in results
    ]


def _recommendation_dicts(visit: Visit) -> list[dict]:
    return [
        {
            'question_id': r.question_id,
            'question_text': r.question.text,
            'selected_option_id': r.selected_option_id,
            'selected_option_text': r.selected_option.text,
        }
        for r in visit.recommendations.all()
    ]


def _prescription_dicts(visit: Visit) -> list[dict]:
    return [
        {
            'id': p.id,
            'medication_type_id': p.medication_type_id,
            'name': p.medication_type.name,
            'unit': p.medication_type.unit,
            'group_name': p.medication_type.group_name,
            'dosage': p.dosage,
            'created_at': p.created_at,
            'is_outdated': p.is_outdated,
            'outdated_at': p.outdated_at,
            'outdated_reason': p.outdated_reason,
        }
        for p in visit.prescriptions.all()
    ]


def patient_history(patient) -> dict:
    """
    All visits of a patient, newest first.

    Each visit carries its situation, its test results (engine order), the
    assigned recommendations and every prescription including outdated ones.
    """
    visits = (
        Visit.objects.using('default')
        .filter(patient=patient)
        .select_related('situation')
        .prefetch_related(
            Prefetch(
                'test_results',
                queryset=TestResult.objects.using('default').select_related('test_type'),
            ),
            Prefetch(
                'recommendations',
                queryset=AssignedRecommendation.objects.using('default')
                .select_related('question', 'selected_option')
                .order_by('question_id'),
            ),
            Prefetch(
                'prescriptions',
                queryset=MedicationPrescription.objects.using('default')
                .select_related('medication_type')
                .order_by('is_outdated', 'medication_type_id', 'id'),
            ),
        )
        .order_by('-report_date', '-id')
    )
    return {
        'patient_id': patient.id,
        'visits': [
            {
                'id': visit.id,
                'report_date': visit.report_date,
                'notes': visit.notes,
                'situation': _situation_dict(visit.situation),
                'test_results': _test_result_dicts(visit),
                'recommendations': _recommendation_dicts(visit),
                'prescriptions': _prescription_dicts(visit),
            }
            for visit in visits
        ],
    }


def _same_day(a: datetime, b: datetime) -> bool:
    return timezone.localtime(a).date() == timezone.localtime(b).date()


def _value_at_visit(results: list[TestResult], visit_date: datetime, validity_days: int) -> TestResult | None:
    """Result representing a test at a visit.

    Candidates are dated on or before the visit and within the validity
    window. A result from the visit's day wins, else the most recent one.
    """
    candidates = [
        r for r in results
        if r.test_date <= visit_date
        and (visit_date - r.test_date).total_seconds() <= validity_days * SECONDS_PER_DAY
    ]
    if not candidates:
        return None
    same_day = [r for r in candidates if _same_day(r.test_date, visit_date)]
    pool = same_day or candidates
    return max(pool, key=lambda r: (r.test_date, r.id))


def patient_trends(patient) -> dict:
    """
    Lab-value trends over the patient's visit timeline.

    The timeline lists the visits oldest first, numbered from 1. For every
    test type with results, each visit gets the value that was valid at
    that visit (``None`` when no result qualifies).
    """
    visits = list(
        Visit.objects.using('default')
        .filter(patient=patient)
        .select_related('situation')
        .order_by('report_date', 'id')
    )
    timeline = [
        {
            'visit_number': number,
            'visit_id': visit.id,
            'date': visit.report_date,
            'situation': _situation_dict(visit.situation),
        }
        for number, visit in enumerate(visits, start=1)
    ]

    results_by_code: dict[str, list[TestResult]] = {}
    rows = (
        TestResult.objects.using('default')
        .filter(visit__patient=patient)
        .select_related('test_type')
        .order_by('test_date', 'id')
    )
    for result in rows:
        results_by_code.setdefault(result.test_type.code, []).append(result)

    test_types = {t.code: t for t in TestType.objects.using('default').filter(code__in=list(results_by_code))}
    trends: dict[str, dict] = {}
    for code in sorted(results_by_code, key=_code_rank):
        test_type = test_types[code]
        results = results_by_code[code]
        validity_months = test_type.validity_months or 1
        validity_days = validity_months * DAYS_PER_MONTH

        visit_data = []
        for point in timeline:
            chosen = _value_at_visit(results, point['date'], validity_days)
            visit_data.append(
                {
                    'visit_number': point['visit_number'],
                    'visit_date': point['date'],
                    'value': chosen.value if chosen else None,
                    'test_date': chosen.test_date if chosen else None,
                    'is_current_test': bool(chosen) and _same_day(chosen.test_date, point['date']),
                    'days_since_test': (point['date'] - chosen.test_date).days if chosen else None,
                    'test_id': chosen.id if chosen else None,
                }
            )

        trends[code] = {
            'metadata': {
                'code': code,
                'name': test_type.name,
                'unit': test_type.unit,
                'validity_months': validity_months,
            },
            'visit_data': visit_data,
            'all_results': [{'id': r.id, 'value': r.value, 'test_date': r.test_date} for r in results],
        }

    return {
        'patient_id': patient.id,
        'timeline': timeline,
        'total_visits': len(timeline),
        'trends': trends,
    }
