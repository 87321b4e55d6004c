"""Test validity: is a patient's latest result of each test still recent enough?"""

from __future__ import annotations

from datetime import datetime

from django.utils import timezone

from renal_backend.clinical.models import TestResult, TestType

DAYS_PER_MONTH = 30


def test_validity(patient, now: datetime | None = None) -> dict:
    """
    Validity per test type for a patient.

    The window of a test type is ``validity_months * 30`` days. A test type
    without any result counts as expired.
    """
    now = now or timezone.now()
    tests: dict[str, dict] = {}

    for test_type in TestType.objects.using('default').order_by('name', 'id'):
        latest = (
            TestResult.objects.using('default')
            .filter(visit__patient=patient, test_type=test_type)
            .order_by('-test_date', '-id')
            .first()
        )
        validity_months = test_type.validity_months or 1
        validity_days = validity_months * DAYS_PER_MONTH

        days_since = None
        last_result = None
        if latest is not None:
            days_since = (now - latest.test_date).days
            last_result = {
                'value': latest.value,
                'test_date': latest.test_date,
                'visit_id': latest.visit_id,
            }
        is_valid = days_since is not None and days_since <= validity_days

        tests[test_type.code] = {
            'test_type': {
                'id': test_type.id,
                'code': test_type.code,
                'name': test_type.name,
                'unit': test_type.unit,
                'validity_months': validity_months,
            },
            'last_result': last_result,
            'days_since_test': days_since,
            'validity_days': validity_days,
            'status': 'valid' if is_valid else 'expired',
        }

    statuses = [item['status'] for item in tests.values()]
    return {
        'patient_id': patient.id,
        'tests': tests,
        'summary': {
            'total_tests': len(statuses),
            'valid_tests': statuses.count('valid'),
            'expired_tests': statuses.count('expired'),
        },
    }
