"""
Visit deletion with an archived snapshot.

A deleted visit is copied to ``ArchivedVisit`` (report data, test results,
recommendations and prescriptions) in the same transaction that removes it.
"""

from __future__ import annotations

import json
import logging

from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

from renal_backend.clinical.models import ArchivedVisit, Visit
from renal_backend.clinical.services.repository import ClinicalRepository
from renal_backend.core.utils import log_patient_action

logger = logging.getLogger(__name__)


def _jsonable(data):
    """Datetimes in the snapshot become ISO strings."""
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


def _snapshot(visit: Visit) -> dict:
    return _jsonable(
        {
            'report_data': {
                'id': visit.id,
                'patient_id': visit.patient_id,
                'doctor_id': visit.doctor_id,
                'report_date': visit.report_date,
                'notes': visit.notes,
                'situation_id': visit.situation_id,
                'created_at': visit.created_at,
                'last_modified': visit.last_modified,
            },
            'test_results': list(
                visit.test_results.using('default')
                .order_by('id')
                .values('id', 'test_type_id', 'test_type__code', 'value', 'test_date', 'entered_by_id')
            ),
            'recommendations': list(
                visit.recommendations.using('default')
                .order_by('question_id')
                .values('id', 'question_id', 'selected_option_id', 'assigned_by_id', 'created_at')
            ),
            'medications': list(
                visit.prescriptions.using('default')
                .order_by('id')
                .values(
                    'id',
                    'medication_type_id',
                    'dosage',
                    'prescribed_by_id',
                    'created_at',
                    'is_outdated',
                    'outdated_at',
                    'outdated_reason',
                )
            ),
        }
    )


def delete_visit(visit_id: int, user, reason: str = '') -> dict:
    """
    Archive and delete a visit with its dependent rows.

    Returns the archive id and the number of rows removed per kind.

    Raises:
        VisitNotFound: The visit does not exist
    """
    deleted_by = user if getattr(user, 'is_authenticated', False) else None
    with transaction.atomic(using='default'):
        visit = ClinicalRepository().get_visit(visit_id, for_update=True)
        snapshot = _snapshot(visit)
        archived = ArchivedVisit.objects.using('default').create(
            visit_id=visit.id,
            patient_id=visit.patient_id,
            deleted_by=deleted_by,
            deletion_reason=reason or '',
            **snapshot,
        )
        counts = {
            'test_results': len(snapshot['test_results']),
            'recommendations': len(snapshot['recommendations']),
            'medications': len(snapshot['medications']),
        }
        visit.delete(using='default')

    logger.info('Visit %s archived as %s and deleted', visit_id, archived.id)
    log_patient_action(
        user,
        'visit_deleted',
        patient_id=archived.patient_id,
        meta={'visit_id': visit_id, 'archive_id': archived.id, 'reason': reason or ''},
    )
    return {'visit_id': visit_id, 'archive_id': archived.id, 'deleted': counts}
