"""
Treatment recommendations keyed by situation.

Each situation carries a set of questions, each with its options and a
default answer. A doctor assigns one option per question to a visit;
assigning replaces the visit's previous set.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from django.db import transaction

from renal_backend.clinical.exceptions import InvalidInput
from renal_backend.clinical.models import AssignedRecommendation, Option, RecommendationTemplate, Visit
from renal_backend.core.utils import log_patient_action

logger = logging.getLogger(__name__)


def recommendations_for_situation(situation_id: int) -> list[dict]:
    """Question/option templates of a situation, ordered by question."""
    templates = (
        RecommendationTemplate.objects.using('default')
        .filter(situation_id=situation_id)
        .select_related('question', 'default_option')
        .prefetch_related('question__options')
        .order_by('question_id')
    )
    return [
        {
            'question_id': template.question_id,
            'question_text': template.question.text,
            'options': [{'id': option.id, 'text': option.text} for option in template.question.options.all()],
            'default_option_id': template.default_option_id,
            'default_option_text': template.default_option.text if template.default_option else None,
        }
        for template in templates
    ]


def _coerce_items(items: Iterable[Mapping]) -> dict[int, int]:
    selected: dict[int, int] = {}
    for item in items:
        try:
            question_id = int(item.get('question_id'))
            option_id = int(item.get('selected_option_id'))
        except (TypeError, ValueError):
            raise InvalidInput(
                'Each recommendation needs question_id and selected_option_id',
                field='recommendations',
            )
        if question_id in selected:
            raise InvalidInput(f'Question {question_id} answered twice', field='question_id')
        selected[question_id] = option_id
    return selected


def assign_recommendations(visit: Visit, items: Iterable[Mapping], user) -> list[AssignedRecommendation]:
    """
    Replace the recommendations assigned to a visit.

    An empty list clears them.

    Raises:
        InvalidInput: Missing ids, a duplicate question or an option that
            does not answer its question
    """
    selected = _coerce_items(items)
    option_question = dict(
        Option.objects.using('default')
        .filter(id__in=list(selected.values()))
        .values_list('id', 'question_id')
    )
    for question_id, option_id in selected.items():
        if option_question.get(option_id) != question_id:
            raise InvalidInput(
                f'Option {option_id} is not an answer to question {question_id}',
                field='selected_option_id',
            )

    assigned_by = user if getattr(user, 'is_authenticated', False) else None
    with transaction.atomic(using='default'):
        deleted, _ = AssignedRecommendation.objects.using('default').filter(visit=visit).delete()
        AssignedRecommendation.objects.using('default').bulk_create(
            [
                AssignedRecommendation(
                    visit=visit,
                    question_id=question_id,
                    selected_option_id=option_id,
                    assigned_by=assigned_by,
                )
                for question_id, option_id in selected.items()
            ]
        )

    logger.info('Visit %s: %s recommendation(s) replaced by %s', visit.id, deleted, len(selected))
    log_patient_action(
        user,
        'recommendations_assigned',
        patient_id=visit.patient_id,
        meta={'visit_id': visit.id, 'count': len(selected)},
    )
    return assigned_recommendations(visit.id)


def assigned_recommendations(visit_id: int) -> list[AssignedRecommendation]:
    return list(
        AssignedRecommendation.objects.using('default')
        .filter(visit_id=visit_id)
        .select_related('question', 'selected_option', 'assigned_by')
        .order_by('question_id')
    )
