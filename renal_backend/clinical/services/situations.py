"""
Situation catalog.

The 66 situations are reference data: 33 codes per group, laid out by bucket
(bucket 1 -> T1..T12, bucket 2 -> T13..T21, bucket 3 -> T22..T33). The rows
are seeded by a data migration from ``situation_catalog()`` and looked up by
(group, code) at runtime.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from renal_backend.clinical.exceptions import CatalogResolutionError
from renal_backend.clinical.services.classification import (
    PHOSPHATE_BANDS,
    SITUATION_LAYOUT,
    ClassificationResult,
    situation_id_for,
)

if TYPE_CHECKING:
    from renal_backend.clinical.models import Situation
    from renal_backend.clinical.services.repository import ClinicalRepository

logger = logging.getLogger(__name__)

GROUP_LABELS = {1: 'vascular positive', 2: 'vascular negative'}
BUCKET_LABELS = {1: 'high turnover', 2: 'within range', 3: 'low turnover'}


@dataclass(frozen=True)
class SituationDefinition:
    id: int
    group: int
    bucket: int
    code: str
    description: str

    def as_model_kwargs(self) -> dict:
        return {
            'id': self.id,
            'group': self.group,
            'bucket': self.bucket,
            'code': self.code,
            'description': self.description,
        }


def situation_catalog() -> list[SituationDefinition]:
    """All reference situations, ordered by id."""
    definitions: list[SituationDefinition] = []
    for group in (1, 2):
        for bucket in (1, 2, 3):
            layout = SITUATION_LAYOUT[bucket]
            for ca_index in range(layout.calcium_categories):
                for p_index, p_band in enumerate(PHOSPHATE_BANDS):
                    code = f"T{layout.base + ca_index * 3 + p_index + 1}"
                    description = (
                        f"Group {group} ({GROUP_LABELS[group]}), "
                        f"bucket {bucket} ({BUCKET_LABELS[bucket]}): "
                        f"{layout.calcium_bands[ca_index]}, {p_band}"
                    )
                    definitions.append(
                        SituationDefinition(
                            id=situation_id_for(group, code),
                            group=group,
                            bucket=bucket,
                            code=code,
                            description=description,
                        )
                    )
    definitions.sort(key=lambda d: d.id)
    return definitions


def resolve_situation(classification: ClassificationResult, repository: 'ClinicalRepository') -> 'Situation':
    """Return the stored Situation for a classification.

    Raises:
        CatalogResolutionError: No row for (group, code), or the row does not
            carry the id/bucket the catalog layout expects.
    """
    group = classification.group
    code = classification.situation_code
    expected_id = classification.situation_id

    situation = repository.find_situation(group=group, code=code)
    if situation is None:
        logger.error('Situation catalog has no row for group=%s code=%s', group, code)
        raise CatalogResolutionError(group=group, code=code, situation_id=expected_id)

    if situation.id != expected_id or situation.bucket != classification.bucket:
        logger.error(
            'Situation catalog mismatch for group=%s code=%s: found id=%s bucket=%s, expected id=%s bucket=%s',
            group,
            code,
            situation.id,
            situation.bucket,
            expected_id,
            classification.bucket,
        )
        raise CatalogResolutionError(
            group=group,
            code=code,
            situation_id=expected_id,
            found_id=situation.id,
        )
    return situation


def catalog_drift(stored: list['Situation']) -> list[str]:
    """Compare stored situations against ``situation_catalog()``.

    Returns human readable problems, empty when the table matches.
    """
    problems: list[str] = []
    by_id = {s.id: s for s in stored}
    expected_ids = set()
    for definition in situation_catalog():
        expected_ids.add(definition.id)
        row = by_id.get(definition.id)
        if row is None:
            problems.append(f'missing situation id={definition.id} ({definition.group}/{definition.code})')
            continue
        if (row.group, row.bucket, row.code) != (definition.group, definition.bucket, definition.code):
            problems.append(
                f'situation id={row.id} is group={row.group} bucket={row.bucket} code={row.code}, '
                f'expected group={definition.group} bucket={definition.bucket} code={definition.code}'
            )
    for extra_id in sorted(set(by_id) - expected_ids):
        row = by_id[extra_id]
        problems.append(f'unexpected situation id={row.id} ({row.group}/{row.code})')
    return problems
