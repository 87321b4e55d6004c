"""
Classification Engine.

Maps a patient's lab values to a clinical classification:

- group: vascular involvement (1 = positive, 2 = negative)
- bucket: PTH trend (1 = high turnover, 2 = within range, 3 = low turnover)
- situation code: ``T1``..``T33`` inside the group

Architecture Rules:
- Pure functions only, no database access
- Thresholds live in explicit lookup tables below
- Missing or non-numeric input is rejected by ``build_test_values``
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Mapping

from renal_backend.clinical.exceptions import InvalidInput


# ---------------------------------------------------------------------------
# Test codes
# ---------------------------------------------------------------------------

PTH = 'PTH'
CALCIUM = 'Ca'
ALBUMIN = 'Albumin'
CORRECTED_CALCIUM = 'CaCorrected'
PHOSPHATE = 'Phos'
ECHO = 'Echo'
LATERAL_RADIOGRAPHY = 'LARad'

ENGINE_CODES = (PTH, CALCIUM, ALBUMIN, CORRECTED_CALCIUM, PHOSPHATE, ECHO, LATERAL_RADIOGRAPHY)

SITUATIONS_PER_GROUP = 33


def corrected_calcium(calcium: float, albumin: float) -> float:
    """Albumin-corrected calcium (mg/dL)."""
    return calcium + 0.8 * (4.0 - albumin)


@dataclass(frozen=True)
class TestValues:
    pth: float
    calcium: float
    corrected_calcium: float
    phosphate: float
    echo_positive: bool
    lateral_radiography: float
    previous_pth: float | None = None

    @property
    def effective_previous_pth(self) -> float:
        """Previous PTH, falling back to the current one on a first visit.

        A stored value of 0 counts as "no previous value".
        """
        if not self.previous_pth:
            return self.pth
        return self.previous_pth


@dataclass(frozen=True)
class ClassificationResult:
    group: int
    bucket: int
    situation_code: str

    @property
    def situation_number(self) -> int:
        return int(self.situation_code[1:])

    @property
    def situation_id(self) -> int:
        return situation_id_for(self.group, self.situation_code)

    def to_dict(self) -> dict:
        return {
            'group': self.group,
            'bucket': self.bucket,
            'situation_code': self.situation_code,
            'situation_id': self.situation_id,
        }


def situation_id_for(group: int, code: str) -> int:
    """Catalog id for (group, code): group 1 -> n, group 2 -> 33 + n."""
    number = int(str(code)[1:])
    if group == 1:
        return number
    return SITUATIONS_PER_GROUP + number


# ---------------------------------------------------------------------------
# Step 1: Group
# ---------------------------------------------------------------------------

def classify_group(values: TestValues) -> int:
    if values.lateral_radiography > 5 or values.echo_positive:
        return 1
    return 2


# ---------------------------------------------------------------------------
# Step 2: Bucket
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BucketThresholds:
    high_both: float        # cpth and ppth above -> bucket 1
    high_rising: float      # cpth above and rising by high_factor -> bucket 1
    high_factor: float
    low_both: float         # cpth and ppth below -> bucket 3
    low_falling: float      # cpth below and falling by low_factor -> bucket 3
    low_factor: float


BUCKET_THRESHOLDS: dict[int, BucketThresholds] = {
    1: BucketThresholds(
        high_both=300, high_rising=200, high_factor=1.5,
        low_both=100, low_falling=150, low_factor=0.5,
    ),
    2: BucketThresholds(
        high_both=585, high_rising=450, high_factor=3,
        low_both=130, low_falling=180, low_factor=0.75,
    ),
}


def classify_bucket(group: int, pth: float, previous_pth: float | None) -> int:
    t = BUCKET_THRESHOLDS[group]
    cpth = pth
    ppth = previous_pth if previous_pth else cpth

    if (cpth > t.high_both and ppth > t.high_both) or (
        cpth > t.high_rising and cpth >= ppth * t.high_factor
    ):
        return 1
    if (cpth < t.low_both and ppth < t.low_both) or (
        cpth < t.low_falling and cpth <= ppth * t.low_factor
    ):
        return 3
    return 2


# ---------------------------------------------------------------------------
# Step 3: Situation
# ---------------------------------------------------------------------------

def calcium_category_standard(cc: float) -> int:
    if cc > 10.2:
        return 0
    if cc >= 8.4:
        return 1
    if cc >= 7.5:
        return 2
    return 3


def calcium_category_merged(cc: float) -> int:
    if cc > 10.2:
        return 0
    if cc >= 7.5:
        return 1
    return 2


def phosphate_category(phos: float) -> int:
    if phos > 5.5:
        return 0
    if phos >= 3.5:
        return 1
    return 2


@dataclass(frozen=True)
class SituationLayout:
    calcium_categories: int
    base: int
    calcium_category: Callable[[float], int]
    calcium_bands: tuple[str, ...]


PHOSPHATE_BANDS = ('P > 5.5', '3.5 <= P <= 5.5', 'P < 3.5')

SITUATION_LAYOUT: dict[int, SituationLayout] = {
    1: SituationLayout(
        calcium_categories=4,
        base=0,
        calcium_category=calcium_category_standard,
        calcium_bands=('CaCorr > 10.2', '8.4 <= CaCorr <= 10.2', '7.5 <= CaCorr < 8.4', 'CaCorr < 7.5'),
    ),
    2: SituationLayout(
        calcium_categories=3,
        base=12,
        calcium_category=calcium_category_merged,
        calcium_bands=('CaCorr > 10.2', '7.5 <= CaCorr <= 10.2', 'CaCorr < 7.5'),
    ),
    3: SituationLayout(
        calcium_categories=4,
        base=21,
        calcium_category=calcium_category_standard,
        calcium_bands=('CaCorr > 10.2', '8.4 <= CaCorr <= 10.2', '7.5 <= CaCorr < 8.4', 'CaCorr < 7.5'),
    ),
}


def situation_code_for(bucket: int, cc: float, phos: float) -> str:
    layout = SITUATION_LAYOUT[bucket]
    index = layout.calcium_category(cc) * 3 + phosphate_category(phos) + 1
    return f"T{layout.base + index}"


def classify(values: TestValues) -> ClassificationResult:
    """Classify a complete set of lab values. Deterministic, no I/O."""
    group = classify_group(values)
    bucket = classify_bucket(group, values.pth, values.effective_previous_pth)
    code = situation_code_for(bucket, values.corrected_calcium, values.phosphate)
    return ClassificationResult(group=group, bucket=bucket, situation_code=code)


# ---------------------------------------------------------------------------
# Input coercion
# ---------------------------------------------------------------------------

def coerce_number(mapping: Mapping[str, object], code: str) -> float:
    raw = mapping.get(code)
    if raw is None or raw == '':
        raise InvalidInput(f'{code} is required', field=code)
    if isinstance(raw, bool):
        raw = int(raw)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise InvalidInput(f'{code} must be a number', field=code)
    if not math.isfinite(value):
        raise InvalidInput(f'{code} must be a finite number', field=code)
    return value


def build_test_values(mapping: Mapping[str, object], previous_pth: float | None = None) -> TestValues:
    """Build ``TestValues`` from a code -> value mapping.

    ``CaCorrected`` is always derived from ``Ca`` and ``Albumin``; a value for
    it in the mapping is ignored. ``Echo`` is positive only when it equals 1.
    """
    calcium = coerce_number(mapping, CALCIUM)
    cc = corrected_calcium(calcium, coerce_number(mapping, ALBUMIN))

    return TestValues(
        pth=coerce_number(mapping, PTH),
        calcium=calcium,
        corrected_calcium=cc,
        phosphate=coerce_number(mapping, PHOSPHATE),
        echo_positive=coerce_number(mapping, ECHO) == 1,
        lateral_radiography=coerce_number(mapping, LATERAL_RADIOGRAPHY),
        previous_pth=previous_pth,
    )
