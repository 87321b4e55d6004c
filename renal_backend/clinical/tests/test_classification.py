"""
Tests for the classification engine and the situation catalog layout.

Pure functions only; no database access.
"""

import itertools

from django.test import SimpleTestCase

from renal_backend.clinical.exceptions import InvalidInput
from renal_backend.clinical.services.classification import (
    ClassificationResult,
    TestValues,
    build_test_values,
    classify,
    classify_bucket,
    classify_group,
    corrected_calcium,
    situation_code_for,
    situation_id_for,
)
from renal_backend.clinical.services.situations import situation_catalog


def make_values(**overrides) -> TestValues:
    base = dict(
        pth=250.0,
        calcium=9.0,
        corrected_calcium=9.0,
        phosphate=4.5,
        echo_positive=False,
        lateral_radiography=0.0,
        previous_pth=None,
    )
    base.update(overrides)
    return TestValues(**base)


BUCKET_RANGES = {1: range(1, 13), 2: range(13, 22), 3: range(22, 34)}


class CorrectedCalciumTest(SimpleTestCase):
    def test_normal_albumin_keeps_calcium(self):
        self.assertAlmostEqual(corrected_calcium(9.0, 4.0), 9.0)

    def test_low_albumin_raises_calcium(self):
        self.assertAlmostEqual(corrected_calcium(8.0, 3.0), 8.8)

    def test_high_albumin_lowers_calcium(self):
        self.assertAlmostEqual(corrected_calcium(10.0, 4.5), 9.6)


class GroupTest(SimpleTestCase):
    def test_echo_positive_is_group_1(self):
        self.assertEqual(classify_group(make_values(echo_positive=True)), 1)

    def test_lateral_radiography_above_5_is_group_1(self):
        self.assertEqual(classify_group(make_values(lateral_radiography=6)), 1)

    def test_lateral_radiography_5_is_group_2(self):
        self.assertEqual(classify_group(make_values(lateral_radiography=5)), 2)


class BucketTest(SimpleTestCase):
    def test_group_1_both_high(self):
        self.assertEqual(classify_bucket(1, 350, 320), 1)

    def test_group_1_rising(self):
        # 250 > 200 and 250 >= 160 * 1.5
        self.assertEqual(classify_bucket(1, 250, 160), 1)

    def test_group_1_both_low(self):
        self.assertEqual(classify_bucket(1, 90, 95), 3)

    def test_group_1_falling(self):
        # 140 < 150 and 140 <= 300 * 0.5
        self.assertEqual(classify_bucket(1, 140, 300), 3)

    def test_group_2_within_range(self):
        self.assertEqual(classify_bucket(2, 350, 320), 2)

    def test_group_2_both_high(self):
        self.assertEqual(classify_bucket(2, 600, 590), 1)

    def test_group_2_rising(self):
        # 460 > 450 and 460 >= 150 * 3
        self.assertEqual(classify_bucket(2, 460, 150), 1)

    def test_group_2_falling(self):
        # 170 < 180 and 170 <= 240 * 0.75
        self.assertEqual(classify_bucket(2, 170, 240), 3)

    def test_zero_previous_counts_as_absent(self):
        self.assertEqual(classify_bucket(1, 250, 0), classify_bucket(1, 250, None))


class FirstVisitTest(SimpleTestCase):
    """Without a previous PTH only the absolute thresholds can apply."""

    def test_ratio_rules_unreachable(self):
        # Would be bucket 1 with previous_pth=100 (250 >= 150), but not on a first visit
        values = make_values(echo_positive=True, pth=250, previous_pth=None)
        self.assertEqual(values.effective_previous_pth, 250)
        self.assertEqual(classify(values).bucket, 2)
        self.assertEqual(classify(make_values(echo_positive=True, pth=250, previous_pth=100)).bucket, 1)

    def test_absolute_thresholds_still_apply(self):
        self.assertEqual(classify(make_values(echo_positive=True, pth=400)).bucket, 1)
        self.assertEqual(classify(make_values(echo_positive=True, pth=50)).bucket, 3)


class SituationCodeTest(SimpleTestCase):
    def test_scenario_group_2_within_range(self):
        values = make_values(
            pth=350,
            previous_pth=320,
            calcium=9.5,
            corrected_calcium=9.5,
            phosphate=4.0,
            echo_positive=False,
            lateral_radiography=3,
        )
        result = classify(values)
        self.assertEqual(result, ClassificationResult(group=2, bucket=2, situation_code="T17"))
        self.assertEqual(result.situation_id, 33 + 17)

    def test_calcium_boundary_10_2_not_high_band(self):
        self.assertEqual(situation_code_for(1, 10.2, 4.0), "T5")
        self.assertEqual(situation_code_for(2, 10.2, 4.0), "T17")
        self.assertEqual(situation_code_for(3, 10.2, 4.0), "T26")

    def test_calcium_boundary_10_3_high_band(self):
        self.assertEqual(situation_code_for(1, 10.3, 4.0), "T2")
        self.assertEqual(situation_code_for(2, 10.3, 4.0), "T14")
        self.assertEqual(situation_code_for(3, 10.3, 4.0), "T23")

    def test_bucket_2_merges_middle_calcium_bands(self):
        self.assertEqual(situation_code_for(2, 9.0, 4.0), situation_code_for(2, 7.8, 4.0))
        self.assertNotEqual(situation_code_for(1, 9.0, 4.0), situation_code_for(1, 7.8, 4.0))

    def test_phosphate_bands(self):
        self.assertEqual(situation_code_for(1, 9.0, 5.6), "T4")
        self.assertEqual(situation_code_for(1, 9.0, 5.5), "T5")
        self.assertEqual(situation_code_for(1, 9.0, 3.5), "T5")
        self.assertEqual(situation_code_for(1, 9.0, 3.4), "T6")

    def test_codes_stay_in_bucket_range_and_are_deterministic(self):
        grid = itertools.product(
            (True, False),
            (40, 120, 160, 250, 350, 500, 700),
            (None, 80, 150, 300, 600),
            (7.0, 7.5, 8.4, 9.0, 10.2, 10.3),
            (3.0, 3.5, 5.5, 6.0),
        )
        for echo, pth, previous_pth, cc, phos in grid:
            values = make_values(
                echo_positive=echo,
                pth=pth,
                previous_pth=previous_pth,
                corrected_calcium=cc,
                phosphate=phos,
            )
            first = classify(values)
            self.assertEqual(first, classify(values))
            self.assertIn(first.situation_number, BUCKET_RANGES[first.bucket], msg=str(values))

    def test_situation_id_arithmetic(self):
        self.assertEqual(situation_id_for(1, "T1"), 1)
        self.assertEqual(situation_id_for(1, "T33"), 33)
        self.assertEqual(situation_id_for(2, "T1"), 34)
        self.assertEqual(situation_id_for(2, "T33"), 66)


class SituationCatalogTest(SimpleTestCase):
    def test_catalog_has_66_unique_entries(self):
        catalog = situation_catalog()
        self.assertEqual(len(catalog), 66)
        self.assertEqual([d.id for d in catalog], list(range(1, 67)))
        self.assertEqual(len({(d.group, d.code) for d in catalog}), 66)

    def test_catalog_buckets_match_code_ranges(self):
        for definition in situation_catalog():
            number = int(definition.code[1:])
            self.assertIn(number, BUCKET_RANGES[definition.bucket])
            self.assertEqual(definition.id, situation_id_for(definition.group, definition.code))


class BuildTestValuesTest(SimpleTestCase):
    def _mapping(self, **overrides):
        mapping = {"PTH": "300", "Ca": "8.0", "Albumin": "3.0", "Phos": "4.2", "Echo": "0", "LARad": "2"}
        mapping.update(overrides)
        return mapping

    def test_derives_corrected_calcium(self):
        values = build_test_values(self._mapping())
        self.assertAlmostEqual(values.corrected_calcium, 8.8)

    def test_submitted_corrected_calcium_is_ignored(self):
        values = build_test_values(self._mapping(CaCorrected="9.9"))
        self.assertAlmostEqual(values.corrected_calcium, 8.8)

    def test_echo_positive_only_when_one(self):
        self.assertTrue(build_test_values(self._mapping(Echo="1")).echo_positive)
        self.assertTrue(build_test_values(self._mapping(Echo=True)).echo_positive)
        self.assertFalse(build_test_values(self._mapping(Echo="2")).echo_positive)

    def test_missing_value_rejected(self):
        mapping = self._mapping()
        del mapping["Phos"]
        with self.assertRaises(InvalidInput) as ctx:
            build_test_values(mapping)
        self.assertEqual(ctx.exception.field, "Phos")

    def test_non_numeric_value_rejected(self):
        with self.assertRaises(InvalidInput) as ctx:
            build_test_values(self._mapping(PTH="high"))
        self.assertEqual(ctx.exception.to_dict()["error"], "invalid_input")

    def test_non_finite_value_rejected(self):
        with self.assertRaises(InvalidInput):
            build_test_values(self._mapping(Ca="nan"))
