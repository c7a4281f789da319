"""
Tests for the SimilarityOutputValidator.
Covers required columns, row-count thresholds, orientation, duplicate
pairs, minimum intersection and the popularity band.
"""

from __future__ import annotations

import math
import sys
from pathlib import Path

import pytest

_project_root = str(Path(__file__).resolve().parents[3])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from microservices.item_similarity.src.data_quality import (
    DataQualityError,
    SimilarityOutputValidator,
)
from microservices.item_similarity.src.schemas import ITEM_SIMILARITIES_SCHEMA

_GOOD = ("A", "B", 0.5, 0.1, 0.98, 1.0, 3, 3, 3)


def _row(**changes) -> tuple:
    names = [f.name for f in ITEM_SIMILARITIES_SCHEMA.fields]
    values = dict(zip(names, _GOOD))
    values.update(changes)
    return tuple(values[n] for n in names)


def _validator(**overrides) -> SimilarityOutputValidator:
    options = dict(min_intersection=2, min_num_raters=3, max_num_raters=100)
    options.update(overrides)
    return SimilarityOutputValidator(**options)


class TestSimilarityOutputValidator:
    """Validate the output quality gate."""

    def test_valid_output_passes(self, spark):
        print("\n[TEST] test_valid_output_passes")

        df = spark.createDataFrame(
            [_GOOD, _row(item_id_2="C", correlation=math.nan, regularized_correlation=math.nan)],
            ITEM_SIMILARITIES_SCHEMA,
        )
        assert _validator().validate(df) is df
        print("  ✓ NaN scores accepted, frame returned unchanged")

    def test_empty_output_passes_by_default(self, spark):
        print("\n[TEST] test_empty_output_passes_by_default")

        df = spark.createDataFrame([], ITEM_SIMILARITIES_SCHEMA)
        _validator().validate(df)
        print("  ✓ no pairs is a legitimate result")

    def test_min_row_count(self, spark):
        print("\n[TEST] test_min_row_count")

        df = spark.createDataFrame([], ITEM_SIMILARITIES_SCHEMA)
        with pytest.raises(DataQualityError, match="Row count"):
            _validator(min_row_count=1).validate(df)
        print("  ✓ DataQualityError below min_row_count")

    def test_missing_column(self, spark):
        print("\n[TEST] test_missing_column")

        df = spark.createDataFrame([_GOOD], ITEM_SIMILARITIES_SCHEMA).drop("jaccard_similarity")
        with pytest.raises(DataQualityError, match="jaccard_similarity"):
            _validator().validate(df)
        print("  ✓ missing score column detected")

    def test_wrong_orientation(self, spark):
        print("\n[TEST] test_wrong_orientation")

        df = spark.createDataFrame([_row(item_id="B", item_id_2="A")], ITEM_SIMILARITIES_SCHEMA)
        with pytest.raises(DataQualityError, match="item_id < item_id_2"):
            _validator().validate(df)
        print("  ✓ (B, A) rejected")

    def test_self_pair(self, spark):
        print("\n[TEST] test_self_pair")

        df = spark.createDataFrame([_row(item_id_2="A")], ITEM_SIMILARITIES_SCHEMA)
        with pytest.raises(DataQualityError):
            _validator().validate(df)
        print("  ✓ (A, A) rejected")

    def test_duplicate_pair(self, spark):
        print("\n[TEST] test_duplicate_pair")

        df = spark.createDataFrame([_GOOD, _GOOD], ITEM_SIMILARITIES_SCHEMA)
        with pytest.raises(DataQualityError, match="duplicate"):
            _validator().validate(df)
        print("  ✓ repeated (A, B) rejected")

    def test_size_below_min_intersection(self, spark):
        print("\n[TEST] test_size_below_min_intersection")

        df = spark.createDataFrame([_row(size=1)], ITEM_SIMILARITIES_SCHEMA)
        with pytest.raises(DataQualityError, match="size"):
            _validator().validate(df)
        print("  ✓ size=1 < 2 rejected")

    @pytest.mark.parametrize("field,value", [("num_raters", 2), ("num_raters_2", 101)])
    def test_rater_count_outside_band(self, spark, field, value):
        print(f"\n[TEST] test_rater_count_outside_band {field}={value}")

        df = spark.createDataFrame([_row(**{field: value})], ITEM_SIMILARITIES_SCHEMA)
        with pytest.raises(DataQualityError, match="outside"):
            _validator().validate(df)
        print("  ✓ out-of-band rater count rejected")

    def test_pipeline_output_passes(self, spark, catalog_ratings):
        """Real pipeline output satisfies the gate for the same thresholds."""
        print("\n[TEST] test_pipeline_output_passes")

        from microservices.item_similarity.src.config_loader import SimilarityConfig
        from microservices.item_similarity.src.pipeline import ItemSimilarityPipeline

        config = SimilarityConfig(min_num_raters=3, max_num_raters=100, min_intersection=2)
        result = ItemSimilarityPipeline(config).run(catalog_ratings)
        SimilarityOutputValidator(
            min_intersection=config.min_intersection,
            min_num_raters=config.min_num_raters,
            max_num_raters=config.max_num_raters,
            min_row_count=1,
        ).validate(result)
        print("  ✓ pipeline output passed every check")
