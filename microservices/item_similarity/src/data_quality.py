"""
Output quality gate for the item-similarity microservice.

Reliability guarantee: the similarity dataset is checked against its
structural invariants before it is handed to the sink.

Checks performed:
  1. Required output columns present
  2. Minimum row count (0 by default – an empty result is legitimate)
  3. Canonical orientation – ``item_id < item_id_2`` on every row
  4. No duplicate pairs, in either orientation
  5. ``size >= min_intersection``
  6. ``num_raters`` / ``num_raters_2`` inside the popularity band

Scores are deliberately not null/NaN-checked: a non-finite score means
"similarity undefined for this pair" and is valid output.
"""

from __future__ import annotations

import logging

from pyspark.sql import DataFrame
from pyspark.sql.functions import col, greatest, least

from microservices.item_similarity.src.schemas import OUTPUT_COLUMNS

logger = logging.getLogger(__name__)


class DataQualityError(Exception):
    """Raised when the similarity output violates one of its invariants."""


class SimilarityOutputValidator:
    """Validate the ``item_similarities`` DataFrame before writing."""

    def __init__(
        self,
        min_intersection: int = 50,
        min_num_raters: int = 3,
        max_num_raters: int = 10000,
        min_row_count: int = 0,
    ) -> None:
        self.min_intersection = min_intersection
        self.min_num_raters = min_num_raters
        self.max_num_raters = max_num_raters
        self.min_row_count = min_row_count

    def validate(self, df: DataFrame, dataset_name: str = "item_similarities") -> DataFrame:
        """Run all quality checks.

        Returns
        -------
        DataFrame
            The validated (unchanged) DataFrame.

        Raises
        ------
        DataQualityError
            If any check fails.
        """
        logger.info("[data_quality] Validating '%s' …", dataset_name)

        self._check_required_columns(df, dataset_name)
        self._check_row_count(df, dataset_name)
        self._check_orientation(df, dataset_name)
        self._check_duplicates(df, dataset_name)
        self._check_intersection(df, dataset_name)
        self._check_popularity_band(df, dataset_name)

        logger.info("[data_quality] '%s' passed all quality checks.", dataset_name)
        return df

    @staticmethod
    def _check_required_columns(df: DataFrame, dataset_name: str) -> None:
        missing = set(OUTPUT_COLUMNS) - set(df.columns)
        if missing:
            raise DataQualityError(
                f"[{dataset_name}] Missing required columns: {sorted(missing)}"
            )

    def _check_row_count(self, df: DataFrame, dataset_name: str) -> None:
        count = df.count()
        if count < self.min_row_count:
            raise DataQualityError(
                f"[{dataset_name}] Row count {count} < minimum {self.min_row_count}"
            )
        logger.info("[data_quality] [%s] Row count: %d", dataset_name, count)

    @staticmethod
    def _check_orientation(df: DataFrame, dataset_name: str) -> None:
        bad = df.filter(~(col("item_id") < col("item_id_2"))).count()
        if bad > 0:
            raise DataQualityError(
                f"[{dataset_name}] {bad} row(s) violate item_id < item_id_2"
            )

    @staticmethod
    def _check_duplicates(df: DataFrame, dataset_name: str) -> None:
        """Ensure each unordered pair appears once."""
        total = df.count()
        distinct = df.select(
            least("item_id", "item_id_2").alias("lo"),
            greatest("item_id", "item_id_2").alias("hi"),
        ).distinct().count()
        duplicates = total - distinct
        if duplicates > 0:
            raise DataQualityError(
                f"[{dataset_name}] Found {duplicates} duplicate item pair(s)"
            )
        logger.info("[data_quality] [%s] No duplicate item pairs.", dataset_name)

    def _check_intersection(self, df: DataFrame, dataset_name: str) -> None:
        bad = df.filter(col("size") < self.min_intersection).count()
        if bad > 0:
            raise DataQualityError(
                f"[{dataset_name}] {bad} pair(s) with size < {self.min_intersection}"
            )

    def _check_popularity_band(self, df: DataFrame, dataset_name: str) -> None:
        lo, hi = self.min_num_raters, self.max_num_raters
        out_of_band = df.filter(
            (col("num_raters") < lo) | (col("num_raters") > hi)
            | (col("num_raters_2") < lo) | (col("num_raters_2") > hi)
        ).count()
        if out_of_band > 0:
            raise DataQualityError(
                f"[{dataset_name}] {out_of_band} pair(s) with rater counts "
                f"outside [{lo}, {hi}]"
            )
