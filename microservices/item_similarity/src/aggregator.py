"""
Sufficient-statistics aggregation for the item-similarity microservice.

Collapses the per-user pair rows into **one row per item pair**, holding
everything the similarity measures need so the raw ratings are never
scanned again:

  - size              - number of co-raters (group cardinality)
  - dot_product       - Σ rating · rating_2
  - rating_sum        - Σ rating
  - rating_2_sum      - Σ rating_2
  - rating_norm_sq    - Σ rating²
  - rating_2_norm_sq  - Σ rating_2²
  - num_raters        - raters of ``item_id``   (joined from popularity)
  - num_raters_2      - raters of ``item_id_2`` (joined from popularity)

All aggregates are commutative and associative, so Spark reduces them
with a fixed-size buffer per key on each partition before the shuffle.
"""

from __future__ import annotations

import logging

from pyspark.sql import DataFrame
from pyspark.sql.functions import col, count, lit, sum as _sum

from microservices.item_similarity.src.schemas import PAIR_STATISTICS_SCHEMA

logger = logging.getLogger(__name__)


def compute_pair_statistics(
    rating_pairs: DataFrame,
    item_popularity: DataFrame,
) -> DataFrame:
    """Reduce per-user pair rows to per-pair sufficient statistics.

    Parameters
    ----------
    rating_pairs : DataFrame
        Output of :func:`generate_rating_pairs`.  Must contain:
        item_id, rating, item_id_2, rating_2.
    item_popularity : DataFrame
        Columns: ``item_id``, ``num_raters``; the single source of truth for
        rater counts.

    Returns
    -------
    DataFrame
        One row per ``(item_id, item_id_2)`` with the columns listed in the
        module docstring.
    """
    stats = rating_pairs.groupBy("item_id", "item_id_2").agg(
        count(lit(1)).alias("size"),
        _sum(col("rating") * col("rating_2")).alias("dot_product"),
        _sum(col("rating")).alias("rating_sum"),
        _sum(col("rating_2")).alias("rating_2_sum"),
        _sum(col("rating") * col("rating")).alias("rating_norm_sq"),
        _sum(col("rating_2") * col("rating_2")).alias("rating_2_norm_sq"),
    )

    # Rater counts are carried forward by join, not by a max() reduction.
    raters_1 = item_popularity.select(
        col("item_id"), col("num_raters"),
    )
    raters_2 = item_popularity.select(
        col("item_id").alias("item_id_2"), col("num_raters").alias("num_raters_2"),
    )

    result = (
        stats
        .join(raters_1, on="item_id", how="inner")
        .join(raters_2, on="item_id_2", how="inner")
        .select(*PAIR_STATISTICS_SCHEMA.fieldNames())
    )

    logger.info(
        "[aggregator] Aggregated pair statistics. Columns: %s", result.columns,
    )
    return result


def filter_min_intersection(
    pair_statistics: DataFrame,
    min_intersection: int = 50,
) -> DataFrame:
    """Remove item pairs with fewer than *min_intersection* co-raters.

    Parameters
    ----------
    pair_statistics : DataFrame
        Output of :func:`compute_pair_statistics` (must contain ``size``).
    min_intersection : int
        Minimum threshold.

    Returns
    -------
    DataFrame
        Filtered DataFrame.
    """
    before = pair_statistics.count()
    filtered = pair_statistics.filter(col("size") >= min_intersection)
    after = filtered.count()
    dropped = before - after
    logger.info(
        "[aggregator] Filtered item pairs: %d → %d (dropped %d with < %d co-raters).",
        before, after, dropped, min_intersection,
    )
    return filtered
