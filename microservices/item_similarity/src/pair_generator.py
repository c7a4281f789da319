"""
Pair generation for the item-similarity microservice.

Self-joins the popularity-filtered ratings on ``user_id`` to find every
pair of items a user has rated.  The canonical-order condition
``a.item_id < b.item_id`` is part of the join condition, so each
unordered pair is emitted once per co-rater, never as ``(B, A)`` and
never as ``(A, A)``.

This step is quadratic in the number of items a single user rated and is
the dominant cost of the whole job; the popularity filter upstream bounds
that fan-out.
"""

from __future__ import annotations

import logging

from pyspark.sql import DataFrame
from pyspark.sql import functions as F

from microservices.item_similarity.src.schemas import RATINGS_WITH_SIZE_SCHEMA

logger = logging.getLogger(__name__)


def generate_rating_pairs(ratings_with_size: DataFrame) -> DataFrame:
    """Emit one row per (user, unordered item pair).

    Parameters
    ----------
    ratings_with_size : DataFrame
        Columns: ``user_id``, ``item_id``, ``rating``, ``num_raters``.

    Returns
    -------
    DataFrame
        Columns: ``item_id``, ``rating``, ``num_raters``, ``item_id_2``,
        ``rating_2``, ``num_raters_2``.
    """
    slim = ratings_with_size.select(*RATINGS_WITH_SIZE_SCHEMA.fieldNames())
    a = slim.alias("a")
    b = slim.alias("b")

    pairs = a.join(
        b,
        (F.col("a.user_id") == F.col("b.user_id"))
        & (F.col("a.item_id") < F.col("b.item_id")),
        how="inner",
    ).select(
        F.col("a.item_id").alias("item_id"),
        F.col("a.rating").alias("rating"),
        F.col("a.num_raters").alias("num_raters"),
        F.col("b.item_id").alias("item_id_2"),
        F.col("b.rating").alias("rating_2"),
        F.col("b.num_raters").alias("num_raters_2"),
    )

    logger.info("[pair_generator] Built co-rated item pairs via user self-join.")
    return pairs
