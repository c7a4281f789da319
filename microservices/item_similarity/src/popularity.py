"""
Popularity filter for the item-similarity microservice.

Counts the distinct raters of every item, re-attaches that count to each
rating of the item and drops ratings whose item falls outside the
``[min_num_raters, max_num_raters]`` popularity band.

Items with too few raters cannot yield a meaningful similarity; items
with very many raters dominate the quadratic pair fan-out downstream.
"""

from __future__ import annotations

import logging

from pyspark.sql import DataFrame
from pyspark.sql.functions import col, countDistinct

from microservices.item_similarity.src.schemas import RATINGS_WITH_SIZE_SCHEMA

logger = logging.getLogger(__name__)


def count_item_raters(ratings: DataFrame) -> DataFrame:
    """Count distinct users per item.

    Parameters
    ----------
    ratings : DataFrame
        Columns: ``user_id``, ``item_id``, ``rating``.

    Returns
    -------
    DataFrame
        Columns: ``item_id``, ``num_raters``.
    """
    return ratings.groupBy("item_id").agg(
        countDistinct("user_id").alias("num_raters")
    )


def attach_num_raters(ratings: DataFrame, item_popularity: DataFrame) -> DataFrame:
    """Join ``num_raters`` onto every rating of the item."""
    return ratings.join(item_popularity, on="item_id", how="inner").select(
        *RATINGS_WITH_SIZE_SCHEMA.fieldNames()
    )


def _in_band(min_num_raters: int, max_num_raters: int):
    return (col("num_raters") >= min_num_raters) & (col("num_raters") <= max_num_raters)


def filter_item_popularity(
    item_popularity: DataFrame,
    min_num_raters: int = 3,
    max_num_raters: int = 10000,
) -> DataFrame:
    """Keep only items whose rater count lies in the popularity band."""
    return item_popularity.filter(_in_band(min_num_raters, max_num_raters))


def filter_by_popularity(
    ratings_with_size: DataFrame,
    min_num_raters: int = 3,
    max_num_raters: int = 10000,
) -> DataFrame:
    """Remove ratings of items outside the popularity band.

    Parameters
    ----------
    ratings_with_size : DataFrame
        Ratings carrying ``num_raters`` (output of :func:`attach_num_raters`).
    min_num_raters, max_num_raters : int
        Inclusive band bounds.

    Returns
    -------
    DataFrame
        Filtered DataFrame.
    """
    before = ratings_with_size.count()
    filtered = ratings_with_size.filter(_in_band(min_num_raters, max_num_raters))
    after = filtered.count()
    logger.info(
        "[popularity] Filtered ratings: %d → %d (dropped %d outside [%d, %d] raters).",
        before, after, before - after, min_num_raters, max_num_raters,
    )
    return filtered
