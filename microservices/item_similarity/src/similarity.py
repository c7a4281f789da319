"""
Similarity measures for the item-similarity microservice.

Each item is a sparse vector of its ratings; the four measures below are
evaluated from the per-pair sufficient statistics produced by the
aggregator, never from the raw ratings.

Measures
--------
correlation
    cov(A, B) / (stdDev(A) * stdDev(B)), computed as::

        [n * dot(A, B) - sum(A) * sum(B)] /
            sqrt{ [n * norm(A)^2 - sum(A)^2] [n * norm(B)^2 - sum(B)^2] }

regularized correlation
    ``w * correlation + (1 - w) * prior`` with ``w = n / (n + virtual)``.

cosine similarity
    dot(A, B) / (norm(A) * norm(B))

Jaccard similarity
    |A ∩ B| / |A ∪ B| over the sets of users who rated each item.

Every measure keeps IEEE semantics: a zero denominator yields NaN or
±Infinity, which is passed through to the output untouched.  The module
exposes the same formulas twice: scalar functions on Python floats and
Column builders evaluated inside Spark.
"""

from __future__ import annotations

import logging
import math

from pyspark.sql import Column, DataFrame
from pyspark.sql import functions as F

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Scalar measures
# ══════════════════════════════════════════════════════════════════════════

def _divide(numerator: float, denominator: float) -> float:
    """IEEE division: ``x / 0`` is ±inf, ``0 / 0`` is NaN."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)
    return numerator / denominator


def _sqrt(value: float) -> float:
    return math.sqrt(value) if value >= 0 else math.nan


def correlation(
    size: float,
    dot_product: float,
    rating_sum: float,
    rating_2_sum: float,
    rating_norm_sq: float,
    rating_2_norm_sq: float,
) -> float:
    """Pearson correlation of two rating vectors.

    NaN when either vector is constant over the co-raters.
    """
    numerator = size * dot_product - rating_sum * rating_2_sum
    denominator = (
        _sqrt(size * rating_norm_sq - rating_sum * rating_sum)
        * _sqrt(size * rating_2_norm_sq - rating_2_sum * rating_2_sum)
    )
    return _divide(numerator, denominator)


def regularized_correlation(
    size: float,
    dot_product: float,
    rating_sum: float,
    rating_2_sum: float,
    rating_norm_sq: float,
    rating_2_norm_sq: float,
    virtual_count: float,
    prior_correlation: float,
) -> float:
    """Shrink correlation towards *prior_correlation* using *virtual_count* pseudo-pairs."""
    unregularized = correlation(
        size, dot_product, rating_sum, rating_2_sum, rating_norm_sq, rating_2_norm_sq,
    )
    w = _divide(size, size + virtual_count)
    return w * unregularized + (1 - w) * prior_correlation


def cosine_similarity(dot_product: float, rating_norm: float, rating_2_norm: float) -> float:
    return _divide(dot_product, rating_norm * rating_2_norm)


def jaccard_similarity(
    users_in_common: float,
    total_users_1: float,
    total_users_2: float,
) -> float:
    union = total_users_1 + total_users_2 - users_in_common
    return _divide(users_in_common, union)


# ══════════════════════════════════════════════════════════════════════════
# Column measures
# ══════════════════════════════════════════════════════════════════════════

def _divide_col(numerator: Column, denominator: Column) -> Column:
    # Spark returns NULL (or fails under ANSI mode) on a zero divisor.
    return (
        F.when(denominator != 0, numerator / denominator)
        .when(F.isnan(numerator) | (numerator == 0), F.lit(math.nan))
        .when(numerator > 0, F.lit(math.inf))
        .otherwise(F.lit(-math.inf))
    )


def _as_double(name: str) -> Column:
    return F.col(name).cast("double")


def correlation_col(
    size: str = "size",
    dot_product: str = "dot_product",
    rating_sum: str = "rating_sum",
    rating_2_sum: str = "rating_2_sum",
    rating_norm_sq: str = "rating_norm_sq",
    rating_2_norm_sq: str = "rating_2_norm_sq",
) -> Column:
    """Column expression for :func:`correlation` over the named columns."""
    n = _as_double(size)
    s1, s2 = _as_double(rating_sum), _as_double(rating_2_sum)
    numerator = n * _as_double(dot_product) - s1 * s2
    denominator = (
        F.sqrt(n * _as_double(rating_norm_sq) - s1 * s1)
        * F.sqrt(n * _as_double(rating_2_norm_sq) - s2 * s2)
    )
    return _divide_col(numerator, denominator)


def regularized_correlation_col(
    virtual_count: float,
    prior_correlation: float,
    size: str = "size",
    correlation: Column | None = None,
) -> Column:
    """Column expression for :func:`regularized_correlation`.

    *correlation* defaults to :func:`correlation_col` over the standard
    pair-statistics columns.
    """
    corr = correlation if correlation is not None else correlation_col(size=size)
    n = _as_double(size)
    w = _divide_col(n, n + F.lit(float(virtual_count)))
    return w * corr + (F.lit(1.0) - w) * F.lit(float(prior_correlation))


def cosine_similarity_col(
    dot_product: str = "dot_product",
    rating_norm_sq: str = "rating_norm_sq",
    rating_2_norm_sq: str = "rating_2_norm_sq",
) -> Column:
    norms = F.sqrt(_as_double(rating_norm_sq)) * F.sqrt(_as_double(rating_2_norm_sq))
    return _divide_col(_as_double(dot_product), norms)


def jaccard_similarity_col(
    size: str = "size",
    num_raters: str = "num_raters",
    num_raters_2: str = "num_raters_2",
) -> Column:
    n = _as_double(size)
    union = _as_double(num_raters) + _as_double(num_raters_2) - n
    return _divide_col(n, union)


def add_similarity_scores(
    pair_statistics: DataFrame,
    prior_count: float,
    prior_correlation: float,
) -> DataFrame:
    """Append the four similarity columns to a pair-statistics DataFrame.

    Parameters
    ----------
    pair_statistics : DataFrame
        Output of :func:`compute_pair_statistics` (after the intersection
        filter).
    prior_count : float
        Virtual pseudo-count for regularisation.
    prior_correlation : float
        Shrinkage target.

    Returns
    -------
    DataFrame
        Input columns plus ``correlation``, ``regularized_correlation``,
        ``cosine_similarity`` and ``jaccard_similarity``.  No row is
        dropped and no non-finite value is replaced.
    """
    result = (
        pair_statistics
        .withColumn("correlation", correlation_col())
        .withColumn(
            "regularized_correlation",
            regularized_correlation_col(
                prior_count, prior_correlation, correlation=F.col("correlation"),
            ),
        )
        .withColumn("cosine_similarity", cosine_similarity_col())
        .withColumn("jaccard_similarity", jaccard_similarity_col())
    )
    logger.info(
        "[similarity] Scored item pairs (prior_count=%s, prior_correlation=%s).",
        prior_count, prior_correlation,
    )
    return result
