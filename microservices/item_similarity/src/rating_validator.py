"""
Input validation for the item-similarity microservice.

The core trusts the source adapter for everything except the three
fields it computes on.  Checks performed:
  1. Required columns present  – ``user_id``, ``item_id``, ``rating``
  2. Type casting              – ``rating`` cast to double
  3. Malformed records         – null identifiers, null / NaN /
                                 non-numeric ratings

The first offending record aborts the run with :class:`InputFormatError`;
nothing is coerced, dropped or repaired.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pyspark.sql import DataFrame
from pyspark.sql.functions import col, expr, isnan

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: tuple[str, ...] = ("user_id", "item_id", "rating")

# Optional source text of identifiers the adapter already cast; reported
# in place of the cast value when a record is rejected.
RAW_ID_COLUMNS: dict[str, str] = {
    "user_id": "_raw_user_id",
    "item_id": "_raw_item_id",
}


class InputFormatError(Exception):
    """Raised when a rating record is malformed or missing a value.

    Attributes
    ----------
    record : dict | None
        The offending record as read from the source, if any.
    """

    def __init__(self, message: str, record: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.record = record


def validate_ratings(df: DataFrame) -> DataFrame:
    """Validate raw ratings and return the typed ``(user_id, item_id, rating)`` frame.

    Parameters
    ----------
    df : DataFrame
        Raw ratings from the source adapter.  Extra columns are dropped.

    Returns
    -------
    DataFrame
        Columns: ``user_id``, ``item_id``, ``rating`` (double).

    Raises
    ------
    InputFormatError
        If a required column is missing or any record is malformed.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise InputFormatError(
            f"[rating_validator] Missing required columns: {missing}"
        )

    # try_cast keeps non-numeric strings as NULL even under ANSI mode.
    raw_ids = [
        col(raw if raw in df.columns else name).alias(raw)
        for name, raw in RAW_ID_COLUMNS.items()
    ]
    checked = df.select(
        col("user_id"),
        col("item_id"),
        *raw_ids,
        col("rating").alias("_raw_rating"),
        expr("try_cast(rating AS DOUBLE)").alias("rating"),
    )

    malformed = checked.filter(
        col("user_id").isNull()
        | col("item_id").isNull()
        | col("rating").isNull()
        | isnan(col("rating"))
    )
    offending = malformed.first()
    if offending is not None:
        record = {
            "user_id": offending[RAW_ID_COLUMNS["user_id"]],
            "item_id": offending[RAW_ID_COLUMNS["item_id"]],
            "rating": offending["_raw_rating"],
        }
        logger.error("[rating_validator] Malformed rating record: %s", record)
        raise InputFormatError(
            f"[rating_validator] Malformed rating record: {record}",
            record=record,
        )

    logger.info("[rating_validator] Ratings passed input validation.")
    return checked.select("user_id", "item_id", "rating")
