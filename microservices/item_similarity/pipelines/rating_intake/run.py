"""
Pipeline step 1 - Rating Intake: read and validate the rating log.

Reads ``(user, item, rating)`` triples from the configured delimited
source and validates them against the input contract.  A malformed
record aborts the run with :class:`InputFormatError`.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from pyspark.sql import DataFrame, SparkSession

_project_root = str(Path(__file__).resolve().parents[4])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from microservices.item_similarity.src.rating_validator import validate_ratings
from microservices.item_similarity.src.ratings_reader import (
    RatingsReader,
    RatingsReaderConfig,
)

logger = logging.getLogger(__name__)


def read_ratings(spark: SparkSession, cfg: dict) -> DataFrame:
    """Execute the rating intake step.

    Parameters
    ----------
    spark : SparkSession
        Active session.
    cfg : dict
        Full job config dict (must contain ``source.path``).

    Returns
    -------
    DataFrame
        Validated ratings: ``user_id``, ``item_id``, ``rating``.
    """
    source_cfg = cfg["source"]
    if not source_cfg.get("path"):
        raise ValueError("[rating_intake] 'source.path' is not configured.")

    raw = RatingsReader(spark).read(RatingsReaderConfig.from_dict(source_cfg))
    ratings = validate_ratings(raw)

    logger.info("[rating_intake] Ratings ready from %s", source_cfg["path"])
    return ratings
