"""
Spark session factory for the item-similarity microservice.

The pair self-join and the per-pair aggregation are both shuffles, so
``spark.sql.shuffle.partitions`` and AQE settings from the YAML ``spark``
section matter most for large rating logs.
"""

from __future__ import annotations

import logging

from pyspark.sql import SparkSession

logger = logging.getLogger(__name__)


def get_spark_session(
    app_name: str = "item-similarity",
    master: str | None = None,
    extra_config: dict[str, str] | None = None,
) -> SparkSession:
    """Build (or retrieve) a configured SparkSession.

    Parameters
    ----------
    app_name : str
        Application name shown in the Spark UI.
    master : str | None
        Spark master URL.  ``None`` → leave it to ``spark-submit``.
    extra_config : dict[str, str] | None
        Arbitrary Spark configuration key-value pairs.
    """
    builder = SparkSession.builder.appName(app_name)

    if master:
        builder = builder.master(master)

    for key, value in (extra_config or {}).items():
        builder = builder.config(key, str(value))

    session = builder.getOrCreate()
    logger.info(
        "[spark] Session ready (app=%s, master=%s).",
        app_name, session.sparkContext.master,
    )
    return session
