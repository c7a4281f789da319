"""
Result sink for the item-similarity microservice.

Writes the ``item_similarities`` projection in output-contract order.
``tsv`` reproduces the classic header-less similarity file; ``csv`` adds a
header; ``parquet`` keeps types.  NaN and ±Infinity are written as-is.
"""

from __future__ import annotations

import logging

from pyspark.sql import DataFrame

from microservices.item_similarity.src.retry import retry
from microservices.item_similarity.src.schemas import OUTPUT_COLUMNS

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("tsv", "csv", "parquet")


@retry(max_retries=3, backoff_sec=2.0, backoff_factor=2.0)
def write_similarities(
    df: DataFrame,
    path: str,
    fmt: str = "tsv",
    mode: str = "overwrite",
) -> None:
    """Write similarity records to *path*.

    Parameters
    ----------
    df : DataFrame
        Must contain every column in ``OUTPUT_COLUMNS``.
    path : str
        Target directory (local, ``hdfs://`` or any Hadoop filesystem).
    fmt : str
        One of ``tsv``, ``csv``, ``parquet``.
    mode : str
        Spark save mode; full recompute runs use ``overwrite``.

    Raises
    ------
    ValueError
        If *fmt* is not supported.
    """
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported output format {fmt!r}; expected one of {SUPPORTED_FORMATS}")

    projected = df.select(*OUTPUT_COLUMNS)

    if fmt == "parquet":
        projected.write.format("parquet").mode(mode).save(path)
    else:
        (
            projected.write.format("csv")
            .option("header", "true" if fmt == "csv" else "false")
            .option("delimiter", "\t" if fmt == "tsv" else ",")
            .mode(mode)
            .save(path)
        )

    logger.info("[writer] Similarities written → %s (format=%s, mode=%s)", path, fmt, mode)
