"""
Delimited rating-log reader for the item-similarity microservice.

Concrete source adapter for ``user <sep> item <sep> rating [<sep> ...]``
files such as MovieLens ``u.data``.  It only locates and names the three
fields; typing and malformed-row handling belong to
:mod:`rating_validator`.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.functions import col, expr

from microservices.item_similarity.src.rating_validator import RAW_ID_COLUMNS
from microservices.item_similarity.src.retry import retry

logger = logging.getLogger(__name__)

_ID_TYPES = {"string": "STRING", "long": "BIGINT"}


class RatingsReaderConfig:
    """Immutable configuration object for a single rating-log read."""

    def __init__(
        self,
        path: str,
        delimiter: str = "\t",
        has_header: bool = False,
        user_column: int = 0,
        item_column: int = 1,
        rating_column: int = 2,
        id_type: str = "string",
        encoding: str = "utf-8",
    ) -> None:
        if id_type not in _ID_TYPES:
            raise ValueError(
                f"id_type must be one of {sorted(_ID_TYPES)}, got {id_type!r}"
            )
        self.path = path
        self.delimiter = delimiter
        self.has_header = has_header
        self.user_column = user_column
        self.item_column = item_column
        self.rating_column = rating_column
        self.id_type = id_type
        self.encoding = encoding

    @classmethod
    def from_dict(cls, source_cfg: dict) -> "RatingsReaderConfig":
        """Build from the ``source`` section of the job config."""
        return cls(
            path=source_cfg["path"],
            delimiter=source_cfg.get("delimiter", "\t"),
            has_header=source_cfg.get("has_header", False),
            user_column=source_cfg.get("user_column", 0),
            item_column=source_cfg.get("item_column", 1),
            rating_column=source_cfg.get("rating_column", 2),
            id_type=source_cfg.get("id_type", "string"),
            encoding=source_cfg.get("encoding", "utf-8"),
        )


class RatingsReader:
    """Read delimited rating logs into ``(user_id, item_id, rating)`` frames.

    The source text of both identifiers is kept in ``_raw_user_id`` and
    ``_raw_item_id`` so a failed id cast can be reported as read.

    Examples
    --------
    >>> reader = RatingsReader(spark)
    >>> ratings = reader.read(RatingsReaderConfig(path="/data/ml-100k/u.data"))
    >>> ratings.columns
    ['user_id', 'item_id', 'rating', '_raw_user_id', '_raw_item_id']
    """

    def __init__(self, spark: SparkSession) -> None:
        self._spark = spark

    def read(self, config: RatingsReaderConfig) -> DataFrame:
        """Read a rating log.

        Raises
        ------
        FileNotFoundError
            When a local source path does not exist.
        ValueError
            When the file has fewer columns than the configured positions.
        """
        if "://" not in config.path and not Path(config.path).exists():
            raise FileNotFoundError(f"Ratings path does not exist: {config.path}")

        logger.info("[ratings_reader] Reading ratings from: %s", config.path)
        raw = self._load(config)

        positions = (config.user_column, config.item_column, config.rating_column)
        if max(positions) >= len(raw.columns):
            raise ValueError(
                f"Ratings file has {len(raw.columns)} column(s); "
                f"configured positions are {positions}"
            )

        id_sql_type = _ID_TYPES[config.id_type]
        user_src = raw.columns[config.user_column]
        item_src = raw.columns[config.item_column]
        rating_src = raw.columns[config.rating_column]

        ratings = raw.select(
            expr(f"try_cast(`{user_src}` AS {id_sql_type})").alias("user_id"),
            expr(f"try_cast(`{item_src}` AS {id_sql_type})").alias("item_id"),
            col(rating_src).alias("rating"),
            col(user_src).alias(RAW_ID_COLUMNS["user_id"]),
            col(item_src).alias(RAW_ID_COLUMNS["item_id"]),
        )
        return ratings

    @retry(max_retries=3, backoff_sec=2.0, backoff_factor=2.0)
    def _load(self, config: RatingsReaderConfig) -> DataFrame:
        return (
            self._spark.read.format("csv")
            .option("header", str(config.has_header).lower())
            .option("delimiter", config.delimiter)
            .option("encoding", config.encoding)
            .option("inferSchema", "false")
            .load(config.path)
        )
