"""
Shared pytest fixtures for the item-similarity test suite.

Provides a lightweight local SparkSession and small rating DataFrames
with hand-checkable similarity values.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Set Python executable paths BEFORE importing pyspark so driver and
# workers agree on the interpreter.
os.environ["PYSPARK_PYTHON"] = sys.executable
os.environ["PYSPARK_DRIVER_PYTHON"] = sys.executable
os.environ["PYARROW_IGNORE_TIMEZONE"] = "1"

import pandas as pd
import pytest
from pyspark.sql import SparkSession
from pyspark.sql.types import StructType

try:
    import pyarrow  # noqa: F401
    HAS_PYARROW = True
except ImportError:  # pragma: no cover - environment dependent
    HAS_PYARROW = False

_project_root = str(Path(__file__).resolve().parents[3])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from microservices.item_similarity.src.schemas import RATINGS_SCHEMA


# ══════════════════════════════════════════════════════════════════════════
# Spark session (shared across all tests in the session)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def spark() -> SparkSession:
    """Create a lightweight local SparkSession for testing.

    Plain Python lists passed to ``createDataFrame`` are routed through
    pandas + Arrow, which builds a JVM-side LocalRelation instead of a
    PythonRDD, so fixture frames never need a Python worker.
    """
    session = (
        SparkSession.builder
        .master("local[1]")
        .appName("item-similarity-tests")
        .config("spark.ui.enabled", "false")
        .config("spark.sql.shuffle.partitions", "1")
        .config("spark.default.parallelism", "1")
        .config("spark.pyspark.python", sys.executable)
        .config("spark.pyspark.driver.python", sys.executable)
        .config("spark.executor.heartbeatInterval", "60s")
        .config("spark.network.timeout", "300s")
        .config(
            "spark.sql.execution.arrow.pyspark.enabled",
            "true" if HAS_PYARROW else "false",
        )
        .config("spark.sql.execution.arrow.pyspark.fallback.enabled", "true")
        .getOrCreate()
    )

    _orig_create = session.createDataFrame

    def _create_via_arrow(data, schema=None, samplingRatio=None, verifySchema=True):
        if not HAS_PYARROW or not isinstance(data, (list, tuple)):
            return _orig_create(
                data, schema=schema,
                samplingRatio=samplingRatio, verifySchema=verifySchema,
            )

        if isinstance(schema, StructType):
            col_names = [f.name for f in schema.fields]
        elif isinstance(schema, (list, tuple)):
            col_names = list(schema)
        else:
            return _orig_create(
                data, schema=schema,
                samplingRatio=samplingRatio, verifySchema=verifySchema,
            )

        if not data:
            # emptyRDD() has zero partitions and stays on the JVM side.
            if isinstance(schema, StructType):
                return _orig_create(session.sparkContext.emptyRDD(), schema=schema)
            return _orig_create(pd.DataFrame(columns=col_names))

        pdf = pd.DataFrame(list(data), columns=col_names)
        if isinstance(schema, StructType):
            return _orig_create(
                pdf, schema=schema,
                samplingRatio=samplingRatio, verifySchema=verifySchema,
            )
        return _orig_create(pdf, samplingRatio=samplingRatio, verifySchema=verifySchema)

    session.createDataFrame = _create_via_arrow

    yield session
    session.stop()


# ══════════════════════════════════════════════════════════════════════════
# Test data fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture()
def three_user_ratings(spark):
    """U1, U2, U3 rate A and B with (5, 4), (4, 5), (3, 3).

    Hand-computed for pair (A, B): size=3, dot=49, sums 12/12,
    norms² 50/50 → correlation 0.5, cosine 0.98, Jaccard 1.0.
    """
    data = [
        ("U1", "A", 5.0), ("U1", "B", 4.0),
        ("U2", "A", 4.0), ("U2", "B", 5.0),
        ("U3", "A", 3.0), ("U3", "B", 3.0),
    ]
    return spark.createDataFrame(data, RATINGS_SCHEMA)


@pytest.fixture()
def constant_rating_ratings(spark):
    """Every co-rater gives item A the same rating (zero variance)."""
    data = [
        ("U1", "A", 4.0), ("U1", "B", 1.0),
        ("U2", "A", 4.0), ("U2", "B", 2.0),
        ("U3", "A", 4.0), ("U3", "B", 3.0),
    ]
    return spark.createDataFrame(data, RATINGS_SCHEMA)


def _catalog_rows() -> list[tuple[str, str, float]]:
    """12 users over items i1–i5, plus ``rare`` rated by only two users."""
    rows = []
    for u in range(1, 13):
        for i in range(1, 6):
            # Skip some (user, item) cells so intersections differ.
            if (u + i) % 4 == 0:
                continue
            rows.append((f"u{u:02d}", f"i{i}", float((u * 7 + i * 3) % 5 + 1)))
    rows.append(("u01", "rare", 5.0))
    rows.append(("u02", "rare", 1.0))
    return rows


@pytest.fixture()
def catalog_rows() -> list[tuple[str, str, float]]:
    return _catalog_rows()


@pytest.fixture()
def catalog_ratings(spark, catalog_rows):
    return spark.createDataFrame(catalog_rows, RATINGS_SCHEMA)


@pytest.fixture()
def sample_config(tmp_path):
    """Write a minimal job config YAML around a tiny u.data-style file."""
    import yaml

    ratings_file = tmp_path / "u.data"
    ratings_file.write_text(
        "".join(f"{u}\t{i}\t{int(r)}\t881250949\n" for u, i, r in _catalog_rows()),
        encoding="utf-8",
    )

    cfg = {
        "spark": {"app_name": "item-similarity-test", "config": {}},
        "source": {"path": str(ratings_file), "delimiter": "\t"},
        "target": {"path": str(tmp_path / "out"), "format": "tsv"},
        "similarity": {
            "minNumRaters": 3,
            "maxNumRaters": 100,
            "minIntersection": 2,
            "priorCount": 10,
            "priorCorrelation": 0,
        },
        "data_quality": {"enabled": True, "min_row_count": 1},
        "lineage": {
            "enabled": True,
            "pipeline_version": "1.0.0-test",
            "output_dir": str(tmp_path / "lineage"),
        },
    }

    config_file = tmp_path / "item_similarity_config.yaml"
    with open(config_file, "w", encoding="utf-8") as fh:
        yaml.dump(cfg, fh, default_flow_style=False)

    return str(config_file)
