"""
PySpark schema definitions for the item-similarity microservice.

Governance
----------
- Explicit schema definitions prevent positional-index bugs between stages.
- Schema versions enable forward-compatible evolution.
- ``OUTPUT_COLUMNS`` fixes the field order handed to the result sink.

Data flows strictly forward through these layouts::

    ratings → ratings_with_size → rating_pairs → pair_statistics
            → item_similarities
"""

from __future__ import annotations

from pyspark.sql.types import (
    DoubleType,
    LongType,
    StringType,
    StructField,
    StructType,
)

# ══════════════════════════════════════════════════════════════════════════
# Schema versions  (Governance)
# ══════════════════════════════════════════════════════════════════════════
RATINGS_SCHEMA_VERSION = "1.0.0"
PAIR_STATISTICS_SCHEMA_VERSION = "1.0.0"
ITEM_SIMILARITIES_SCHEMA_VERSION = "1.0.0"

SCHEMA_VERSIONS: dict[str, str] = {
    "ratings": RATINGS_SCHEMA_VERSION,
    "pair_statistics": PAIR_STATISTICS_SCHEMA_VERSION,
    "item_similarities": ITEM_SIMILARITIES_SCHEMA_VERSION,
}

# ══════════════════════════════════════════════════════════════════════════
# INPUT schema - (user, item, rating) triples from the source adapter
# ══════════════════════════════════════════════════════════════════════════

RATINGS_SCHEMA = StructType([
    StructField("user_id", StringType(), nullable=False),
    StructField("item_id", StringType(), nullable=False),
    StructField("rating", DoubleType(), nullable=False),
])

# ══════════════════════════════════════════════════════════════════════════
# INTERMEDIATE schemas - ephemeral, recomputed every run
# ══════════════════════════════════════════════════════════════════════════

ITEM_POPULARITY_SCHEMA = StructType([
    StructField("item_id", StringType(), nullable=False),
    StructField("num_raters", LongType(), nullable=False),
])

RATINGS_WITH_SIZE_SCHEMA = StructType([
    StructField("user_id", StringType(), nullable=False),
    StructField("item_id", StringType(), nullable=False),
    StructField("rating", DoubleType(), nullable=False),
    StructField("num_raters", LongType(), nullable=False),
])

# One row per (user, unordered item pair); the user is dropped.
RATING_PAIRS_SCHEMA = StructType([
    StructField("item_id", StringType(), nullable=False),
    StructField("rating", DoubleType(), nullable=False),
    StructField("num_raters", LongType(), nullable=False),
    StructField("item_id_2", StringType(), nullable=False),
    StructField("rating_2", DoubleType(), nullable=False),
    StructField("num_raters_2", LongType(), nullable=False),
])

PAIR_STATISTICS_SCHEMA = StructType([
    StructField("item_id", StringType(), nullable=False),
    StructField("item_id_2", StringType(), nullable=False),
    StructField("size", LongType(), nullable=False),
    StructField("dot_product", DoubleType(), nullable=False),
    StructField("rating_sum", DoubleType(), nullable=False),
    StructField("rating_2_sum", DoubleType(), nullable=False),
    StructField("rating_norm_sq", DoubleType(), nullable=False),
    StructField("rating_2_norm_sq", DoubleType(), nullable=False),
    StructField("num_raters", LongType(), nullable=False),
    StructField("num_raters_2", LongType(), nullable=False),
])

# ══════════════════════════════════════════════════════════════════════════
# OUTPUT schema - one row per surviving item pair
# ══════════════════════════════════════════════════════════════════════════

# Scores are nullable=False but may hold NaN / ±Infinity.
ITEM_SIMILARITIES_SCHEMA = StructType([
    StructField("item_id", StringType(), nullable=False),
    StructField("item_id_2", StringType(), nullable=False),
    StructField("correlation", DoubleType(), nullable=False),
    StructField("regularized_correlation", DoubleType(), nullable=False),
    StructField("cosine_similarity", DoubleType(), nullable=False),
    StructField("jaccard_similarity", DoubleType(), nullable=False),
    StructField("size", LongType(), nullable=False),
    StructField("num_raters", LongType(), nullable=False),
    StructField("num_raters_2", LongType(), nullable=False),
])

OUTPUT_COLUMNS: list[str] = [f.name for f in ITEM_SIMILARITIES_SCHEMA.fields]

SCORE_COLUMNS: list[str] = [
    "correlation",
    "regularized_correlation",
    "cosine_similarity",
    "jaccard_similarity",
]

# ══════════════════════════════════════════════════════════════════════════
# Schema registry  (Governance)
# ══════════════════════════════════════════════════════════════════════════

INPUT_SCHEMA_REGISTRY: dict[str, StructType] = {
    "ratings": RATINGS_SCHEMA,
}

INTERMEDIATE_SCHEMA_REGISTRY: dict[str, StructType] = {
    "item_popularity": ITEM_POPULARITY_SCHEMA,
    "ratings_with_size": RATINGS_WITH_SIZE_SCHEMA,
    "rating_pairs": RATING_PAIRS_SCHEMA,
    "pair_statistics": PAIR_STATISTICS_SCHEMA,
}

OUTPUT_SCHEMA_REGISTRY: dict[str, StructType] = {
    "item_similarities": ITEM_SIMILARITIES_SCHEMA,
}
