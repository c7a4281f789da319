"""
Pipeline step 2 – Similarity Computation.

Builds the validated :class:`SimilarityConfig` from the ``similarity``
section of the job config and runs the item-similarity pipeline:
popularity filter, pair generation, sufficient statistics, scores.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from pyspark.sql import DataFrame

_project_root = str(Path(__file__).resolve().parents[4])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from microservices.item_similarity.src.config_loader import SimilarityConfig
from microservices.item_similarity.src.pipeline import ItemSimilarityPipeline

logger = logging.getLogger(__name__)


def run_similarity_computation(
    ratings: DataFrame,
    cfg: dict,
) -> DataFrame:
    """Execute the similarity computation step.

    Parameters
    ----------
    ratings : DataFrame
        Validated ratings (output of the rating intake step).
    cfg : dict
        Full job config dict.

    Returns
    -------
    DataFrame
        ``item_similarities`` in output-contract column order.

    Raises
    ------
    ConfigurationError
        If the ``similarity`` section holds unknown or out-of-range options.
    """
    sim_config = SimilarityConfig.from_dict(cfg.get("similarity", {}))
    pipeline = ItemSimilarityPipeline(sim_config)
    # Cached: counted here, then validated, written and counted again.
    similarities = pipeline.run(ratings).cache()
    row_count = similarities.count()
    pipeline.unpersist_intermediates()

    logger.info("[similarity_computation] item_similarities=%d rows.", row_count)
    return similarities
