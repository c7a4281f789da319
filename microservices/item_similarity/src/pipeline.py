"""
Item-similarity pipeline.

Given a dataset of ratings, how similar is every pair of items?  Each item
is represented as a sparse vector of its ratings and compared with
correlation, regularised correlation, cosine and Jaccard similarity.

Stages (data flows strictly forward)::

    ratings
      → rate_popularity   count distinct raters, keep items in the band
      → pair_ratings      user self-join, one row per co-rated pair
      → vector_calcs      per-pair sufficient statistics, min-intersection
      → similarities      four scores per surviving pair
      → project_output    output-contract column order

The pipeline only composes DataFrame transformations; Spark decides how
the group-by and join stages are partitioned and executed.
"""

from __future__ import annotations

import logging
from typing import Optional

from pyspark import StorageLevel
from pyspark.sql import DataFrame

from microservices.item_similarity.src.aggregator import (
    compute_pair_statistics,
    filter_min_intersection,
)
from microservices.item_similarity.src.config_loader import (
    ConfigurationError,
    SimilarityConfig,
)
from microservices.item_similarity.src.pair_generator import generate_rating_pairs
from microservices.item_similarity.src.popularity import (
    attach_num_raters,
    count_item_raters,
    filter_by_popularity,
    filter_item_popularity,
)
from microservices.item_similarity.src.schemas import OUTPUT_COLUMNS
from microservices.item_similarity.src.similarity import add_similarity_scores

logger = logging.getLogger(__name__)


class ItemSimilarityPipeline:
    """Compute pairwise item similarities from ``(user_id, item_id, rating)`` rows.

    Parameters
    ----------
    config : SimilarityConfig, optional
        Thresholds and regularisation parameters.  Defaults to
        ``SimilarityConfig()``.

    Raises
    ------
    ConfigurationError
        If *config* is not a :class:`SimilarityConfig`.
    """

    def __init__(self, config: Optional[SimilarityConfig] = None) -> None:
        if config is None:
            config = SimilarityConfig()
        if not isinstance(config, SimilarityConfig):
            raise ConfigurationError(
                f"[pipeline] Expected SimilarityConfig, got {type(config).__name__}"
            )
        self.config = config
        self._persisted: list[DataFrame] = []

    def _persist(self, df: DataFrame) -> DataFrame:
        # Each filter counts its input before and after; the self-join and
        # the pair aggregation must only run once.
        df = df.persist(StorageLevel.MEMORY_AND_DISK)
        self._persisted.append(df)
        return df

    def unpersist_intermediates(self) -> None:
        """Release frames persisted by :meth:`rate_popularity` and :meth:`vector_calcs`.

        Call once the result of :meth:`run` has itself been cached and
        materialised; releasing earlier forces Spark to recompute the pairs.
        """
        for df in self._persisted:
            df.unpersist()
        logger.info("[pipeline] Released %d intermediate frame(s).", len(self._persisted))
        self._persisted = []

    # ── stages ───────────────────────────────────────────────────────

    def rate_popularity(self, ratings: DataFrame) -> tuple[DataFrame, DataFrame]:
        """Attach ``num_raters`` to every rating and drop out-of-band items.

        Returns
        -------
        tuple[DataFrame, DataFrame]
            ``(ratings_with_size, item_popularity)``, both restricted to
            items inside the popularity band.
        """
        cfg = self.config
        popularity = count_item_raters(ratings)
        ratings_with_size = filter_by_popularity(
            self._persist(attach_num_raters(ratings, popularity)),
            cfg.min_num_raters,
            cfg.max_num_raters,
        )
        item_popularity = filter_item_popularity(
            popularity, cfg.min_num_raters, cfg.max_num_raters,
        )
        return ratings_with_size, item_popularity

    def pair_ratings(self, ratings_with_size: DataFrame) -> DataFrame:
        return generate_rating_pairs(ratings_with_size)

    def vector_calcs(self, rating_pairs: DataFrame, item_popularity: DataFrame) -> DataFrame:
        """Sufficient statistics per item pair, pruned by co-rater support."""
        stats = self._persist(compute_pair_statistics(rating_pairs, item_popularity))
        return filter_min_intersection(stats, self.config.min_intersection)

    def similarities(self, vector_calcs: DataFrame) -> DataFrame:
        return add_similarity_scores(
            vector_calcs,
            prior_count=self.config.prior_count,
            prior_correlation=self.config.prior_correlation,
        )

    @staticmethod
    def project_output(similarities: DataFrame) -> DataFrame:
        """Select the output-contract fields in order."""
        return similarities.select(*OUTPUT_COLUMNS)

    # ── end to end ───────────────────────────────────────────────────

    def run(self, ratings: DataFrame) -> DataFrame:
        """Run every stage and return the ``item_similarities`` DataFrame.

        Empty input, or input where no pair survives the filters, yields an
        empty DataFrame rather than an error.

        The popularity-joined ratings and the pair statistics stay persisted
        after the call; cache the result, run an action on it, then call
        :meth:`unpersist_intermediates`.
        """
        logger.info("[pipeline] Running item similarities with %r", self.config)

        ratings_with_size, item_popularity = self.rate_popularity(ratings)
        rating_pairs = self.pair_ratings(ratings_with_size)
        vector_calcs = self.vector_calcs(rating_pairs, item_popularity)
        result = self.project_output(self.similarities(vector_calcs))

        logger.info("[pipeline] Item similarity plan built.")
        return result
