"""
Item Similarity Pipeline - Orchestrator.

Runs the complete batch job in sequence:
  1. Rating Intake          → Read + validate (user, item, rating) triples
  2. Similarity Computation → Popularity filter, pair generation,
                              sufficient statistics, four scores
  *  Data Quality           → Output invariants gate       (Reliability)
  *  Write                  → TSV / CSV / Parquet sink
  *  Lineage record         → Audit trail saved as JSON    (Governance)

Every run is a full recompute; the target is overwritten.

Usage
-----
    spark-submit \\
        --master spark://master:7077 \\
        microservices/item_similarity/pipelines/compute_item_similarities.py \\
        --config microservices/item_similarity/config/item_similarity_config.yaml \\
        [--input /data/ml-100k/u.data] [--output /data/similarities]
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

_project_root = str(Path(__file__).resolve().parents[3])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from microservices.item_similarity.src.config_loader import (
    SimilarityConfig,
    load_config,
)
from microservices.item_similarity.src.data_quality import SimilarityOutputValidator
from microservices.item_similarity.src.lineage import SimilarityRunRecord, save_lineage
from microservices.item_similarity.src.logging_config import configure_logging
from microservices.item_similarity.src.schemas import SCHEMA_VERSIONS
from microservices.item_similarity.src.similarity_writer import write_similarities
from microservices.item_similarity.src.spark_session import get_spark_session

from microservices.item_similarity.pipelines.rating_intake.run import read_ratings
from microservices.item_similarity.pipelines.similarity_computation.run import (
    run_similarity_computation,
)

logger = logging.getLogger(__name__)


def main(
    config_path: str,
    input_path: Optional[str] = None,
    output_path: Optional[str] = None,
) -> int:
    """Execute the full item-similarity job.

    Parameters
    ----------
    config_path : str
        Path to ``item_similarity_config.yaml``.
    input_path, output_path : str, optional
        Override ``source.path`` / ``target.path`` from the config.

    Returns
    -------
    int
        Number of similarity records written.
    """
    cfg = load_config(config_path)
    if input_path:
        cfg["source"]["path"] = input_path
    if output_path:
        cfg["target"]["path"] = output_path
    if not cfg["target"].get("path"):
        raise ValueError("[pipeline] 'target.path' is not configured.")

    # Fail fast on bad thresholds before Spark starts.
    sim_config = SimilarityConfig.from_dict(cfg["similarity"])
    logger.info("=== Item Similarity Pipeline [%r] ===", sim_config)

    # ── Lineage setup (Governance) ─────────────────────────────────────
    lineage_cfg = cfg["lineage"]
    lineage: SimilarityRunRecord | None = None
    if lineage_cfg.get("enabled", False):
        lineage = SimilarityRunRecord(
            pipeline_name="item-similarity",
            pipeline_version=lineage_cfg.get("pipeline_version", "0.0.0"),
            similarity_options=sim_config.to_dict(),
        )

    spark = get_spark_session(
        app_name=cfg["spark"]["app_name"],
        master=cfg["spark"].get("master"),
        extra_config=cfg["spark"].get("config"),
    )

    try:
        # ── Step 1 - Rating Intake ───────────────────────────────────
        logger.info("── Step 1/2: Rating Intake ──")
        ratings = read_ratings(spark, cfg)
        if lineage:
            lineage.record_source(
                path=cfg["source"]["path"],
                row_count=ratings.count(),
                schema_version=SCHEMA_VERSIONS["ratings"],
            )

        # ── Step 2 - Similarity Computation ──────────────────────────
        logger.info("── Step 2/2: Similarity Computation ──")
        similarities = run_similarity_computation(ratings, cfg)
        row_count = similarities.count()
        if lineage:
            lineage.record_stage(
                name="similarity_computation",
                input_rows=lineage.source["row_count"],
                output_rows=row_count,
            )

        # ── Data quality validation (Reliability) ─────────────────────
        if cfg["data_quality"].get("enabled", True):
            logger.info("── Data Quality Validation ──")
            SimilarityOutputValidator(
                min_intersection=sim_config.min_intersection,
                min_num_raters=sim_config.min_num_raters,
                max_num_raters=sim_config.max_num_raters,
                min_row_count=cfg["data_quality"].get("min_row_count", 0),
            ).validate(similarities)

        # ── Write ────────────────────────────────────────────────────
        target = cfg["target"]
        write_similarities(
            similarities,
            target["path"],
            fmt=target.get("format", "tsv"),
            mode=target.get("mode", "overwrite"),
        )
        if lineage:
            lineage.record_target(
                path=target["path"],
                row_count=row_count,
                format=target.get("format", "tsv"),
                write_mode=target.get("mode", "overwrite"),
            )
            lineage.record_metric("item_pairs", row_count)
    except Exception as exc:
        logger.error("[pipeline] Item similarity run FAILED: %s", exc)
        if lineage:
            lineage.finish(status="failed", error=exc)
            save_lineage(lineage, output_dir=lineage_cfg.get("output_dir", "lineage"))
        raise

    if lineage:
        lineage.finish(status="success")
        save_lineage(lineage, output_dir=lineage_cfg.get("output_dir", "lineage"))

    logger.info(
        "=== Item Similarity Pipeline completed  |  item_pairs=%d ===", row_count,
        extra={"stage": "complete", "item_pairs": row_count},
    )
    return row_count


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Item Similarity Pipeline - full orchestrator."
    )
    parser.add_argument(
        "--config",
        type=str,
        default="microservices/item_similarity/config/item_similarity_config.yaml",
        help="Path to the YAML configuration file.",
    )
    parser.add_argument("--input", type=str, default=None, help="Override source.path.")
    parser.add_argument("--output", type=str, default=None, help="Override target.path.")
    return parser


if __name__ == "__main__":
    configure_logging()
    args = build_arg_parser().parse_args()
    main(args.config, input_path=args.input, output_path=args.output)
