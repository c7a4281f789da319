"""
Spark-submit entry point for the item-similarity microservice.

Usage
-----
    spark-submit \\
        --master spark://master:7077 \\
        /app/spark_jobs/main.py \\
        --input hdfs://namenode:9000/ratings/u.data

Environment variables
---------------------
SIMILARITY_CONFIG : str
    Path to the YAML config file (default: ``/app/config/item_similarity_config.yaml``).
    Overridden by ``--config``.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

# Ensure the project root is on sys.path so cross-module imports work
# when launched via spark-submit.
_project_root = str(Path(__file__).resolve().parents[3])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from microservices.item_similarity.pipelines.compute_item_similarities import (
    main as run_pipeline,
)
from microservices.item_similarity.src.logging_config import configure_logging


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Item Similarity – spark-submit entry point.")
    parser.add_argument(
        "--config",
        type=str,
        default=os.environ.get(
            "SIMILARITY_CONFIG",
            "/app/config/item_similarity_config.yaml",
        ),
        help="Path to item_similarity_config.yaml.",
    )
    parser.add_argument("--input", type=str, default=None, help="Override source.path.")
    parser.add_argument("--output", type=str, default=None, help="Override target.path.")
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> int:
    """Configure logging, parse *argv* and run the job; returns the exit status."""
    configure_logging()
    args = _parse_args(argv)
    run_pipeline(config_path=args.config, input_path=args.input, output_path=args.output)
    return 0


if __name__ == "__main__":
    sys.exit(run())
