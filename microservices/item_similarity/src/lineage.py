"""
Run audit record for the item-similarity microservice.

Every batch run produces a JSON record documenting the rating source
consumed, the row counts entering and leaving each stage, the
similarity options in force, the output written and the final status.
Nothing in it is read back by later runs: each run is a full recompute.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SimilarityRunRecord:
    """Audit record of one item-similarity run."""

    def __init__(
        self,
        pipeline_name: str,
        pipeline_version: str,
        similarity_options: Optional[dict[str, Any]] = None,
    ) -> None:
        self.pipeline_name = pipeline_name
        self.pipeline_version = pipeline_version
        self.similarity_options = dict(similarity_options or {})
        self.run_id = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        self.started_at = _now()
        self.finished_at: Optional[str] = None
        self.status: str = "running"
        self.source: Optional[dict[str, Any]] = None
        self.target: Optional[dict[str, Any]] = None
        self.stages: list[dict[str, Any]] = []
        self.metrics: dict[str, Any] = {}
        self.error: Optional[str] = None

    def record_source(self, path: str, row_count: int, schema_version: str = "unknown") -> None:
        """Log the rating source consumed by this run."""
        self.source = {
            "path": path,
            "row_count": row_count,
            "schema_version": schema_version,
            "timestamp": _now(),
        }

    def record_stage(
        self,
        name: str,
        input_rows: int,
        output_rows: int,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Log a pipeline stage with input/output row counts."""
        self.stages.append({
            "stage": name,
            "input_rows": input_rows,
            "output_rows": output_rows,
            "timestamp": _now(),
            **(details or {}),
        })

    def record_target(self, path: str, row_count: int, format: str, write_mode: str) -> None:
        """Log the similarity output written by this run."""
        self.target = {
            "path": path,
            "row_count": row_count,
            "format": format,
            "write_mode": write_mode,
            "timestamp": _now(),
        }

    def record_metric(self, key: str, value: Any) -> None:
        self.metrics[key] = value

    def finish(self, status: str = "success", error: Optional[BaseException] = None) -> None:
        self.finished_at = _now()
        self.status = status
        if error is not None:
            self.error = f"{type(error).__name__}: {error}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "pipeline_name": self.pipeline_name,
            "pipeline_version": self.pipeline_version,
            "run_id": self.run_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "status": self.status,
            "similarity_options": self.similarity_options,
            "source": self.source,
            "stages": self.stages,
            "target": self.target,
            "metrics": self.metrics,
            "error": self.error,
        }


def save_lineage(record: SimilarityRunRecord, output_dir: str = "lineage") -> str:
    """Persist a run record as JSON.

    Returns
    -------
    str
        Path to the saved JSON file.
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    filepath = out / f"{record.pipeline_name}_{record.run_id}.json"
    with open(filepath, "w", encoding="utf-8") as fh:
        json.dump(record.to_dict(), fh, indent=2, ensure_ascii=False)
    logger.info("[lineage] Run record saved → %s", filepath)
    return str(filepath)
