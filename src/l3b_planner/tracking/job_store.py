"""JSON-file persistence for job records."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger


@dataclass
class JobRecord:
    job_id: int
    processor_id: int
    site_id: int
    parameters_json: str
    start_type: str
    status: str = "submitted"  # "submitted" | "running" | "finished" | "failed"
    created_at: str = ""
    finished_at: Optional[str] = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class JobStore:
    """Persist :class:`JobRecord` to local JSON files in a base directory."""

    def __init__(self, base_dir: str = ".l3b/jobs"):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, job_id: int) -> Path:
        return self.base_dir / f"{job_id}.json"

    def next_id(self) -> int:
        ids = [int(p.stem) for p in self.base_dir.glob("*.json") if p.stem.isdigit()]
        return max(ids, default=0) + 1

    def create(
        self, processor_id: int, site_id: int, parameters_json: str, start_type: str
    ) -> JobRecord:
        record = JobRecord(
            job_id=self.next_id(),
            processor_id=processor_id,
            site_id=site_id,
            parameters_json=parameters_json,
            start_type=start_type,
            created_at=_now(),
        )
        self.save(record)
        return record

    def save(self, record: JobRecord) -> Path:
        """Write *record* to ``<base_dir>/<job_id>.json``."""
        path = self._path(record.job_id)
        with open(path, "w") as f:
            json.dump(asdict(record), f, indent=2, default=str)
        logger.debug(f"Job record saved to {path}")
        return path

    def load(self, job_id: int) -> JobRecord:
        with open(self._path(job_id)) as f:
            return JobRecord(**json.load(f))

    def list_jobs(self) -> list[int]:
        """Return ids of all saved jobs (newest first)."""
        paths = sorted(self.base_dir.glob("*.json"), key=os.path.getmtime, reverse=True)
        return [int(p.stem) for p in paths if p.stem.isdigit()]

    def set_status(self, job_id: int, status: str) -> JobRecord:
        record = self.load(job_id)
        record.status = status
        if status in ("finished", "failed"):
            record.finished_at = _now()
        self.save(record)
        return record
