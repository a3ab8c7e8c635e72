"""TaskResult dataclass: one executed (or skipped) task of a job."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional


@dataclass
class TaskResult:
    """Track an individual task execution."""

    job_id: int
    task_id: int
    module: str
    step_name: str
    status: str  # 'success', 'failed', 'skipped', 'cancelled'
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_sec: Optional[float] = None
    command: Optional[List[str]] = None
    return_code: Optional[int] = None
    error_message: Optional[str] = None
    error_traceback: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
