"""Structured exit codes for planner commands."""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from l3b_planner.tracking import JobTracker


class ExitCode(IntEnum):
    SUCCESS = 0
    PARTIAL_FAILURE = 1
    TOTAL_FAILURE = 2
    BAD_INPUT = 3
    NO_WORK = 6  # Nothing was scheduled
    JOB_REJECTED = 7  # Planner refused the job before any task was submitted


def exit_code_from_tracker(tracker: JobTracker) -> ExitCode:
    """Derive an exit code from a :class:`JobTracker`'s task results."""
    failed = sum(1 for r in tracker.results if r.status != "success")
    if failed == len(tracker.results) and tracker.results:
        return ExitCode.TOTAL_FAILURE
    elif failed > 0:
        return ExitCode.PARTIAL_FAILURE
    return ExitCode.SUCCESS
