"""Centralized logging configuration with job context."""

from __future__ import annotations

import sys

from loguru import logger


def setup_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Configure loguru with the given level and format.

    Call once at CLI startup.  Library callers that don't call this get
    loguru's default sink, which ignores the ``job_id`` extra.
    """
    logger.remove()
    if fmt == "json":
        logger.add(sys.stderr, level=level.upper(), serialize=True)
    else:
        logger.add(
            sys.stderr,
            level=level.upper(),
            format="<level>{level: <8}</level> | job {extra[job_id]:>6} | {message}",
        )


def bind_job_context(job_id: int | str | None) -> None:
    """Set *job_id* as a default extra value for all subsequent log calls."""
    logger.configure(extra={"job_id": "-" if job_id is None else str(job_id)})
