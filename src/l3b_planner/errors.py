"""Planner error kinds.

Every kind except :class:`CatalogueInsertFailed` makes the job fail; the
handler that raises it marks the job failed before propagating.
"""

from __future__ import annotations


class PlannerError(Exception):
    """Base class for all planner failures."""


class ConfigInvalid(PlannerError):
    """No indicator requested, mono-date mode off, or malformed parameters."""


class NoInputs(PlannerError):
    """The tile set is empty after grouping and filtering."""


class UnwritableScratch(PlannerError):
    """A folder the job needs (models, scratch) cannot be created."""


class PlannerInvariantBroken(PlannerError):
    """The built graph or its bound steps violate a structural invariant."""


class CatalogueInsertFailed(PlannerError):
    """A finished product could not be inserted in the catalogue."""


class ExecutorUnavailable(PlannerError):
    """The executor refused or failed a task or step submission."""
