"""Executor gateway: how the planner hands tasks and steps to an executor."""

from __future__ import annotations

from typing import Iterable, List, Protocol, Sequence

from loguru import logger

from l3b_planner.errors import ExecutorUnavailable, PlannerInvariantBroken
from l3b_planner.graph.tasks import Step, TaskGraph


END_OF_JOB_STEP = "EndOfLAIDummy"


class ExecutorGateway(Protocol):
    """What an executor must offer.  Failures raise :class:`ExecutorUnavailable`."""

    def register_task(self, job_id: int, module: str, parent_ids: Sequence[int]) -> int:
        """Register one task whose parents are already registered; return its id."""
        ...

    def submit_steps(self, steps: Sequence[Step]) -> None:
        ...

    def cancel_task(self, task_id: int) -> None:
        ...

    def cancel_job(self, job_id: int) -> None:
        ...


def submit_tasks(
    gateway: ExecutorGateway, job_id: int, graph: TaskGraph, indices: Iterable[int]
) -> List[int]:
    """Register ``graph[i]`` for every *i* in order, filling in ``task_id``.

    Parents are passed by the ids they received earlier, so every parent
    must be registered before its children.
    """
    ids: List[int] = []
    for i in indices:
        task = graph[i]
        parent_ids = []
        for p in task.parents:
            parent_id = graph[p].task_id
            if parent_id is None:
                raise PlannerInvariantBroken(
                    f"Parent #{p} of task #{i} ({task.module}) is not registered\n{graph.dump()}"
                )
            parent_ids.append(parent_id)
        try:
            task.task_id = gateway.register_task(job_id, task.module, parent_ids)
        except ExecutorUnavailable:
            raise
        except (OSError, RuntimeError) as exc:
            raise ExecutorUnavailable(f"Registering {task.module} for job {job_id} failed: {exc}") from exc
        ids.append(task.task_id)
    logger.debug(f"Registered {len(ids)} tasks for job {job_id}")
    return ids


def submit_steps(gateway: ExecutorGateway, steps: Sequence[Step]) -> None:
    try:
        gateway.submit_steps(steps)
    except ExecutorUnavailable:
        raise
    except (OSError, RuntimeError) as exc:
        raise ExecutorUnavailable(f"Submitting {len(steps)} steps failed: {exc}") from exc
    logger.debug(f"Submitted {len(steps)} steps")
