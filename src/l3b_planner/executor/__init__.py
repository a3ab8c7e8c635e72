"""Executor gateway and the local in-process executor."""

from l3b_planner.executor.gateway import END_OF_JOB_STEP, ExecutorGateway, submit_steps, submit_tasks
from l3b_planner.executor.local_executor import LocalExecutor, RegisteredTask

__all__ = [
    "END_OF_JOB_STEP",
    "ExecutorGateway",
    "LocalExecutor",
    "RegisteredTask",
    "submit_steps",
    "submit_tasks",
]
