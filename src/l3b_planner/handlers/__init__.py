"""Job-submitted, task-finished and scheduler handlers."""

from l3b_planner.handlers.context import ProcessingContext, SchedulingContext
from l3b_planner.handlers.job_submitted import JobPlan, handle_job_submitted
from l3b_planner.handlers.local_context import LocalContext
from l3b_planner.handlers.scheduler import JobDefinition, get_processing_definition
from l3b_planner.handlers.task_finished import handle_task_finished

__all__ = [
    "JobDefinition",
    "JobPlan",
    "LocalContext",
    "ProcessingContext",
    "SchedulingContext",
    "get_processing_definition",
    "handle_job_submitted",
    "handle_task_finished",
]
