"""Job, task and product bookkeeping."""

from l3b_planner.tracking.catalogue import ProductCatalogue
from l3b_planner.tracking.job_store import JobRecord, JobStore
from l3b_planner.tracking.job_tracker import JobTracker
from l3b_planner.tracking.task_result import TaskResult

__all__ = [
    "JobRecord",
    "JobStore",
    "JobTracker",
    "ProductCatalogue",
    "TaskResult",
]
