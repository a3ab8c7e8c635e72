"""Task DAG construction."""

from l3b_planner.graph.builder import (
    ProductTasks,
    TileSection,
    append_end_of_job,
    append_product_tasks,
    tasks_per_tile,
)
from l3b_planner.graph.modules import BI_INDICATORS, Indicator
from l3b_planner.graph.tasks import Step, Task, TaskGraph

__all__ = [
    "BI_INDICATORS",
    "Indicator",
    "ProductTasks",
    "Step",
    "Task",
    "TaskGraph",
    "TileSection",
    "append_end_of_job",
    "append_product_tasks",
    "tasks_per_tile",
]
