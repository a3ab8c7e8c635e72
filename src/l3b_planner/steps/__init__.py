"""Step binding: output paths and tool invocations for registered tasks."""

from l3b_planner.steps.binder import CLEANUP_STEP, BoundProduct, JobLayout, bind_product_steps
from l3b_planner.steps.result_files import TileResultFiles

__all__ = ["CLEANUP_STEP", "BoundProduct", "JobLayout", "TileResultFiles", "bind_product_steps"]
