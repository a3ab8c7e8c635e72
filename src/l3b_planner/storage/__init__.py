"""Scratch and product folder layout."""

from l3b_planner.storage.task_paths import final_product_folder, job_scratch_dir, task_working_dir

__all__ = ["final_product_folder", "job_scratch_dir", "task_working_dir"]
