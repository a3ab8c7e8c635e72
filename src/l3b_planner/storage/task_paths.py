"""Path builders for job scratch folders and task working directories."""

from __future__ import annotations

import os


def job_scratch_dir(scratch_root: str, job_id: int) -> str:
    """Return the folder holding every task working directory of *job_id*."""
    return os.path.join(scratch_root, str(job_id))


def task_working_dir(scratch_root: str, job_id: int, task_id: int, module: str) -> str:
    """Return the private working directory of a registered task."""
    return os.path.join(job_scratch_dir(scratch_root, job_id), f"{task_id}-{module}")


def final_product_folder(products_root: str, site_id: int) -> str:
    """Return the destination root the product formatter writes products into."""
    return os.path.join(products_root, str(site_id), "l3b")
