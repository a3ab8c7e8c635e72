"""Run registered tasks locally (in-process), in dependency order."""

from __future__ import annotations

import os
import shlex
import subprocess
import threading
import time
import traceback
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from l3b_planner.errors import ExecutorUnavailable
from l3b_planner.graph import modules as m
from l3b_planner.graph.tasks import Step
from l3b_planner.storage.task_paths import task_working_dir
from l3b_planner.tracking import JobTracker, TaskResult


TERMINAL_FAILURES = ("failed", "skipped", "cancelled")


@dataclass
class RegisteredTask:
    task_id: int
    job_id: int
    module: str
    parent_ids: List[int] = field(default_factory=list)
    step: Optional[Step] = None
    status: str = "pending"  # pending | running | success | failed | skipped | cancelled


class LocalExecutor:
    """In-memory task registry plus a thread-pool runner.

    Implements the :class:`~l3b_planner.executor.gateway.ExecutorGateway`
    protocol.  OTB steps run through *otb_launcher*, gdal steps run the
    gdal binary named by the module, ``files-remover`` deletes its
    arguments in-process and the end-of-job sentinel does nothing.
    """

    def __init__(
        self,
        scratch_root: str,
        *,
        max_workers: int = 1,
        dry_run: bool = False,
        otb_launcher: str = "otbcli",
        report_dir: str = "job_reports",
    ):
        self.scratch_root = scratch_root
        self.max_workers = max(1, max_workers)
        self.dry_run = dry_run
        self.otb_launcher = otb_launcher
        self.report_dir = report_dir
        self._lock = threading.Lock()
        self._tasks: Dict[int, RegisteredTask] = {}
        self._next_id = 1

    # ------------------------------------------------------------------
    # Gateway
    # ------------------------------------------------------------------

    def register_task(self, job_id: int, module: str, parent_ids: Sequence[int]) -> int:
        with self._lock:
            for pid in parent_ids:
                parent = self._tasks.get(pid)
                if parent is None or parent.job_id != job_id:
                    raise ExecutorUnavailable(
                        f"Parent task {pid} of {module} is not registered for job {job_id}"
                    )
            task_id = self._next_id
            self._next_id += 1
            self._tasks[task_id] = RegisteredTask(task_id, job_id, module, list(parent_ids))
        return task_id

    def submit_steps(self, steps: Sequence[Step]) -> None:
        with self._lock:
            for step in steps:
                task = self._tasks.get(step.task_id)
                if task is None:
                    raise ExecutorUnavailable(f"Step {step.name} targets unknown task {step.task_id}")
                if task.step is not None and task.step != step:
                    raise ExecutorUnavailable(f"Task {step.task_id} already has a step")
                task.step = step

    def cancel_task(self, task_id: int) -> None:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise ExecutorUnavailable(f"Unknown task {task_id}")
            if task.status == "pending":
                task.status = "cancelled"
                logger.info(f"Task {task_id} ({task.module}) cancelled")

    def cancel_job(self, job_id: int) -> None:
        for task in self.job_tasks(job_id):
            self.cancel_task(task.task_id)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def job_tasks(self, job_id: int) -> List[RegisteredTask]:
        with self._lock:
            return [t for t in self._tasks.values() if t.job_id == job_id]

    def task(self, task_id: int) -> RegisteredTask:
        return self._tasks[task_id]

    def build_command(self, task: RegisteredTask) -> List[str]:
        if task.step is None:
            return []
        if task.module in (m.FILES_REMOVER, m.END_OF_JOB):
            return []
        if task.module in m.GDAL_MODULES:
            return [task.module, *task.step.args]
        return [self.otb_launcher, *task.step.args]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _remove_files(self, paths: Sequence[str]) -> None:
        removed = 0
        for path in paths:
            try:
                os.remove(path)
                removed += 1
            except FileNotFoundError:
                continue
        logger.info(f"Removed {removed}/{len(paths)} temporary files")

    def _execute(self, task: RegisteredTask) -> TaskResult:
        step_name = task.step.name if task.step else ""
        result = TaskResult(
            job_id=task.job_id,
            task_id=task.task_id,
            module=task.module,
            step_name=step_name,
            status="success",
            start_time=datetime.now(timezone.utc).isoformat(),
        )
        t0 = time.perf_counter()
        try:
            if task.step is None:
                raise ExecutorUnavailable(f"Task {task.task_id} ({task.module}) has no step")
            cmd = self.build_command(task)
            result.command = cmd or None
            if task.module == m.FILES_REMOVER:
                if self.dry_run:
                    logger.info(f"[dry-run] remove {len(task.step.args)} files")
                else:
                    self._remove_files(task.step.args)
            elif cmd:
                if self.dry_run:
                    logger.info(f"[dry-run] {shlex.join(cmd)}")
                else:
                    os.makedirs(
                        task_working_dir(self.scratch_root, task.job_id, task.task_id, task.module),
                        exist_ok=True,
                    )
                    logger.info(f"[local] Starting task {task.task_id}: {task.module}")
                    proc = subprocess.run(cmd, capture_output=True, text=True)
                    result.return_code = proc.returncode
                    if proc.returncode != 0:
                        result.status = "failed"
                        result.error_message = (proc.stderr or proc.stdout or "").strip()[-2000:]
        except (OSError, ExecutorUnavailable) as exc:
            result.status = "failed"
            result.error_message = str(exc)
            result.error_traceback = traceback.format_exc()

        result.duration_sec = time.perf_counter() - t0
        result.end_time = datetime.now(timezone.utc).isoformat()
        if result.status == "failed":
            logger.error(f"[local] Task {task.task_id} ({task.module}) failed: {result.error_message}")
        else:
            logger.debug(f"[local] Task {task.task_id} ({task.module}) done in {result.duration_sec:.1f}s")
        return result

    def _skip_blocked(self, pending: Dict[int, RegisteredTask], tracker: JobTracker) -> None:
        changed = True
        while changed:
            changed = False
            for task_id, task in list(pending.items()):
                if task.status == "cancelled" or any(
                    self._tasks[p].status in TERMINAL_FAILURES for p in task.parent_ids
                ):
                    if task.status != "cancelled":
                        task.status = "skipped"
                    tracker.add_result(TaskResult(
                        job_id=task.job_id,
                        task_id=task.task_id,
                        module=task.module,
                        step_name=task.step.name if task.step else "",
                        status=task.status,
                    ))
                    del pending[task_id]
                    changed = True

    def run_job(
        self,
        job_id: int,
        on_task_finished: Optional[Callable[[RegisteredTask], None]] = None,
    ) -> JobTracker:
        """Run every pending task of *job_id*; a task starts once all parents succeeded.

        *on_task_finished* is called from this thread, one task at a time,
        for every task that succeeded.
        """
        tracker = JobTracker(job_id, self.report_dir)
        pending = {t.task_id: t for t in self.job_tasks(job_id) if t.status in ("pending", "cancelled")}
        logger.info(
            f"[local] Running {len(pending)} tasks of job {job_id} (max_workers={self.max_workers})"
        )

        running: Dict[Future, RegisteredTask] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            while pending or running:
                self._skip_blocked(pending, tracker)
                ready = [
                    t for t in pending.values()
                    if all(self._tasks[p].status == "success" for p in t.parent_ids)
                ]
                for task in sorted(ready, key=lambda t: t.task_id):
                    del pending[task.task_id]
                    task.status = "running"
                    running[pool.submit(self._execute, task)] = task

                if not running:
                    break

                done, _ = wait(running, return_when=FIRST_COMPLETED)
                for fut in sorted(done, key=lambda f: running[f].task_id):
                    task = running.pop(fut)
                    result = fut.result()
                    task.status = result.status
                    tracker.add_result(result)
                    if result.status == "success" and on_task_finished is not None:
                        on_task_finished(task)

        tracker.print_summary()
        return tracker
