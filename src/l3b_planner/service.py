"""Inbound request surface: accept jobs, cancel them, run them locally."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Sequence

from loguru import logger

from l3b_planner.errors import ExecutorUnavailable, PlannerError
from l3b_planner.executor.local_executor import LocalExecutor, RegisteredTask
from l3b_planner.graph.tasks import Step
from l3b_planner.handlers.job_submitted import JobPlan, handle_job_submitted
from l3b_planner.handlers.local_context import LocalContext
from l3b_planner.handlers.task_finished import handle_task_finished
from l3b_planner.logging import bind_job_context
from l3b_planner.models import JobStartType, JobSubmittedEvent, TaskFinishedEvent
from l3b_planner.tracking import JobTracker


DEFAULT_PROCESSOR_ID = 1


class RequestsHandler:
    """Accepts job requests and routes executor events back to the planner."""

    def __init__(self, ctx: LocalContext, executor: LocalExecutor):
        self.ctx = ctx
        self.executor = executor
        self.plans: Dict[int, JobPlan] = {}

    def execute_processor(self, json_config: str) -> bool:
        """Create and plan a job from *json_config*.

        Accepted keys: ``site_id`` (required), ``processor_id``,
        ``start_type`` and ``parameters`` (the job's JSON parameters).
        Returns True iff the job was accepted and its DAG submitted.
        """
        try:
            request: Dict[str, Any] = json.loads(json_config)
            site_id = int(request["site_id"])
            processor_id = int(request.get("processor_id", DEFAULT_PROCESSOR_ID))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            logger.error(f"Invalid processor request: {exc}")
            return False

        parameters_json = json.dumps(request.get("parameters") or {})
        record = self.ctx.jobs.create(
            processor_id, site_id, parameters_json, request.get("start_type", JobStartType.REQUESTED)
        )
        bind_job_context(record.job_id)

        event = JobSubmittedEvent(record.job_id, processor_id, site_id, parameters_json)
        try:
            self.plans[record.job_id] = handle_job_submitted(self.ctx, self.executor, event)
        except PlannerError:
            return False
        self.ctx.jobs.set_status(record.job_id, "running")
        return True

    def stop_processor_job(self, job_name: str) -> bool:
        try:
            job_id = int(job_name)
        except ValueError:
            logger.error(f"Unknown job {job_name!r}")
            return False
        if not self.executor.job_tasks(job_id):
            logger.error(f"Job {job_id} has no tasks")
            return False
        self.executor.cancel_job(job_id)
        self.ctx.mark_job_failed(job_id)
        return True

    def submit_steps(self, steps: Sequence[Step]) -> None:
        self.executor.submit_steps(steps)

    def cancel_task(self, task_id: int) -> None:
        self.executor.cancel_task(task_id)

    def last_job_id(self) -> Optional[int]:
        return max(self.plans) if self.plans else None

    def run_job(self, job_id: int) -> JobTracker:
        """Run the job's tasks and feed every finished task to the completion handler."""
        record = self.ctx.jobs.load(job_id)
        bind_job_context(job_id)

        def on_task_finished(task: RegisteredTask) -> None:
            handle_task_finished(self.ctx, TaskFinishedEvent(
                processor_id=record.processor_id,
                site_id=record.site_id,
                job_id=job_id,
                task_id=task.task_id,
                module=task.module,
            ))

        if not self.executor.job_tasks(job_id):
            raise ExecutorUnavailable(f"Job {job_id} has no registered tasks")
        tracker = self.executor.run_job(job_id, on_task_finished=on_task_finished)

        incomplete = [r for r in tracker.results if r.status != "success"]
        if incomplete:
            logger.error(f"Job {job_id}: {len(incomplete)} tasks did not succeed")
            self.ctx.mark_job_failed(job_id)
        tracker.save_reports()
        return tracker
