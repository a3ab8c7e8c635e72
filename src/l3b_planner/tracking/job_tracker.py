"""JobTracker with multi-format report generation."""

from __future__ import annotations

import csv
import json
import os
from datetime import datetime
from typing import Dict, List

from loguru import logger

from l3b_planner.tracking.task_result import TaskResult


class JobTracker:
    """Centralized task tracking and reporting for one job."""

    def __init__(self, job_id: int, output_dir: str = "job_reports"):
        self.job_id = job_id
        self.output_dir = output_dir
        self.results: List[TaskResult] = []
        self.start_time = datetime.now()

    def add_result(self, result: TaskResult) -> None:
        self.results.append(result)

    def by_status(self, status: str) -> List[TaskResult]:
        return [r for r in self.results if r.status == status]

    # ------------------------------------------------------------------
    # Report generation
    # ------------------------------------------------------------------

    def save_reports(self) -> None:
        """Save JSON, CSV, text, and failed-tasks reports."""
        os.makedirs(self.output_dir, exist_ok=True)
        stem = f"job_{self.job_id}_{self.start_time:%Y%m%d_%H%M%S}"

        # 1. Detailed JSON
        json_path = os.path.join(self.output_dir, f"{stem}_report.json")
        with open(json_path, "w") as f:
            json.dump([r.to_dict() for r in self.results], f, indent=2, default=str)

        # 2. CSV summary
        self._save_csv_summary(os.path.join(self.output_dir, f"{stem}_summary.csv"))

        # 3. Human-readable text
        self._save_text_report(os.path.join(self.output_dir, f"{stem}_report.txt"))

        # 4. Failed tasks only
        failed = [r for r in self.results if r.status != "success"]
        if failed:
            failed_path = os.path.join(self.output_dir, f"{stem}_failed.json")
            with open(failed_path, "w") as f:
                json.dump([r.to_dict() for r in failed], f, indent=2, default=str)

        logger.info(f"Reports saved to {self.output_dir}/")

    def _save_csv_summary(self, path: str) -> None:
        fieldnames = [
            "job_id", "task_id", "module", "step_name", "status",
            "duration_sec", "return_code", "error_message",
        ]
        with open(path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for r in self.results:
                writer.writerow({
                    "job_id": r.job_id,
                    "task_id": r.task_id,
                    "module": r.module,
                    "step_name": r.step_name,
                    "status": r.status,
                    "duration_sec": r.duration_sec,
                    "return_code": r.return_code,
                    "error_message": (
                        r.error_message[:100] if r.error_message else None
                    ),
                })

    def _save_text_report(self, path: str) -> None:
        total = len(self.results)
        if total == 0:
            with open(path, "w") as f:
                f.write("No tasks were executed.\n")
            return

        counts = {s: len(self.by_status(s)) for s in ("success", "failed", "skipped", "cancelled")}

        by_module: Dict[str, Dict[str, int]] = {}
        for r in self.results:
            bucket = by_module.setdefault(
                r.module, {"success": 0, "failed": 0, "skipped": 0, "cancelled": 0},
            )
            if r.status in bucket:
                bucket[r.status] += 1

        durations = [r.duration_sec for r in self.results if r.duration_sec]
        avg_dur = sum(durations) / len(durations) if durations else 0
        max_dur = max(durations) if durations else 0

        with open(path, "w") as f:
            f.write("=" * 60 + "\n")
            f.write(f"L3B JOB {self.job_id} EXECUTION REPORT\n")
            f.write(f"Generated: {datetime.now():%Y-%m-%d %H:%M:%S}\n")
            f.write("=" * 60 + "\n\n")

            f.write("OVERALL SUMMARY\n")
            f.write("-" * 40 + "\n")
            f.write(f"Total Tasks:       {total}\n")
            for status, cnt in counts.items():
                f.write(f"{status.capitalize() + ':':<19}{cnt} ({cnt / total * 100:.1f}%)\n")
            f.write(f"\nAvg Duration:   {avg_dur:.2f} sec\n")
            f.write(f"Max Duration:   {max_dur:.2f} sec\n\n")

            f.write("BREAKDOWN BY MODULE\n")
            f.write("-" * 40 + "\n")
            for module, module_counts in sorted(by_module.items()):
                subtotal = sum(module_counts.values())
                f.write(f"{module}:\n")
                for status, cnt in module_counts.items():
                    if cnt:
                        f.write(f"  {status:12s} {cnt} ({cnt / subtotal * 100:.1f}%)\n")

            failed_tasks = self.by_status("failed")
            if failed_tasks:
                f.write("\nFAILED TASKS DETAIL\n")
                f.write("-" * 40 + "\n")
                for r in failed_tasks[:20]:
                    f.write(f"\nTask {r.task_id}: {r.module} ({r.step_name})\n")
                    f.write(f"  Return code: {r.return_code}\n")
                    f.write(f"  Error: {r.error_message[:200] if r.error_message else 'Unknown'}\n")
                if len(failed_tasks) > 20:
                    f.write(f"\n... and {len(failed_tasks) - 20} more failed tasks\n")

    def print_summary(self) -> None:
        """Log a quick summary."""
        total = len(self.results)
        if total == 0:
            logger.info("No tasks were executed.")
            return

        succeeded = len(self.by_status("success"))
        failed = len(self.by_status("failed"))
        skipped = total - succeeded - failed
        logger.info(
            f"Job {self.job_id}: {succeeded} succeeded, {failed} failed, "
            f"{skipped} skipped/cancelled out of {total} tasks"
        )
