"""Tests for the local executor: registration, ordering, failures and cancellation."""

import pytest

from l3b_planner.errors import ExecutorUnavailable
from l3b_planner.executor import LocalExecutor
from l3b_planner.graph import modules as m
from l3b_planner.graph.tasks import Step

JOB = 7


def make_executor(tmp_path, **kwargs):
    kwargs.setdefault("otb_launcher", "true")
    return LocalExecutor(str(tmp_path / "scratch"), report_dir=str(tmp_path / "reports"), **kwargs)


def register_chain(executor, modules):
    """Register *modules* as a linear chain and give each a step; returns task ids."""
    ids, parent = [], []
    for index, module in enumerate(modules):
        task_id = executor.register_task(JOB, module, parent)
        executor.submit_steps([Step(index, task_id, module, [f"-arg{index}"])])
        ids.append(task_id)
        parent = [task_id]
    return ids


CHAIN = [m.MASK_FLAGS, m.GEN_DOMAIN_FLAGS, m.PRODUCT_FORMATTER, m.END_OF_JOB]


def test_runs_in_dependency_order_and_reports_successes(tmp_path):
    executor = make_executor(tmp_path, max_workers=4)
    ids = register_chain(executor, CHAIN)
    finished = []

    tracker = executor.run_job(JOB, on_task_finished=lambda t: finished.append(t.task_id))

    assert finished == ids
    assert [r.status for r in tracker.results] == ["success"] * 4
    assert (tmp_path / "scratch" / str(JOB) / f"{ids[0]}-{m.MASK_FLAGS}").is_dir()


def test_fan_in_waits_for_every_parent(tmp_path):
    executor = make_executor(tmp_path, max_workers=3)
    a = executor.register_task(JOB, m.NDVI_EXTRACTOR, [])
    b = executor.register_task(JOB, m.GEN_DOMAIN_FLAGS, [])
    f = executor.register_task(JOB, m.PRODUCT_FORMATTER, [a, b])
    executor.submit_steps([Step(0, a, "x", []), Step(1, b, "y", []), Step(2, f, "z", [])])
    finished = []

    executor.run_job(JOB, on_task_finished=lambda t: finished.append(t.task_id))

    assert finished[-1] == f
    assert sorted(finished[:2]) == [a, b]


def test_failure_skips_descendants(tmp_path):
    executor = make_executor(tmp_path, otb_launcher="false")
    ids = register_chain(executor, CHAIN)
    finished = []

    tracker = executor.run_job(JOB, on_task_finished=lambda t: finished.append(t))

    assert finished == []
    statuses = {r.task_id: r.status for r in tracker.results}
    assert statuses == {ids[0]: "failed", ids[1]: "skipped", ids[2]: "skipped", ids[3]: "skipped"}
    assert tracker.by_status("failed")[0].return_code == 1


def test_missing_binary_fails_the_task(tmp_path):
    executor = make_executor(tmp_path, otb_launcher="/nonexistent/otbcli")
    register_chain(executor, [m.MASK_FLAGS])
    tracker = executor.run_job(JOB)
    assert tracker.results[0].status == "failed"
    assert tracker.results[0].error_message


def test_dry_run_runs_nothing(tmp_path):
    executor = make_executor(tmp_path, otb_launcher="false", dry_run=True)
    register_chain(executor, CHAIN)
    tracker = executor.run_job(JOB)
    assert [r.status for r in tracker.results] == ["success"] * 4
    assert not (tmp_path / "scratch").exists()


def test_files_remover_deletes_in_process(tmp_path):
    executor = make_executor(tmp_path)
    present = tmp_path / "a.tif"
    present.write_text("")
    task_id = executor.register_task(JOB, m.FILES_REMOVER, [])
    executor.submit_steps([Step(0, task_id, "CleanupTemporaryFiles", [str(present), str(tmp_path / "gone.tif")])])

    tracker = executor.run_job(JOB)

    assert tracker.results[0].status == "success"
    assert not present.exists()


def test_cancelled_tasks_block_children(tmp_path):
    executor = make_executor(tmp_path)
    ids = register_chain(executor, CHAIN)
    executor.cancel_task(ids[1])

    tracker = executor.run_job(JOB)

    statuses = {r.task_id: r.status for r in tracker.results}
    assert statuses[ids[0]] == "success"
    assert statuses[ids[1]] == "cancelled"
    assert statuses[ids[2]] == statuses[ids[3]] == "skipped"


def test_cancel_job(tmp_path):
    executor = make_executor(tmp_path)
    register_chain(executor, CHAIN)
    executor.cancel_job(JOB)
    assert {t.status for t in executor.job_tasks(JOB)} == {"cancelled"}


def test_task_without_step_fails(tmp_path):
    executor = make_executor(tmp_path)
    executor.register_task(JOB, m.MASK_FLAGS, [])
    tracker = executor.run_job(JOB)
    assert tracker.results[0].status == "failed"


def test_registration_errors(tmp_path):
    executor = make_executor(tmp_path)
    with pytest.raises(ExecutorUnavailable):
        executor.register_task(JOB, m.NDVI_EXTRACTOR, [42])
    other = executor.register_task(JOB + 1, m.MASK_FLAGS, [])
    with pytest.raises(ExecutorUnavailable):
        executor.register_task(JOB, m.NDVI_EXTRACTOR, [other])
    with pytest.raises(ExecutorUnavailable):
        executor.submit_steps([Step(0, 999, "x", [])])
    with pytest.raises(ExecutorUnavailable):
        executor.cancel_task(999)


def test_build_command(tmp_path):
    executor = make_executor(tmp_path, otb_launcher="otbcli")
    otb, gdal, remover = (
        executor.register_task(JOB, module, [])
        for module in (m.MASK_FLAGS, m.GDAL_TRANSLATE, m.FILES_REMOVER)
    )
    executor.submit_steps([
        Step(0, otb, "GenerateLaiMonoDateMaskFlags", ["GenerateLaiMonoDateMaskFlags", "-inxml", "t.HDR"]),
        Step(1, gdal, "gdal_translate", ["in.vrt", "out.tif"]),
        Step(2, remover, "CleanupTemporaryFiles", ["a.tif"]),
    ])

    assert executor.build_command(executor.task(otb)) == [
        "otbcli", "GenerateLaiMonoDateMaskFlags", "-inxml", "t.HDR",
    ]
    assert executor.build_command(executor.task(gdal)) == ["gdal_translate", "in.vrt", "out.tif"]
    assert executor.build_command(executor.task(remover)) == []
