"""Tests for the completion handler and product-folder inspection."""

import json
import os
from datetime import datetime

import pytest

from l3b_planner.graph import modules as m
from l3b_planner.handlers import handle_task_finished
from l3b_planner.handlers import product_outputs as po
from l3b_planner.models import JobStartType, ProductType, TaskFinishedEvent
from l3b_planner.storage import job_scratch_dir, task_working_dir
from l3b_planner.tiles import Satellite

PRODUCT_NAME = "S2AGRI_L3B_PRD_S3_20170425T101010_V20170410T103021_20170420T103021"
LINK_CFG = {"processor.l3b.lai.link_l3c_to_l3b": "1"}


def formatter_event(task_id=55):
    return TaskFinishedEvent(processor_id=2, site_id=3, job_id=7, task_id=task_id, module=m.PRODUCT_FORMATTER)


def make_product(root, tiles=("31UDP",), name=PRODUCT_NAME):
    product = os.path.join(str(root), "products", name)
    for tile_id in tiles:
        tile_dir = os.path.join(product, "TILES", f"S2AGRI_L3B_A20170410T103021_T{tile_id}")
        os.makedirs(os.path.join(tile_dir, "QI_DATA"))
    with open(os.path.join(product, "QI_DATA_S2AGRI_L3B_PVI_V20170410_20170420.jpg"), "w") as f:
        f.write("")
    with open(os.path.join(product, "S2AGRI_L3B_MTD_V20170410_20170420.xml"), "w") as f:
        f.write(
            "<Level-3B_User_Product><Geometric_Info><Product_Footprint>"
            "<EXT_POS_LIST>1.0 44.0 2.0 44.0 2.0 45.0</EXT_POS_LIST>"
            "</Product_Footprint></Geometric_Info></Level-3B_User_Product>"
        )
    return product


def write_props(ctx, product_path, task_id=55):
    out_dir = task_working_dir(ctx.scratch_root, 7, task_id, m.PRODUCT_FORMATTER)
    os.makedirs(out_dir, exist_ok=True)
    with open(os.path.join(out_dir, "product_properties.txt"), "w") as f:
        f.write(product_path + "\n")


@pytest.fixture
def finished_product(make_context, site_tiles, tmp_path):
    def _make(cfg=None, tiles=("31UDP",)):
        ctx = make_context(cfg=cfg if cfg is not None else LINK_CFG, site_tiles=site_tiles)
        write_props(ctx, make_product(tmp_path, tiles))
        return ctx
    return _make


def test_formatter_inserts_l3b_and_triggers_l3c(finished_product):
    ctx = finished_product()
    product_id = handle_task_finished(ctx, formatter_event())

    assert product_id == 1
    (record,) = ctx.inserted
    assert record.product_type == ProductType.L3B
    assert record.name == PRODUCT_NAME
    assert record.satellite_id == Satellite.S2
    assert record.tiles == ["31UDP"]
    assert record.created == datetime(2017, 4, 20, 10, 30, 21)
    assert record.quicklook.endswith(".jpg")
    assert record.footprint == "1.0 44.0 2.0 44.0 2.0 45.0"
    assert (record.site_id, record.job_id, record.processor_id) == (3, 7, 2)

    (job,) = ctx.submitted_jobs
    assert job.start_type == JobStartType.TRIGGERED
    assert (job.site_id, job.processor_id) == (3, 2)
    assert json.loads(job.parameters_json) == {
        "input_products": [PRODUCT_NAME],
        "resolution": "10",
        "reproc": "1",
        "inputs_are_l3b": "1",
        "max_l3b_per_tile": "3",
    }
    assert ctx.failed == []


def test_no_l3c_without_link(finished_product):
    ctx = finished_product(cfg={})
    handle_task_finished(ctx, formatter_event())
    assert len(ctx.inserted) == 1
    assert ctx.submitted_jobs == []


def test_no_l3c_for_landsat_products(finished_product):
    ctx = finished_product(tiles=("196030",))
    handle_task_finished(ctx, formatter_event())

    assert ctx.inserted[0].satellite_id == Satellite.L8
    assert ctx.submitted_jobs == []


def test_first_known_tile_decides_satellite(finished_product):
    # tiles come back sorted; 00XXX is unknown to the site so 196030 decides
    ctx = finished_product(tiles=("00XXX", "31UDP", "196030"))
    handle_task_finished(ctx, formatter_event())
    record = ctx.inserted[0]
    assert record.tiles == ["00XXX", "196030", "31UDP"]
    assert record.satellite_id == Satellite.L8


def test_missing_properties_file_is_not_inserted(make_context):
    ctx = make_context(cfg=LINK_CFG)
    assert handle_task_finished(ctx, formatter_event()) is None
    assert ctx.inserted == []
    assert ctx.submitted_jobs == []
    assert ctx.failed == []


def test_invalid_product_folder_is_not_inserted(make_context, tmp_path):
    ctx = make_context(cfg=LINK_CFG)
    no_tiles = tmp_path / "products" / PRODUCT_NAME
    no_tiles.mkdir(parents=True)
    write_props(ctx, str(no_tiles))

    assert handle_task_finished(ctx, formatter_event()) is None
    assert ctx.inserted == []
    assert ctx.failed == []


def test_insert_failure_is_logged_only(finished_product):
    ctx = finished_product()
    ctx.insert_error = "duplicate product"
    assert handle_task_finished(ctx, formatter_event()) is None
    assert ctx.failed == []
    assert ctx.submitted_jobs == []


def test_end_of_job_marks_finished_and_removes_scratch(make_context):
    ctx = make_context(cfg={"processor.l3b.remove_temp_files": "1"})
    scratch = job_scratch_dir(ctx.scratch_root, 7)
    os.makedirs(os.path.join(scratch, "100-lai-processor-mask-flags"))

    handle_task_finished(ctx, TaskFinishedEvent(2, 3, 7, 99, m.END_OF_JOB))

    assert ctx.finished == [7]
    assert not os.path.exists(scratch)


def test_end_of_job_removes_scratch_when_files_vanish(make_context, monkeypatch):
    ctx = make_context(cfg={"processor.l3b.remove_temp_files": "1"})
    scratch = job_scratch_dir(ctx.scratch_root, 7)
    for name in ("100-lai-processor-mask-flags", "101-lai-processor-ndvi-extractor"):
        os.makedirs(os.path.join(scratch, name))
        with open(os.path.join(scratch, name, "out.tif"), "w") as f:
            f.write("x")

    real_unlink = os.unlink
    vanished = []

    def unlink_behind_remover(path, *args, **kwargs):
        # the files-remover task got there first
        real_unlink(path, *args, **kwargs)
        if not vanished:
            vanished.append(path)
            raise FileNotFoundError(path)

    monkeypatch.setattr(os, "unlink", unlink_behind_remover)
    handle_task_finished(ctx, TaskFinishedEvent(2, 3, 7, 99, m.END_OF_JOB))

    assert vanished
    assert ctx.finished == [7]
    assert not os.path.exists(scratch)


def test_end_of_job_keeps_scratch_when_asked(make_context):
    ctx = make_context(cfg={"processor.l3b.remove_temp_files": "0"})
    scratch = job_scratch_dir(ctx.scratch_root, 7)
    os.makedirs(scratch)

    handle_task_finished(ctx, TaskFinishedEvent(2, 3, 7, 99, m.END_OF_JOB))

    assert ctx.finished == [7]
    assert os.path.isdir(scratch)


def test_other_modules_are_ignored(make_context):
    ctx = make_context()
    assert handle_task_finished(ctx, TaskFinishedEvent(2, 3, 7, 10, m.MASK_FLAGS)) is None
    assert ctx.finished == ctx.inserted == []


@pytest.mark.parametrize("name, expected", [
    (PRODUCT_NAME, (datetime(2017, 4, 10, 10, 30, 21), datetime(2017, 4, 20, 10, 30, 21))),
    ("S2AGRI_L3B_PRD_S3_V20170410_20170420", (datetime(2017, 4, 10), datetime(2017, 4, 20))),
    ("S2AGRI_L3B_A20170410T103021_T31UDP", (datetime(2017, 4, 10, 10, 30, 21),) * 2),
    ("no_dates_here", (None, None)),
])
def test_acquisition_range(name, expected):
    assert po.acquisition_range(name) == expected


def test_product_name_ignores_trailing_separator():
    assert po.product_name("/products/3/l3b/PROD/") == "PROD"
    assert po.product_name("") == ""
