"""React to finished tasks: close the job, catalogue products, trigger L3C."""

from __future__ import annotations

import json
import shutil
from typing import Optional

from loguru import logger

from l3b_planner.config import CONFIG_PREFIX
from l3b_planner.errors import CatalogueInsertFailed
from l3b_planner.graph import modules as m
from l3b_planner.handlers import product_outputs as po
from l3b_planner.handlers.context import ProcessingContext
from l3b_planner.models import JobStartType, NewJob, ProductRecord, ProductType, TaskFinishedEvent
from l3b_planner.params import LINK_L3C_KEY, REMOVE_TEMP_FILES_KEY, config_int
from l3b_planner.storage.task_paths import job_scratch_dir, task_working_dir
from l3b_planner.tiles.tile_info import Satellite


L3C_JOB_PARAMETERS = {
    "resolution": "10",
    "reproc": "1",
    "inputs_are_l3b": "1",
    "max_l3b_per_tile": "3",
}


def _skip_missing(func, path, exc_info) -> None:
    # the files-remover task may run alongside the end-of-job sentinel
    if not isinstance(exc_info[1], FileNotFoundError):
        raise exc_info[1]


def _remove_job_folder(ctx: ProcessingContext, job_id: int) -> None:
    cfg = ctx.get_job_configuration_parameters(job_id, CONFIG_PREFIX)
    if config_int(cfg, REMOVE_TEMP_FILES_KEY, default=1) == 0:
        return
    folder = job_scratch_dir(ctx.get_scratch_root(), job_id)
    try:
        shutil.rmtree(folder, onerror=_skip_missing)
        logger.info(f"Removed job folder {folder}")
    except OSError as exc:
        logger.warning(f"Cannot remove job folder {folder}: {exc}")


def submit_l3c_job(
    ctx: ProcessingContext, event: TaskFinishedEvent, satellite: Satellite, product: str
) -> Optional[int]:
    """Trigger an L3C job for a new S2 L3B product when the site asks for it."""
    cfg = ctx.get_job_configuration_parameters(event.job_id, LINK_L3C_KEY)
    if config_int(cfg, LINK_L3C_KEY) != 1:
        return None
    if satellite != Satellite.S2:
        logger.debug(f"No L3C job for {product}: satellite is {satellite.name}")
        return None

    parameters = {"input_products": [product], **L3C_JOB_PARAMETERS}
    job = NewJob(
        processor_id=event.processor_id,
        site_id=event.site_id,
        start_type=JobStartType.TRIGGERED,
        parameters_json=json.dumps(parameters),
    )
    job_id = ctx.submit_job(job)
    logger.info(f"Submitted L3C job {job_id} for {product}")
    return job_id


def _handle_product_formatter(ctx: ProcessingContext, event: TaskFinishedEvent) -> Optional[int]:
    out_dir = task_working_dir(ctx.get_scratch_root(), event.job_id, event.task_id, event.module)
    product_path = po.read_product_path(out_dir)
    name = po.product_name(product_path)
    if not name or not po.is_valid_product(product_path):
        # other products of the job may still be fine
        logger.error(f"Cannot insert into catalogue the product with name {name!r} and folder {product_path!r}")
        return None

    tiles = po.product_tile_ids(product_path)
    satellite = po.satellite_for_tiles(tiles, ctx.get_site_tiles(event.site_id))
    _, max_date = po.acquisition_range(name)

    record = ProductRecord(
        product_type=ProductType.L3B,
        processor_id=event.processor_id,
        satellite_id=int(satellite),
        site_id=event.site_id,
        job_id=event.job_id,
        full_path=product_path,
        created=max_date,
        name=name,
        quicklook=po.product_quicklook(product_path),
        footprint=po.product_footprint(product_path),
        tiles=tiles,
    )
    try:
        product_id = ctx.insert_product(record)
    except CatalogueInsertFailed as exc:
        logger.error(f"Insert of {name} failed: {exc}")
        return None
    logger.debug(f"Insert of {name} returned {product_id}")

    submit_l3c_job(ctx, event, satellite, name)
    return product_id


def handle_task_finished(ctx: ProcessingContext, event: TaskFinishedEvent) -> Optional[int]:
    """Handle one task-finished event; returns the catalogue id of an inserted product."""
    if event.module == m.END_OF_JOB:
        ctx.mark_job_finished(event.job_id)
        _remove_job_folder(ctx, event.job_id)
        return None
    if event.module == m.PRODUCT_FORMATTER:
        return _handle_product_formatter(ctx, event)
    return None
