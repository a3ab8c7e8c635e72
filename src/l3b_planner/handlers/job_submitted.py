"""Plan a submitted job: group inputs, build the task DAG, register and bind it."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from loguru import logger

from l3b_planner.config import CONFIG_PREFIX
from l3b_planner.errors import NoInputs, PlannerError, PlannerInvariantBroken, UnwritableScratch
from l3b_planner.executor.gateway import END_OF_JOB_STEP, ExecutorGateway, submit_steps, submit_tasks
from l3b_planner.graph.builder import ProductTasks, append_end_of_job, append_product_tasks
from l3b_planner.graph.tasks import Step, TaskGraph
from l3b_planner.handlers.context import ProcessingContext
from l3b_planner.models import JobSubmittedEvent
from l3b_planner.params import JobSettings, parse_parameters, resolve_job_settings
from l3b_planner.steps.binder import BoundProduct, JobLayout, bind_product_steps
from l3b_planner.tiles.grouping import group_tiles_by_date


@dataclass
class PlannedProduct:
    acquisition_date: date
    tasks: ProductTasks
    bound: BoundProduct


@dataclass
class JobPlan:
    """Everything submitted for one job."""

    job_id: int
    settings: JobSettings
    graph: TaskGraph = field(default_factory=TaskGraph)
    products: List[PlannedProduct] = field(default_factory=list)
    end_of_job: Optional[int] = None

    @property
    def steps(self) -> List[Step]:
        return [s for p in self.products for s in p.bound.steps]


def _ensure_models_folder(folder: str) -> None:
    if not folder:
        return
    try:
        os.makedirs(folder, exist_ok=True)
    except OSError as exc:
        raise UnwritableScratch(f"Unable to create path {folder} for models: {exc}") from exc


def _plan(ctx: ProcessingContext, gateway: ExecutorGateway, event: JobSubmittedEvent) -> JobPlan:
    params = parse_parameters(event.parameters_json)
    cfg = ctx.get_job_configuration_parameters(event.job_id, CONFIG_PREFIX)
    settings = resolve_job_settings(params, cfg)
    _ensure_models_folder(settings.models_folder)

    product_tiles = ctx.get_input_product_tiles(event)
    if not product_tiles:
        raise NoInputs(f"No input products for job {event.job_id}")

    groups = group_tiles_by_date(product_tiles, settings.tiles_filter)
    if not groups:
        raise NoInputs(f"No tiles left for job {event.job_id} after grouping and filtering")

    layout = JobLayout(
        job_id=event.job_id,
        site_id=event.site_id,
        scratch_root=ctx.get_scratch_root(),
        destroot=ctx.get_final_product_folder(event.site_id),
    )
    plan = JobPlan(job_id=event.job_id, settings=settings)
    enabled = [f for f in ("ndvi", "lai", "fapar", "fcover") if getattr(settings.flags, f)]
    logger.info(
        f"Planning {len(groups)} products for site {event.site_id} "
        f"(indicators: {', '.join(enabled)}, chain_products={settings.chain_products})"
    )

    chain_after: Optional[int] = None
    for day, tiles in groups.items():
        product = append_product_tasks(
            plan.graph,
            settings.flags,
            len(tiles),
            chain_products=settings.chain_products,
            remove_temp_files=settings.remove_temp_files,
            chain_after=chain_after,
        )
        chain_after = product.last_tile_task
        plan.graph.validate()

        submit_tasks(gateway, event.job_id, plan.graph, product.indices())
        bound = bind_product_steps(plan.graph, product, tiles, settings, layout)
        submit_steps(gateway, bound.steps)
        plan.products.append(PlannedProduct(day, product, bound))
        logger.info(
            f"Product {day:%Y%m%d}: {len(tiles)} tiles, {len(product.indices())} tasks "
            f"({', '.join(t.tile_id for t in tiles)})"
        )

    end, formatters = append_end_of_job(plan.graph)
    submit_tasks(gateway, event.job_id, plan.graph, [end])
    submit_steps(gateway, [Step(end, plan.graph[end].task_id, END_OF_JOB_STEP, [])])
    plan.end_of_job = end
    logger.info(
        f"Submitted {len(plan.graph)} tasks; end-of-job waits for {len(formatters)} formatters"
    )
    return plan


def handle_job_submitted(
    ctx: ProcessingContext, gateway: ExecutorGateway, event: JobSubmittedEvent
) -> JobPlan:
    """Plan and submit *event*'s job.

    Any :class:`PlannerError` marks the job failed and is re-raised; a
    filesystem error from the context is raised as :class:`UnwritableScratch`.
    """
    try:
        try:
            return _plan(ctx, gateway, event)
        except OSError as exc:
            raise UnwritableScratch(f"Filesystem error while planning job {event.job_id}: {exc}") from exc
    except PlannerError as exc:
        if isinstance(exc, PlannerInvariantBroken):
            logger.exception(f"Planner invariant broken for job {event.job_id}: {exc}")
        else:
            logger.error(f"Job {event.job_id} rejected: {type(exc).__name__}: {exc}")
        ctx.mark_job_failed(event.job_id)
        raise
