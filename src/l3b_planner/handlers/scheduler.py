"""Scheduler hook: decide whether a scheduled run emits an L3B job."""

from __future__ import annotations

import calendar
import json
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import List, Mapping, Optional

from loguru import logger

from l3b_planner.config import CONFIG_PREFIX
from l3b_planner.handlers.context import SchedulingContext
from l3b_planner.models import Product, ProductType
from l3b_planner.params import config_int


START_SEASON_OFFSET_KEY = "processor.l3b.start_season_offset"
PRODUCTION_INTERVAL_KEY = "processor.l3b.production_interval"
WAIT_INPUTS_KEY = "processor.l3b.sched_wait_proc_inputs"
STALE_AFTER_MONTHS = 2


@dataclass
class JobDefinition:
    is_valid: bool = False
    site_id: int = 0
    products: List[Product] = field(default_factory=list)
    parameters_json: str = ""

    @property
    def parameters(self) -> dict:
        return json.loads(self.parameters_json) if self.parameters_json else {}


def add_months(day: date, months: int) -> date:
    """Calendar month arithmetic, clamping the day to the target month's length."""
    month_index = day.month - 1 + months
    year, month = day.year + month_index // 12, month_index % 12 + 1
    return day.replace(year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1]))


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min)


def get_processing_definition(
    ctx: SchedulingContext,
    site_id: int,
    scheduled: datetime,
    overrides: Optional[Mapping[str, str]] = None,
) -> JobDefinition:
    overrides = dict(overrides or {})
    definition = JobDefinition(site_id=site_id)

    season_start, season_end = ctx.get_season_dates(site_id, overrides)
    if season_start is None or season_end is None:
        logger.error(f"Scheduler L3B: season dates for site {site_id} are invalid")
        return definition

    limit = _midnight(add_months(season_end, STALE_AFTER_MONTHS))
    if scheduled > limit:
        logger.debug(
            f"Scheduler L3B: scheduled date {scheduled} is past the limit {limit} for site {site_id}"
        )
        return definition

    cfg = ctx.get_configuration_parameters(CONFIG_PREFIX, site_id, overrides)
    season_start_dt = _midnight(season_start) + timedelta(days=config_int(cfg, START_SEASON_OFFSET_KEY))
    season_end_dt = _midnight(season_end)

    if overrides.get("product_type") != "L3B":
        return definition
    definition.parameters_json = json.dumps({"monolai": "1"})

    end = scheduled
    start = max(end - timedelta(days=config_int(cfg, PRODUCTION_INTERVAL_KEY)), season_start_dt)

    one_shot = overrides.get("task_repeat_type") == "0"
    if one_shot or scheduled > season_end_dt:
        # past season
        definition.products = ctx.get_products(site_id, ProductType.L2A, start, end)
    else:
        inserted = ctx.get_products_by_inserted_time(site_id, ProductType.L2A, start, end)
        definition.products = [
            p for p in inserted
            if season_start_dt <= p.created < season_end_dt + timedelta(days=1)
        ]

    wait_for_inputs = config_int(cfg, WAIT_INPUTS_KEY) != 0
    if not wait_for_inputs or definition.products:
        definition.is_valid = True
        logger.debug(
            f"Scheduler L3B: {len(definition.products)} products for site {site_id} "
            f"between {start} and {end}"
        )
    else:
        logger.debug(
            f"Scheduler L3B: no products for site {site_id} between {start} and {end}; not executed"
        )
    return definition
