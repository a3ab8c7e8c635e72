"""Tests for the scheduler hook."""

from datetime import date, datetime

import pytest

from l3b_planner.handlers import get_processing_definition
from l3b_planner.handlers.scheduler import add_months
from l3b_planner.models import Product, ProductType


def product(name, created, inserted=None):
    return Product(
        product_id=1, product_type=ProductType.L2A, site_id=3, name=name,
        full_path=f"/l2a/{name}", created=created, inserted=inserted or created,
    )


class FakeScheduling:
    def __init__(self, season=(date(2017, 3, 1), date(2017, 10, 31)), cfg=None, products=()):
        self.season = season
        self.cfg = cfg or {}
        self.products = list(products)
        self.calls = []

    def get_season_dates(self, site_id, overrides):
        return self.season

    def get_configuration_parameters(self, prefix, site_id, overrides):
        return self.cfg

    def get_products(self, site_id, product_type, start, end):
        self.calls.append(("created", product_type, start, end))
        return [p for p in self.products if start <= p.created <= end]

    def get_products_by_inserted_time(self, site_id, product_type, start, end):
        self.calls.append(("inserted", product_type, start, end))
        return [p for p in self.products if start <= p.inserted <= end]


L3B = {"product_type": "L3B"}


@pytest.mark.parametrize("day, months, expected", [
    (date(2017, 10, 31), 2, date(2017, 12, 31)),
    (date(2017, 12, 31), 2, date(2018, 2, 28)),
    (date(2016, 12, 30), 2, date(2017, 2, 28)),
    (date(2017, 1, 15), 0, date(2017, 1, 15)),
])
def test_add_months(day, months, expected):
    assert add_months(day, months) == expected


def test_invalid_season_emits_nothing():
    ctx = FakeScheduling(season=(None, date(2017, 10, 31)))
    definition = get_processing_definition(ctx, 3, datetime(2017, 5, 1), L3B)
    assert not definition.is_valid
    assert ctx.calls == []


def test_stale_schedule_emits_nothing():
    ctx = FakeScheduling()
    definition = get_processing_definition(ctx, 3, datetime(2018, 1, 1), L3B)
    assert not definition.is_valid
    assert ctx.calls == []


def test_product_type_checked_before_fetching():
    ctx = FakeScheduling()
    definition = get_processing_definition(ctx, 3, datetime(2017, 5, 1), {"product_type": "L3A"})
    assert not definition.is_valid
    assert ctx.calls == []


def test_in_season_uses_insertion_time_and_season_filter():
    ctx = FakeScheduling(
        cfg={"processor.l3b.production_interval": "10"},
        products=[
            product("in", datetime(2017, 4, 28), inserted=datetime(2017, 4, 29)),
            # inserted recently but acquired before the season
            product("old", datetime(2017, 2, 10), inserted=datetime(2017, 4, 30)),
        ],
    )
    definition = get_processing_definition(ctx, 3, datetime(2017, 5, 1), L3B)

    assert definition.is_valid
    assert [p.name for p in definition.products] == ["in"]
    assert definition.parameters == {"monolai": "1"}
    kind, product_type, start, end = ctx.calls[0]
    assert (kind, product_type) == ("inserted", ProductType.L2A)
    assert (start, end) == (datetime(2017, 4, 21), datetime(2017, 5, 1))


def test_start_is_clamped_to_shifted_season_start():
    ctx = FakeScheduling(cfg={
        "processor.l3b.production_interval": "100",
        "processor.l3b.start_season_offset": "5",
    })
    get_processing_definition(ctx, 3, datetime(2017, 4, 1), L3B)
    _, _, start, _ = ctx.calls[0]
    assert start == datetime(2017, 3, 6)


@pytest.mark.parametrize("scheduled, overrides", [
    (datetime(2017, 11, 15), L3B),
    (datetime(2017, 5, 1), dict(L3B, task_repeat_type="0")),
])
def test_past_season_or_one_shot_uses_creation_time(scheduled, overrides):
    ctx = FakeScheduling(cfg={"processor.l3b.production_interval": "400"})
    get_processing_definition(ctx, 3, scheduled, overrides)
    assert ctx.calls[0][0] == "created"


def test_waiting_for_inputs():
    ctx = FakeScheduling(cfg={"processor.l3b.sched_wait_proc_inputs": "1"})
    assert not get_processing_definition(ctx, 3, datetime(2017, 5, 1), L3B).is_valid

    ctx = FakeScheduling(cfg={"processor.l3b.sched_wait_proc_inputs": "0"})
    definition = get_processing_definition(ctx, 3, datetime(2017, 5, 1), L3B)
    assert definition.is_valid
    assert definition.products == []
