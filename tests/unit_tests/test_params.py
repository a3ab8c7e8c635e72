"""Tests for job parameter and site config resolution."""

import pytest

from l3b_planner.errors import ConfigInvalid
from l3b_planner.params import (
    IndicatorFlags,
    get_resolution,
    get_tiles_filter,
    is_flag,
    parse_parameters,
    parse_tiles_filter,
    resolve_job_settings,
)

LAI_KEY = "processor.l3b.lai.produce_lai"


@pytest.mark.parametrize("params, expected", [
    ({"genlai": 1}, True),
    ({"genlai": 2.0}, True),
    ({"genlai": 0.5}, True),
    ({"genlai": 0}, False),
    ({"genlai": "1"}, True),
    ({"genlai": "0"}, False),
    ({"genlai": "true"}, False),
    ({"genlai": None}, False),
    ({"genlai": [1]}, False),
])
def test_is_flag_parameter_wins(params, expected):
    # config says the opposite; a present parameter always decides
    cfg = {LAI_KEY: "0" if expected else "1"}
    assert is_flag(params, cfg, "genlai", LAI_KEY) is expected


def test_is_flag_falls_back_to_config():
    assert is_flag({}, {LAI_KEY: "1"}, "genlai", LAI_KEY) is True
    assert is_flag({}, {LAI_KEY: "0"}, "genlai", LAI_KEY) is False


def test_is_flag_missing_or_garbage_config_reads_zero():
    assert is_flag({}, {}, "genlai", LAI_KEY, default=True) is False
    assert is_flag({}, {LAI_KEY: "yes"}, "genlai", LAI_KEY, default=True) is False


def test_is_flag_without_config_key_uses_default():
    assert is_flag({}, {}, "genlai", "", default=True) is True
    assert is_flag({}, {}, "genlai", "", default=False) is False


@pytest.mark.parametrize("params, cfg", [
    ({"genlai": 1}, {}),
    ({"genlai": "0"}, {LAI_KEY: "1"}),
    ({}, {LAI_KEY: "1"}),
    ({}, {}),
])
def test_is_flag_is_idempotent(params, cfg):
    first = is_flag(params, cfg, "genlai", "", default=False)
    assert is_flag(params, cfg, "genlai", "", default=first) == first


def test_parse_tiles_filter():
    assert parse_tiles_filter("T30TYT, T31UDP ,") == {"T30TYT", "T31UDP"}
    assert parse_tiles_filter("") == frozenset()
    assert parse_tiles_filter(None) == frozenset()


def test_tiles_filter_parameter_over_config():
    cfg = {"processor.l3b.lai.tiles_filter": "T30TYT"}
    assert get_tiles_filter({"tiles_filter": "T31UDP"}, cfg) == {"T31UDP"}
    assert get_tiles_filter({}, cfg) == {"T30TYT"}


@pytest.mark.parametrize("params, expected", [
    ({}, 10),
    ({"resolution": "20"}, 20),
    ({"resolution": 0}, 10),
    ({"resolution": "abc"}, 10),
])
def test_get_resolution(params, expected):
    assert get_resolution(params) == expected


def test_parse_parameters_rejects_non_objects():
    assert parse_parameters("") == {}
    with pytest.raises(ConfigInvalid):
        parse_parameters("[1, 2]")
    with pytest.raises(ConfigInvalid):
        parse_parameters("{not json")


def test_resolve_job_settings_requires_mono_date(lai_cfg):
    cfg = dict(lai_cfg, **{"processor.l3b.mono_date_lai": "0"})
    with pytest.raises(ConfigInvalid, match="mono-date"):
        resolve_job_settings({}, cfg)
    with pytest.raises(ConfigInvalid, match="mono-date"):
        resolve_job_settings({"monolai": "0"}, lai_cfg)


def test_resolve_job_settings_requires_an_indicator():
    with pytest.raises(ConfigInvalid, match="No index"):
        resolve_job_settings({"monolai": "1"}, {})


def test_resolve_job_settings_reads_site_config(lai_cfg):
    cfg = dict(lai_cfg, **{
        "processor.l3b.lai.produce_ndvi": "1",
        "processor.l3b.lai.lut_path": "/luts/lai.map",
        "processor.l3b.cloud_optimized_geotiff": "1",
        "processor.l3b.lai.chain_products": "0",
    })
    settings = resolve_job_settings({"genfcover": "1", "resolution": "20"}, cfg)

    assert settings.flags == IndicatorFlags(ndvi=True, lai=True, fapar=False, fcover=True)
    assert settings.resolution_str == "20"
    assert settings.lai_cfg_file == "/cfg/lai_bands.cfg"
    assert settings.lut_file == "/luts/lai.map"
    assert settings.cloud_optimized is True
    assert settings.chain_products is False
    assert settings.remove_temp_files is False


def test_chain_products_and_cleanup_default_on():
    settings = resolve_job_settings({"monolai": 1, "genndvi": 1}, {})
    assert settings.chain_products is True
    assert settings.remove_temp_files is True
    assert settings.tiles_filter == frozenset()


def test_bi_indicators_in_production_order():
    flags = IndicatorFlags(ndvi=True, lai=False, fapar=True, fcover=True)
    assert [i.value for i in flags.bi_indicators] == ["fapar", "fcover"]
    assert flags.any()
    assert not IndicatorFlags().any()
