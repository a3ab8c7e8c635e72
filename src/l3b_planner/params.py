"""Job parameter / site configuration resolution.

A job carries a JSON object of parameters; the site carries a flat map of
``processor.l3b.*`` string values.  Everything the planner needs is read
here into a :class:`JobSettings` before any task is built.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping

from l3b_planner.errors import ConfigInvalid
from l3b_planner.graph.modules import BI_INDICATORS, Indicator


DEFAULT_RESOLUTION = 10

# parameter name -> config key
MONO_DATE_LAI = ("monolai", "processor.l3b.mono_date_lai")
INDICATOR_KEYS = {
    Indicator.NDVI: ("genndvi", "processor.l3b.lai.produce_ndvi"),
    Indicator.LAI: ("genlai", "processor.l3b.lai.produce_lai"),
    Indicator.FAPAR: ("genfapar", "processor.l3b.lai.produce_fapar"),
    Indicator.FCOVER: ("genfcover", "processor.l3b.lai.produce_fcover"),
}
CHAIN_PRODUCTS = ("chain_products", "processor.l3b.lai.chain_products")

LAI_CFG_FILE_KEY = "processor.l3b.lai.laibandscfgfile"
MODELS_FOLDER_KEY = "processor.l3b.lai.modelsfolder"
TILES_FILTER_KEY = "processor.l3b.lai.tiles_filter"
LUT_PATH_KEY = "processor.l3b.lai.lut_path"
LINK_L3C_KEY = "processor.l3b.lai.link_l3c_to_l3b"
REMOVE_TEMP_FILES_KEY = "processor.l3b.remove_temp_files"
COG_KEY = "processor.l3b.cloud_optimized_geotiff"


def config_int(cfg: Mapping[str, str], key: str, default: int = 0) -> int:
    """Integer view of a config value; missing or garbage reads as *default*."""
    raw = cfg.get(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def is_flag(
    params: Mapping[str, Any],
    cfg: Mapping[str, str],
    param_name: str,
    cfg_key: str,
    default: bool = False,
) -> bool:
    """Resolve a boolean from job parameters, falling back to site config.

    A parameter that is present always wins: numbers are true when
    non-zero, strings only when equal to ``"1"``, anything else is false.
    """
    if param_name in params:
        value = params[param_name]
        # JSON booleans are neither numbers nor strings here
        if isinstance(value, bool):
            return False
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            return value == "1"
        return False
    if cfg_key:
        return config_int(cfg, cfg_key) != 0
    return default


def parse_tiles_filter(raw: str | None) -> FrozenSet[str]:
    """``"T30TYT, T31UDP ,"`` -> ``{"T30TYT", "T31UDP"}``; empty means accept all."""
    if not raw:
        return frozenset()
    return frozenset(t.strip() for t in raw.split(",") if t.strip())


def get_tiles_filter(params: Mapping[str, Any], cfg: Mapping[str, str]) -> FrozenSet[str]:
    raw = params.get("tiles_filter")
    if not isinstance(raw, str) or not raw:
        raw = cfg.get(TILES_FILTER_KEY, "")
    return parse_tiles_filter(raw)


def get_resolution(params: Mapping[str, Any]) -> int:
    try:
        resolution = int(params.get("resolution", 0))
    except (TypeError, ValueError):
        resolution = 0
    return resolution or DEFAULT_RESOLUTION


def parse_parameters(parameters_json: str) -> Dict[str, Any]:
    """Decode the job's JSON parameters; they must form an object."""
    try:
        parameters = json.loads(parameters_json or "{}")
    except json.JSONDecodeError as exc:
        raise ConfigInvalid(f"Job parameters are not valid JSON: {exc}") from exc
    if not isinstance(parameters, dict):
        raise ConfigInvalid("Job parameters must be a JSON object")
    return parameters


@dataclass(frozen=True)
class IndicatorFlags:
    ndvi: bool = False
    lai: bool = False
    fapar: bool = False
    fcover: bool = False

    def enabled(self, indicator: Indicator) -> bool:
        return getattr(self, indicator.value)

    @property
    def bi_indicators(self) -> List[Indicator]:
        """Enabled biophysical indicators in production order (lai, fapar, fcover)."""
        return [ind for ind in BI_INDICATORS if self.enabled(ind)]

    def any(self) -> bool:
        return self.ndvi or bool(self.bi_indicators)


@dataclass(frozen=True)
class JobSettings:
    flags: IndicatorFlags
    chain_products: bool = True
    remove_temp_files: bool = True
    resolution: int = DEFAULT_RESOLUTION
    lai_cfg_file: str = ""
    models_folder: str = ""
    lut_file: str = ""
    cloud_optimized: bool = False
    tiles_filter: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def resolution_str(self) -> str:
        return str(self.resolution)


def resolve_indicator_flags(params: Mapping[str, Any], cfg: Mapping[str, str]) -> IndicatorFlags:
    return IndicatorFlags(**{
        ind.value: is_flag(params, cfg, name, key)
        for ind, (name, key) in INDICATOR_KEYS.items()
    })


def _chain_products(params: Mapping[str, Any], cfg: Mapping[str, str]) -> bool:
    """Products are chained unless a parameter or the site config says otherwise."""
    param_name, cfg_key = CHAIN_PRODUCTS
    if param_name not in params and not cfg.get(cfg_key, "").strip():
        return True
    return is_flag(params, cfg, param_name, cfg_key)


def resolve_job_settings(params: Mapping[str, Any], cfg: Mapping[str, str]) -> JobSettings:
    """Build the typed view of a job; raises :class:`ConfigInvalid` when unusable."""
    if not is_flag(params, cfg, *MONO_DATE_LAI):
        raise ConfigInvalid("LAI mono-date processing needs to be defined")

    flags = resolve_indicator_flags(params, cfg)
    if not flags.any():
        raise ConfigInvalid("No index was configured to be generated")

    return JobSettings(
        flags=flags,
        chain_products=_chain_products(params, cfg),
        remove_temp_files=config_int(cfg, REMOVE_TEMP_FILES_KEY, default=1) != 0,
        resolution=get_resolution(params),
        lai_cfg_file=cfg.get(LAI_CFG_FILE_KEY, ""),
        models_folder=cfg.get(MODELS_FOLDER_KEY, ""),
        lut_file=cfg.get(LUT_PATH_KEY, ""),
        cloud_optimized=config_int(cfg, COG_KEY) != 0,
        tiles_filter=get_tiles_filter(params, cfg),
    )
