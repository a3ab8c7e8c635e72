"""YAML config loading with dataclass defaults.

The file carries three things: where the planner keeps its scratch and
output folders, how the local executor runs, and the flat
``processor.l3b.*`` key/value configuration (global, then per site).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from loguru import logger


CONFIG_PREFIX = "processor.l3b."
PATH_KEYS = ("scratch_root", "products_root", "catalogue_path", "jobs_dir", "report_dir")


@dataclass
class PathsConfig:
    scratch_root: str = "/tmp/l3b/scratch"
    products_root: str = "/tmp/l3b/products"
    catalogue_path: str = ".l3b/catalogue.json"
    jobs_dir: str = ".l3b/jobs"
    report_dir: str = "job_reports"


@dataclass
class ExecutorConfig:
    max_workers: int = 1
    dry_run: bool = False
    otb_launcher: str = "otbcli"


@dataclass
class SiteConfig:
    parameters: Dict[str, str] = field(default_factory=dict)
    season_start: Optional[date] = None
    season_end: Optional[date] = None
    # satellite name ("S2", "L8") -> tile ids
    tiles: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class PlannerConfig:
    paths: PathsConfig = field(default_factory=PathsConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    parameters: Dict[str, str] = field(default_factory=dict)
    sites: Dict[int, SiteConfig] = field(default_factory=dict)


def _as_str_map(raw: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Config values are stored as strings, the way the site database keeps them."""
    return {str(k): "" if v is None else str(v) for k, v in (raw or {}).items()}


def _as_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _load_site(raw: Dict[str, Any]) -> SiteConfig:
    site = SiteConfig()
    site.season_start = _as_date(raw.get("season_start"))
    site.season_end = _as_date(raw.get("season_end"))
    site.tiles = {
        str(sat): [str(t) for t in tiles or []]
        for sat, tiles in (raw.get("tiles") or {}).items()
    }
    site.parameters = _as_str_map(
        {k: v for k, v in raw.items() if k.startswith(CONFIG_PREFIX)}
    )
    return site


def load_config(path: Optional[str] = None) -> PlannerConfig:
    """Load config from YAML, falling back to defaults for missing keys."""
    if path is None:
        # Try default location
        default = Path("l3b.yaml")
        if not default.exists():
            logger.warning("No config file found; using built-in defaults")
            return PlannerConfig()
        path = str(default)

    logger.info(f"Using config: {path}")
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    cfg = PlannerConfig()

    paths = raw.get("planner", {})
    for key in sorted(set(paths) - set(PATH_KEYS)):
        logger.warning(f"Ignoring unknown planner key {key!r}")
    for key in PATH_KEYS:
        if paths.get(key):
            setattr(cfg.paths, key, str(paths[key]))

    ex = raw.get("executor", {})
    for key in ("max_workers", "dry_run", "otb_launcher"):
        if ex.get(key) is not None:
            setattr(cfg.executor, key, ex[key])

    cfg.parameters = _as_str_map(raw.get("parameters"))

    for site_id, site_raw in (raw.get("sites") or {}).items():
        cfg.sites[int(site_id)] = _load_site(site_raw or {})

    return cfg


def resolve_parameters(
    cfg: PlannerConfig,
    prefix: str,
    site_id: Optional[int] = None,
    overrides: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    """Flatten global, site and request-level keys that start with *prefix*.

    Later layers win: global < site < overrides.
    """
    merged: Dict[str, str] = dict(cfg.parameters)
    site = cfg.sites.get(site_id) if site_id is not None else None
    if site is not None:
        merged.update(site.parameters)
    if overrides:
        merged.update(_as_str_map(overrides))
    return {k: v for k, v in merged.items() if k.startswith(prefix)}
