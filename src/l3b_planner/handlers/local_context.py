"""File-backed processing and scheduling context for local runs."""

from __future__ import annotations

import os
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from loguru import logger

from l3b_planner.config import PlannerConfig, resolve_parameters
from l3b_planner.errors import NoInputs
from l3b_planner.models import JobSubmittedEvent, NewJob, Product, ProductRecord, ProductType
from l3b_planner.params import parse_parameters
from l3b_planner.storage.task_paths import final_product_folder
from l3b_planner.tiles.tile_info import (
    Satellite,
    is_tile_metadata_file,
    parse_tile_metadata_path,
)
from l3b_planner.tracking import JobRecord, JobStore, ProductCatalogue


def find_tile_metadata_files(product_path: str) -> List[str]:
    """Tile metadata files of an L2A product (a metadata file or a folder holding them)."""
    if os.path.isfile(product_path):
        return [product_path] if is_tile_metadata_file(os.path.basename(product_path)) else []
    found = []
    for dirpath, _, filenames in os.walk(product_path):
        for name in filenames:
            if is_tile_metadata_file(name):
                found.append(os.path.join(dirpath, name))
    return sorted(found)


class LocalContext:
    """Implements both the processing and the scheduling context.

    Config comes from a :class:`PlannerConfig`, jobs from a
    :class:`JobStore` and products from a :class:`ProductCatalogue`.
    """

    def __init__(
        self,
        cfg: PlannerConfig,
        jobs: Optional[JobStore] = None,
        catalogue: Optional[ProductCatalogue] = None,
    ):
        self.cfg = cfg
        self.jobs = jobs or JobStore(cfg.paths.jobs_dir)
        self.catalogue = catalogue or ProductCatalogue(cfg.paths.catalogue_path)

    # -- jobs ------------------------------------------------------------

    def _job(self, job_id: int) -> Optional[JobRecord]:
        try:
            return self.jobs.load(job_id)
        except FileNotFoundError:
            return None

    def _job_parameters(self, job: Optional[JobRecord]) -> Dict[str, Any]:
        if job is None:
            return {}
        return parse_parameters(job.parameters_json)

    def get_job_configuration_parameters(self, job_id: int, prefix: str) -> Dict[str, str]:
        job = self._job(job_id)
        params = self._job_parameters(job)
        # job parameters may carry config keys of their own
        overrides = {k: v for k, v in params.items() if isinstance(k, str) and k.startswith(prefix)}
        return resolve_parameters(
            self.cfg, prefix, site_id=job.site_id if job else None, overrides=overrides
        )

    def mark_job_failed(self, job_id: int) -> None:
        if self._job(job_id) is not None:
            self.jobs.set_status(job_id, "failed")
        logger.warning(f"Job {job_id} marked failed")

    def mark_job_finished(self, job_id: int) -> None:
        if self._job(job_id) is not None:
            self.jobs.set_status(job_id, "finished")
        logger.info(f"Job {job_id} marked finished")

    def submit_job(self, job: NewJob) -> int:
        record = self.jobs.create(job.processor_id, job.site_id, job.parameters_json, job.start_type)
        logger.info(f"Job {record.job_id} created ({job.start_type}) for site {job.site_id}")
        return record.job_id

    # -- inputs ----------------------------------------------------------

    def _resolve_product_path(self, site_id: int, product: str) -> Optional[str]:
        if os.path.exists(product):
            return product
        for p in self.catalogue.products(site_id, ProductType.L2A):
            if p.name == product:
                return p.full_path
        return None

    def get_input_product_tiles(self, event: JobSubmittedEvent) -> Dict[str, List[str]]:
        params = parse_parameters(event.parameters_json)
        names = params.get("input_products")
        if names is None:
            names = [p.full_path for p in self.catalogue.products(event.site_id, ProductType.L2A)]
        elif isinstance(names, str):
            names = [names]

        product_tiles: Dict[str, List[str]] = {}
        for name in names:
            path = self._resolve_product_path(event.site_id, str(name))
            if path is None:
                logger.warning(f"Input product {name} not found; skipping")
                continue
            tiles = find_tile_metadata_files(path)
            if not tiles:
                logger.warning(f"No tile metadata in {path}; skipping")
                continue
            product_tiles[os.path.basename(os.path.normpath(path))] = tiles
        return product_tiles

    def get_site_tiles(self, site_id: int) -> Dict[Satellite, List[str]]:
        site = self.cfg.sites.get(site_id)
        if site is None:
            return {}
        return {Satellite.from_name(sat): list(tiles) for sat, tiles in site.tiles.items()}

    def get_scratch_root(self) -> str:
        return self.cfg.paths.scratch_root

    def get_final_product_folder(self, site_id: int) -> str:
        return final_product_folder(self.cfg.paths.products_root, site_id)

    # -- catalogue -------------------------------------------------------

    def insert_product(self, record: ProductRecord) -> int:
        return self.catalogue.insert(record)

    def register_l2a_product(self, site_id: int, product_path: str) -> int:
        """Catalogue an L2A product folder so it can be used as job input."""
        tiles = [parse_tile_metadata_path(t) for t in find_tile_metadata_files(product_path)]
        tiles = [t for t in tiles if t is not None]
        if not tiles:
            raise NoInputs(f"{product_path} holds no recognisable tile metadata")
        first = tiles[0]
        record = ProductRecord(
            product_type=ProductType.L2A,
            processor_id=0,
            satellite_id=int(first.satellite),
            site_id=site_id,
            job_id=0,
            full_path=os.path.abspath(product_path),
            created=datetime.combine(first.acquisition_date, datetime.min.time()),
            name=os.path.basename(os.path.normpath(product_path)),
            quicklook="",
            footprint="",
            tiles=sorted({t.tile_id for t in tiles}),
        )
        return self.catalogue.insert(record)

    # -- scheduling ------------------------------------------------------

    def get_season_dates(
        self, site_id: int, overrides: Mapping[str, str]
    ) -> Tuple[Optional[date], Optional[date]]:
        site = self.cfg.sites.get(site_id)
        if site is None:
            return None, None
        return site.season_start, site.season_end

    def get_configuration_parameters(
        self, prefix: str, site_id: int, overrides: Mapping[str, str]
    ) -> Dict[str, str]:
        return resolve_parameters(self.cfg, prefix, site_id=site_id, overrides=dict(overrides))

    def get_products(
        self, site_id: int, product_type: int, start: datetime, end: datetime
    ) -> List[Product]:
        return [p for p in self.catalogue.products(site_id, product_type) if start <= p.created <= end]

    def get_products_by_inserted_time(
        self, site_id: int, product_type: int, start: datetime, end: datetime
    ) -> List[Product]:
        return [p for p in self.catalogue.products(site_id, product_type) if start <= p.inserted <= end]
