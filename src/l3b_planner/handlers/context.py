"""Interfaces the planner uses to reach the host system."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Mapping, Optional, Protocol, Tuple

from l3b_planner.models import JobSubmittedEvent, NewJob, Product, ProductRecord
from l3b_planner.tiles.tile_info import Satellite


class ProcessingContext(Protocol):
    """Host services available while a job is planned or its tasks finish."""

    def get_job_configuration_parameters(self, job_id: int, prefix: str) -> Dict[str, str]:
        """Flat config for *job_id*: site values overridden by the job's own."""
        ...

    def get_input_product_tiles(self, event: JobSubmittedEvent) -> Dict[str, List[str]]:
        """``{product_name: [tile_metadata_path, ...]}`` for the job's inputs."""
        ...

    def get_site_tiles(self, site_id: int) -> Dict[Satellite, List[str]]:
        ...

    def get_scratch_root(self) -> str:
        ...

    def get_final_product_folder(self, site_id: int) -> str:
        ...

    def mark_job_failed(self, job_id: int) -> None:
        ...

    def mark_job_finished(self, job_id: int) -> None:
        ...

    def insert_product(self, record: ProductRecord) -> int:
        """Insert *record*; raises :class:`~l3b_planner.errors.CatalogueInsertFailed`."""
        ...

    def submit_job(self, job: NewJob) -> int:
        ...


class SchedulingContext(Protocol):
    """Host services available to the scheduler hook."""

    def get_season_dates(
        self, site_id: int, overrides: Mapping[str, str]
    ) -> Tuple[Optional[date], Optional[date]]:
        ...

    def get_configuration_parameters(
        self, prefix: str, site_id: int, overrides: Mapping[str, str]
    ) -> Dict[str, str]:
        ...

    def get_products(
        self, site_id: int, product_type: int, start: datetime, end: datetime
    ) -> List[Product]:
        """Products whose creation (acquisition) time is in ``[start, end]``."""
        ...

    def get_products_by_inserted_time(
        self, site_id: int, product_type: int, start: datetime, end: datetime
    ) -> List[Product]:
        """Products inserted in the catalogue within ``[start, end]``."""
        ...
