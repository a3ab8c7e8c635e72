"""Events, job descriptions and catalogue records exchanged with the host."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, List, Optional


PROCESSOR_SHORT_NAME = "l3b"


class ProductType(IntEnum):
    L2A = 1
    L3A = 2
    L3B = 3
    L3C = 8


class JobStartType:
    REQUESTED = "Requested"
    SCHEDULED = "Scheduled"
    TRIGGERED = "Triggered"


@dataclass
class JobSubmittedEvent:
    job_id: int
    processor_id: int
    site_id: int
    parameters_json: str = "{}"


@dataclass
class TaskFinishedEvent:
    processor_id: int
    site_id: int
    job_id: int
    task_id: int
    module: str


@dataclass
class NewJob:
    """A follow-on job request submitted through the processing context."""

    processor_id: int
    site_id: int
    start_type: str = JobStartType.REQUESTED
    parameters_json: str = "{}"
    name: str = ""


@dataclass
class ProductRecord:
    """One catalogue row for a finished high-level product."""

    product_type: int
    processor_id: int
    satellite_id: int
    site_id: int
    job_id: int
    full_path: str
    created: Optional[datetime]
    name: str
    quicklook: str
    footprint: str
    orbit_id: Optional[int] = None
    tiles: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Product:
    """An existing catalogue product as seen by the scheduler."""

    product_id: int
    product_type: int
    site_id: int
    name: str
    full_path: str
    created: datetime
    inserted: datetime
    satellite_id: int = 0
