"""Tile metadata file naming: tile id, satellite and acquisition date.

Three L2A layouts are recognised:

* MACCS ``S2A_OPER_SSC_L2VALD_31UDP____20170410.HDR`` /
  ``L8_TEST_L8C_L2VALD_196030_20170407.HDR``
* MAJA/THEIA ``SENTINEL2A_20170410-103021-456_L2A_T31UDP_C_V1-0_MTD_ALL.xml``
* Sen2Cor ``.../S2A_MSIL2A_20170410T103021_N0204_R108_T31UDP_20170410T103021.SAFE/MTD_MSIL2A.xml``
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import IntEnum
from typing import Optional


class Satellite(IntEnum):
    UNKNOWN = 0
    S2 = 1
    L8 = 2

    @classmethod
    def from_name(cls, name: str) -> "Satellite":
        upper = name.upper()
        if upper.startswith(("S2", "SENTINEL2")):
            return cls.S2
        if upper.startswith(("L8", "LC8", "LANDSAT8")):
            return cls.L8
        return cls.UNKNOWN


PRIMARY_SATELLITE = Satellite.S2

MACCS_RE = re.compile(
    r"^(?P<sat>[A-Z0-9]+)_[A-Z0-9]+_[A-Z0-9]+_L2VALD_(?P<tile>[0-9A-Z]+)_*(?P<date>\d{8})\.HDR$",
    re.IGNORECASE,
)
MAJA_RE = re.compile(
    r"^(?P<sat>SENTINEL2[A-D]|LANDSAT8[A-Z-]*)_(?P<date>\d{8})-\d{6}-\d{3}_L2A_T(?P<tile>[0-9A-Z]+)_.*MTD_ALL\.xml$",
    re.IGNORECASE,
)
SEN2COR_DIR_RE = re.compile(
    r"^(?P<sat>S2[A-D])_MSIL2A_(?P<date>\d{8})T\d{6}_N\d{4}_R\d{3}_T(?P<tile>\d{2}[A-Z]{3})_",
)


@dataclass(frozen=True)
class TileInfo:
    tile_file: str
    tile_id: str
    satellite: Satellite
    acquisition_date: date


def _info(path: str, m: re.Match) -> TileInfo:
    return TileInfo(
        tile_file=path,
        tile_id=m.group("tile").upper(),
        satellite=Satellite.from_name(m.group("sat")),
        acquisition_date=datetime.strptime(m.group("date"), "%Y%m%d").date(),
    )


def parse_tile_metadata_path(path: str) -> Optional[TileInfo]:
    """Return the :class:`TileInfo` encoded in *path*, or ``None`` if unrecognised."""
    name = os.path.basename(path)

    m = MACCS_RE.match(name) or MAJA_RE.match(name)
    if m is not None:
        return _info(path, m)

    if name.upper().startswith("MTD_MSIL2A"):
        m = SEN2COR_DIR_RE.match(os.path.basename(os.path.dirname(path)))
        if m is not None:
            return _info(path, m)

    return None


def tile_id_from_path(path: str) -> str:
    info = parse_tile_metadata_path(path)
    return "" if info is None else info.tile_id


def tile_accepted(tiles_filter: frozenset, tile_id: str) -> bool:
    """Empty filters accept all; S2 ids match with or without the ``T`` prefix."""
    if not tiles_filter:
        return True
    return tile_id in tiles_filter or f"T{tile_id}" in tiles_filter


def is_tile_metadata_file(name: str) -> bool:
    upper = name.upper()
    return upper.endswith(".HDR") or upper.endswith("MTD_ALL.XML") or upper.startswith("MTD_MSIL2A")
