"""Input tile parsing and grouping."""

from l3b_planner.tiles.grouping import group_tiles_by_date
from l3b_planner.tiles.tile_info import (
    PRIMARY_SATELLITE,
    Satellite,
    TileInfo,
    parse_tile_metadata_path,
    tile_accepted,
)

__all__ = [
    "PRIMARY_SATELLITE",
    "Satellite",
    "TileInfo",
    "group_tiles_by_date",
    "parse_tile_metadata_path",
    "tile_accepted",
]
