"""Group L2A tiles by acquisition date, primary satellite first."""

from __future__ import annotations

from datetime import date
from typing import Dict, FrozenSet, Iterable, List, Mapping

from loguru import logger

from l3b_planner.tiles.tile_info import (
    PRIMARY_SATELLITE,
    TileInfo,
    parse_tile_metadata_path,
    tile_accepted,
)


def group_tiles_by_date(
    product_tiles: Mapping[str, Iterable[str]],
    tiles_filter: FrozenSet[str] = frozenset(),
) -> Dict[date, List[TileInfo]]:
    """Bucket tiles by acquisition date.

    Args:
        product_tiles: ``{product_name: [tile_metadata_path, ...]}``.
        tiles_filter: Allowed tile ids; empty accepts every tile.

    Returns:
        Date-ordered ``{date: [TileInfo, ...]}``.  When a date holds tiles
        from several satellites only the primary satellite's are kept.
        Dates left without tiles after filtering are omitted.
    """
    buckets: Dict[date, List[TileInfo]] = {}
    seen: set = set()
    for product_name, tiles in product_tiles.items():
        for path in tiles:
            if path in seen:
                continue
            seen.add(path)
            info = parse_tile_metadata_path(path)
            if info is None:
                logger.warning(f"Cannot determine date/satellite of tile {path} ({product_name}); skipping")
                continue
            buckets.setdefault(info.acquisition_date, []).append(info)

    grouped: Dict[date, List[TileInfo]] = {}
    for day in sorted(buckets):
        tiles = buckets[day]
        if len({t.satellite for t in tiles}) > 1:
            primary = [t for t in tiles if t.satellite == PRIMARY_SATELLITE]
            if primary:
                dropped = len(tiles) - len(primary)
                logger.debug(f"{day}: keeping {len(primary)} primary tiles, dropping {dropped}")
                tiles = primary
        kept = [t for t in tiles if tile_accepted(tiles_filter, t.tile_id)]
        if not kept:
            logger.info(f"{day}: all {len(tiles)} tiles filtered out; skipping date")
            continue
        grouped[day] = kept
    return grouped
