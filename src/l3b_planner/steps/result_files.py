"""Per-tile accumulator of the files the step binder assigned."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from l3b_planner.graph.modules import Indicator
from l3b_planner.tiles.tile_info import TileInfo


@dataclass
class TileResultFiles:
    tile_file: str
    tile_id: str
    resolution_str: str
    has_ndvi: bool = False
    has_lai: bool = False
    has_fapar: bool = False
    has_fcover: bool = False
    status_flags_file: str = ""
    status_flags_file_resampled: str = ""
    ndvi_file: str = ""
    angles_file: str = ""
    in_domain_flags_file: str = ""
    bi_files: Dict[Indicator, str] = field(default_factory=dict)
    bi_domain_flags_files: Dict[Indicator, str] = field(default_factory=dict)

    @classmethod
    def for_tile(cls, tile: TileInfo, flags, resolution_str: str) -> "TileResultFiles":
        return cls(
            tile_file=tile.tile_file,
            tile_id=tile.tile_id,
            resolution_str=resolution_str,
            has_ndvi=flags.ndvi,
            has_lai=flags.lai,
            has_fapar=flags.fapar,
            has_fcover=flags.fcover,
        )

    def has(self, indicator: Indicator) -> bool:
        return getattr(self, f"has_{indicator.value}")
