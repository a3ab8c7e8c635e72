"""Product-formatter argument assembly and its ``executionInfos.xml`` sidecar."""

from __future__ import annotations

import os
import xml.etree.ElementTree as ET
from typing import Callable, List, Sequence

from loguru import logger

from l3b_planner.errors import UnwritableScratch
from l3b_planner.graph.modules import Indicator
from l3b_planner.steps.result_files import TileResultFiles


PRODUCT_FORMATTER_OUT_PROPS_FILE = "product_properties.txt"
EXECUTION_INFOS_FILE = "executionInfos.xml"

# (section key, value getter, indicator that enables it or None for always)
_SECTIONS: List[tuple] = [
    ("-processor.vegetation.laistatusflgs", lambda t: t.status_flags_file_resampled, None),
    ("-processor.vegetation.indomainflgs", lambda t: t.in_domain_flags_file, None),
    ("-processor.vegetation.laindvi", lambda t: t.ndvi_file, Indicator.NDVI),
    ("-processor.vegetation.laimonodate", lambda t: t.bi_files[Indicator.LAI], Indicator.LAI),
    ("-processor.vegetation.laidomainflgs", lambda t: t.bi_domain_flags_files[Indicator.LAI], Indicator.LAI),
    ("-processor.vegetation.faparmonodate", lambda t: t.bi_files[Indicator.FAPAR], Indicator.FAPAR),
    ("-processor.vegetation.fapardomainflgs", lambda t: t.bi_domain_flags_files[Indicator.FAPAR], Indicator.FAPAR),
    ("-processor.vegetation.fcovermonodate", lambda t: t.bi_files[Indicator.FCOVER], Indicator.FCOVER),
    # "domani" is what the product formatter parses
    ("-processor.vegetation.fcoverdomaniflgs", lambda t: t.bi_domain_flags_files[Indicator.FCOVER], Indicator.FCOVER),
]


def product_formatter_tile(tile_id: str) -> str:
    return f"TILE_{tile_id}"


def write_execution_infos(path: str, tiles: Sequence[TileResultFiles]) -> None:
    """Write the ``-gipp`` sidecar listing the input tile metadata files."""
    root = ET.Element("metadata")
    ET.SubElement(root, "General")
    xml_files = ET.SubElement(root, "XML_files")
    for i, tile in enumerate(tiles):
        ET.SubElement(xml_files, f"XML_{i}").text = tile.tile_file

    tree = ET.ElementTree(root)
    ET.indent(tree, space="  ")
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        tree.write(path, encoding="utf-8", xml_declaration=True)
    except OSError as exc:
        raise UnwritableScratch(f"Cannot write {path}: {exc}") from exc
    logger.debug(f"Execution infos for {len(tiles)} tiles written to {path}")


def _tile_section(key: str, tiles: Sequence[TileResultFiles], getter: Callable) -> List[str]:
    args = [key]
    for tile in tiles:
        args += [product_formatter_tile(tile.tile_id), getter(tile)]
    return args


def product_formatter_args(
    *,
    destroot: str,
    site_id: int,
    execution_infos_path: str,
    out_props_path: str,
    tiles: Sequence[TileResultFiles],
    lut_file: str = "",
    cloud_optimized: bool = False,
) -> List[str]:
    args = [
        "ProductFormatter",
        "-destroot", destroot,
        "-fileclass", "OPER",
        "-level", "L3B",
        "-baseline", "01.00",
        "-siteid", str(site_id),
        "-processor", "vegetation",
        "-compress", "1",
        "-gipp", execution_infos_path,
        "-outprops", out_props_path,
    ]
    args.append("-il")
    args.extend(t.tile_file for t in tiles)

    if lut_file:
        args += ["-lut", lut_file]

    # all tiles of a product share the same indicator set
    first = tiles[0]
    for key, getter, indicator in _SECTIONS:
        if indicator is None or first.has(indicator):
            args += _tile_section(key, tiles, getter)

    if cloud_optimized:
        args += ["-cog", "1"]
    return args
