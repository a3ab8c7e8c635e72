"""Inspect what the product formatter left behind."""

from __future__ import annotations

import glob
import os
import re
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Tuple

from loguru import logger

from l3b_planner.steps.product_formatter import PRODUCT_FORMATTER_OUT_PROPS_FILE
from l3b_planner.tiles.tile_info import Satellite


TILES_DIR = "TILES"
TILE_DIR_RE = re.compile(r"_T(?P<tile>[0-9A-Z]+)$")
VALIDITY_RE = re.compile(r"_V(?P<start>\d{8}(?:T\d{6})?)_(?P<end>\d{8}(?:T\d{6})?)")
ACQUISITION_RE = re.compile(r"_A(?P<date>\d{8}(?:T\d{6})?)")


def read_product_path(task_output_dir: str) -> str:
    """First line of the formatter's properties file, or ``""`` when unavailable."""
    props = os.path.join(task_output_dir, PRODUCT_FORMATTER_OUT_PROPS_FILE)
    try:
        with open(props) as f:
            return f.readline().strip()
    except OSError as exc:
        logger.error(f"Cannot read product formatter properties {props}: {exc}")
        return ""


def product_name(product_path: str) -> str:
    return os.path.basename(os.path.normpath(product_path)) if product_path else ""


def is_valid_product(product_path: str) -> bool:
    """A high-level product is a folder with a ``TILES`` sub-folder."""
    return bool(product_path) and os.path.isdir(os.path.join(product_path, TILES_DIR))


def product_tile_ids(product_path: str) -> List[str]:
    tiles_dir = os.path.join(product_path, TILES_DIR)
    ids = []
    for entry in sorted(os.listdir(tiles_dir)):
        m = TILE_DIR_RE.search(entry)
        if m and os.path.isdir(os.path.join(tiles_dir, entry)):
            ids.append(m.group("tile"))
    return ids


def product_quicklook(product_path: str) -> str:
    matches = sorted(glob.glob(os.path.join(product_path, "**", "*_PVI_*"), recursive=True))
    return matches[0] if matches else ""


def product_footprint(product_path: str) -> str:
    """Text of the first ``EXT_POS_LIST`` in a root-level ``*MTD*.xml``."""
    for path in sorted(glob.glob(os.path.join(product_path, "*MTD*.xml"))):
        try:
            root = ET.parse(path).getroot()
        except (ET.ParseError, OSError) as exc:
            logger.warning(f"Cannot parse product metadata {path}: {exc}")
            continue
        for elem in root.iter("EXT_POS_LIST"):
            if elem.text and elem.text.strip():
                return elem.text.strip()
    return ""


def _parse_stamp(raw: str) -> datetime:
    fmt = "%Y%m%dT%H%M%S" if "T" in raw else "%Y%m%d"
    return datetime.strptime(raw, fmt)


def acquisition_range(name: str) -> Tuple[Optional[datetime], Optional[datetime]]:
    """``(min, max)`` acquisition dates encoded in a product name."""
    m = VALIDITY_RE.search(name)
    if m:
        return _parse_stamp(m.group("start")), _parse_stamp(m.group("end"))
    m = ACQUISITION_RE.search(name)
    if m:
        stamp = _parse_stamp(m.group("date"))
        return stamp, stamp
    return None, None


def satellite_for_tile(site_tiles: Mapping[Satellite, Iterable[str]], tile_id: str) -> Satellite:
    for satellite, tiles in site_tiles.items():
        if tile_id in tiles:
            return Satellite(satellite)
    return Satellite.UNKNOWN


def satellite_for_tiles(
    tile_ids: Iterable[str], site_tiles: Mapping[Satellite, Iterable[str]]
) -> Satellite:
    """Satellite of the first tile the site knows; all tiles of a product share it."""
    for tile_id in tile_ids:
        satellite = satellite_for_tile(site_tiles, tile_id)
        if satellite != Satellite.UNKNOWN:
            return satellite
    return Satellite.UNKNOWN
