"""Task-graph builder: appends the tasks of one product and wires their parents.

A product is one acquisition date; inside it every tile gets its own
section of tasks (mask flags, optional NDVI, angles, one sub-chain per
biophysical indicator, input domain flags).  The product closes with a
product-formatter task and, when temporary files are removed, a
files-remover task.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from l3b_planner.errors import PlannerInvariantBroken
from l3b_planner.graph import modules as m
from l3b_planner.graph.modules import Indicator
from l3b_planner.graph.tasks import TaskGraph

if TYPE_CHECKING:
    from l3b_planner.params import IndicatorFlags


ANGLES_CHAIN = (m.CREATE_ANGLES, m.GDAL_TRANSLATE, m.GDAL_BUILDVRT, m.GDAL_TRANSLATE)


@dataclass
class BiChain:
    processor: int
    domain_flags: int
    quantify: int


@dataclass
class TileSection:
    """Indices of the tasks built for one tile, in insertion order."""

    mask_flags: int
    ndvi: Optional[int] = None
    angles: List[int] = field(default_factory=list)
    bi: Dict[Indicator, BiChain] = field(default_factory=dict)
    input_domain: int = -1

    @property
    def last(self) -> int:
        return self.input_domain

    @property
    def angles_tail(self) -> int:
        return self.angles[-1]

    def indices(self) -> List[int]:
        out = [self.mask_flags]
        if self.ndvi is not None:
            out.append(self.ndvi)
        out.extend(self.angles)
        for chain in self.bi.values():
            out.extend((chain.processor, chain.domain_flags, chain.quantify))
        out.append(self.input_domain)
        return out

    def formatter_inputs(self) -> List[int]:
        out = [] if self.ndvi is None else [self.ndvi]
        out.extend(chain.quantify for chain in self.bi.values())
        out.append(self.input_domain)
        return out


@dataclass
class ProductTasks:
    """The tasks of one product: per-tile sections, formatter, optional cleanup."""

    start: int
    sections: List[TileSection]
    formatter: int
    cleanup: Optional[int] = None

    @property
    def last_tile_task(self) -> int:
        return self.sections[-1].last

    @property
    def end(self) -> int:
        """One past the last index of this product."""
        return (self.cleanup if self.cleanup is not None else self.formatter) + 1

    def indices(self) -> range:
        return range(self.start, self.end)


def tasks_per_tile(flags: IndicatorFlags) -> int:
    bi = len(flags.bi_indicators)
    return 2 + int(flags.ndvi) + (4 + 3 * bi if bi else 0)


def _append_section(
    graph: TaskGraph, flags: IndicatorFlags, chain_after: Optional[int]
) -> TileSection:
    mask = graph.add(m.MASK_FLAGS, [] if chain_after is None else [chain_after])
    section = TileSection(mask_flags=mask)

    if flags.ndvi:
        section.ndvi = graph.add(m.NDVI_EXTRACTOR, [mask])

    if flags.bi_indicators:
        parent = mask
        for module in ANGLES_CHAIN:
            parent = graph.add(module, [parent])
            section.angles.append(parent)
        for indicator in flags.bi_indicators:
            processor = graph.add(m.bi_processor_module(indicator), [section.angles_tail])
            domain_flags = graph.add(m.GEN_DOMAIN_FLAGS, [processor])
            quantify = graph.add(m.bi_quantify_module(indicator), [domain_flags])
            section.bi[indicator] = BiChain(processor, domain_flags, quantify)

    section.input_domain = graph.add(m.GEN_DOMAIN_FLAGS, [mask])
    return section


def append_product_tasks(
    graph: TaskGraph,
    flags: IndicatorFlags,
    tile_count: int,
    *,
    chain_products: bool = True,
    remove_temp_files: bool = False,
    chain_after: Optional[int] = None,
) -> ProductTasks:
    """Append the tasks for a product of *tile_count* tiles to *graph*.

    With *chain_products*, each tile's mask-flags task waits for the last
    task of the tile before it; the first tile waits for *chain_after*
    (the last tile task of the previous product) when given.  Without it
    no mask-flags task has a parent and tiles run side by side.
    """
    if tile_count <= 0:
        raise PlannerInvariantBroken("A product needs at least one tile")
    if not flags.any():
        raise PlannerInvariantBroken("A product needs at least one indicator")

    start = len(graph)
    previous = chain_after if chain_products else None
    sections: List[TileSection] = []
    for _ in range(tile_count):
        section = _append_section(graph, flags, previous)
        sections.append(section)
        if chain_products:
            previous = section.last

    formatter_parents = [i for s in sections for i in s.formatter_inputs()]
    formatter = graph.add(m.PRODUCT_FORMATTER, formatter_parents)

    product = ProductTasks(start=start, sections=sections, formatter=formatter)
    if remove_temp_files:
        product.cleanup = graph.add(m.FILES_REMOVER, [formatter])
        if graph[product.cleanup].parents != [formatter]:
            raise PlannerInvariantBroken(
                f"Cleanup task #{product.cleanup} must depend on formatter #{formatter}"
            )
    return product


def append_end_of_job(graph: TaskGraph) -> Tuple[int, List[int]]:
    """Append the sentinel that waits for every product formatter of the job."""
    formatters = graph.indices_of(m.PRODUCT_FORMATTER)
    return graph.add(m.END_OF_JOB, formatters), formatters
