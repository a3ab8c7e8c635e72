"""Step binder: turns registered tasks into concrete tool invocations.

Runs after the product's tasks are registered with the executor, because
every output path lives in a working directory named after the task id.
Binding the same product twice yields identical steps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from loguru import logger

from l3b_planner.errors import PlannerInvariantBroken
from l3b_planner.graph.builder import BiChain, ProductTasks, TileSection
from l3b_planner.graph.modules import Indicator
from l3b_planner.graph.tasks import Step, Task, TaskGraph
from l3b_planner.params import JobSettings
from l3b_planner.steps import arguments as a
from l3b_planner.steps.product_formatter import (
    EXECUTION_INFOS_FILE,
    PRODUCT_FORMATTER_OUT_PROPS_FILE,
    product_formatter_args,
    write_execution_infos,
)
from l3b_planner.steps.result_files import TileResultFiles
from l3b_planner.storage.task_paths import task_working_dir
from l3b_planner.tiles.tile_info import TileInfo


CLEANUP_STEP = "CleanupTemporaryFiles"


@dataclass(frozen=True)
class JobLayout:
    job_id: int
    site_id: int
    scratch_root: str
    destroot: str


@dataclass
class BoundProduct:
    steps: List[Step] = field(default_factory=list)
    tile_results: List[TileResultFiles] = field(default_factory=list)
    cleanup_files: List[str] = field(default_factory=list)


def _prepare(task: Task, layout: JobLayout) -> Task:
    if task.task_id is None:
        raise PlannerInvariantBroken(
            f"Task #{task.index} ({task.module}) is bound before being registered"
        )
    task.working_dir = task_working_dir(layout.scratch_root, layout.job_id, task.task_id, task.module)
    task.outputs = []
    return task


def _output(task: Task, name: str) -> str:
    path = task.path_for(name)
    task.outputs.append(path)
    return path


def _step(task: Task, name: str, args: List[str]) -> Step:
    return Step(task_index=task.index, task_id=task.task_id, name=name, args=args)


class _ProductBinder:
    def __init__(self, graph: TaskGraph, settings: JobSettings, layout: JobLayout):
        self.graph = graph
        self.settings = settings
        self.layout = layout
        self.bound = BoundProduct()

    def task(self, index: int) -> Task:
        return _prepare(self.graph[index], self.layout)

    def emit(self, task: Task, name: str, args: List[str]) -> None:
        self.bound.steps.append(_step(task, name, args))
        self.bound.cleanup_files.extend(task.outputs)

    # -- per tile ------------------------------------------------------

    def status_flags(self, index: int, files: TileResultFiles) -> None:
        task = self.task(index)
        files.status_flags_file = _output(task, "LAI_mono_date_msk_flgs_img.tif")
        files.status_flags_file_resampled = _output(task, "LAI_mono_date_msk_flgs_img_resampled.tif")
        self.emit(task, "GenerateLaiMonoDateMaskFlags", a.mask_flags_args(
            files.tile_file, files.status_flags_file, files.status_flags_file_resampled,
            files.resolution_str,
        ))

    def ndvi(self, index: int, files: TileResultFiles) -> None:
        task = self.task(index)
        files.ndvi_file = _output(task, "single_ndvi.tif")
        self.emit(task, "NdviRviExtractionNew", a.ndvi_extraction_args(
            files.tile_file, files.status_flags_file, files.ndvi_file,
            files.resolution_str, self.settings.lai_cfg_file,
        ))

    def angles(self, indices: Sequence[int], files: TileResultFiles) -> None:
        create, no_data, vrt, resample = (self.task(i) for i in indices)
        small = _output(create, "angles_small_res.tif")
        small_no_data = _output(no_data, "angles_small_res_no_data.tif")
        vrt_file = _output(vrt, "angles.vrt")
        files.angles_file = _output(resample, "angles_resampled.tif")

        self.emit(create, "CreateAnglesRaster", a.create_angles_args(files.tile_file, small))
        self.emit(no_data, "gdal_translate", a.angles_no_data_args(small, small_no_data))
        self.emit(vrt, "gdalbuildvrt", a.angles_vrt_args(small_no_data, vrt_file))
        self.emit(resample, "gdal_translate", a.angles_resample_args(vrt_file, files.angles_file))

    def mono_date_bi(self, indicator: Indicator, chain: BiChain, files: TileResultFiles) -> None:
        caps, name = indicator.caps, indicator.value
        cfg = self.settings.lai_cfg_file

        processor = self.task(chain.processor)
        bi_file = _output(processor, f"{caps}_mono_date_img.tif")
        self.emit(processor, f"BVLaiNewProcessor{caps}", a.bi_processor_args(
            files.tile_file, files.angles_file, files.resolution_str, cfg, bi_file, name,
        ))

        domain = self.task(chain.domain_flags)
        flags_file = _output(domain, f"{caps}_out_domain_flags.tif")
        corrected = _output(domain, f"{caps}_corrected_mono_date.tif")
        self.emit(domain, f"Generate{caps}InDomainQualityFlags", a.output_domain_flags_args(
            files.tile_file, bi_file, cfg, name, flags_file, corrected, files.resolution_str,
        ))

        quantify = self.task(chain.quantify)
        quantified = _output(quantify, f"{caps}_mono_date_img_16.tif")
        self.emit(quantify, f"Quantify{caps}Image", a.quantify_image_args(corrected, quantified))

        files.bi_files[indicator] = quantified
        files.bi_domain_flags_files[indicator] = flags_file

    def input_domain(self, index: int, files: TileResultFiles) -> None:
        task = self.task(index)
        files.in_domain_flags_file = _output(task, "Input_domain_flags.tif")
        self.emit(task, "GenerateInDomainQualityFlags", a.input_domain_flags_args(
            files.tile_file, self.settings.lai_cfg_file, files.in_domain_flags_file,
            files.resolution_str,
        ))

    def tile(self, section: TileSection, tile: TileInfo) -> TileResultFiles:
        files = TileResultFiles.for_tile(tile, self.settings.flags, self.settings.resolution_str)
        self.status_flags(section.mask_flags, files)
        if section.ndvi is not None:
            self.ndvi(section.ndvi, files)
        if section.angles:
            self.angles(section.angles, files)
            for indicator, chain in section.bi.items():
                self.mono_date_bi(indicator, chain, files)
        self.input_domain(section.input_domain, files)
        return files

    # -- per product ---------------------------------------------------

    def formatter(self, index: int) -> None:
        task = self.task(index)
        out_props = _output(task, PRODUCT_FORMATTER_OUT_PROPS_FILE)
        execution_infos = _output(task, EXECUTION_INFOS_FILE)
        write_execution_infos(execution_infos, self.bound.tile_results)
        args = product_formatter_args(
            destroot=self.layout.destroot,
            site_id=self.layout.site_id,
            execution_infos_path=execution_infos,
            out_props_path=out_props,
            tiles=self.bound.tile_results,
            lut_file=self.settings.lut_file,
            cloud_optimized=self.settings.cloud_optimized,
        )
        self.bound.steps.append(_step(task, "ProductFormatter", args))

    def cleanup(self, index: int) -> None:
        task = self.task(index)
        self.bound.steps.append(_step(task, CLEANUP_STEP, list(self.bound.cleanup_files)))


def bind_product_steps(
    graph: TaskGraph,
    product: ProductTasks,
    tiles: Sequence[TileInfo],
    settings: JobSettings,
    layout: JobLayout,
) -> BoundProduct:
    """Compute output paths and steps for every task of *product*.

    *tiles* must be in the order the product's tile sections were built.
    """
    if len(tiles) != len(product.sections):
        raise PlannerInvariantBroken(
            f"{len(tiles)} tiles for a product built with {len(product.sections)} sections"
        )

    binder = _ProductBinder(graph, settings, layout)
    for section, tile in zip(product.sections, tiles):
        binder.bound.tile_results.append(binder.tile(section, tile))
    binder.formatter(product.formatter)
    if product.cleanup is not None:
        binder.cleanup(product.cleanup)
    else:
        binder.bound.cleanup_files = []

    bound_indices = [s.task_index for s in binder.bound.steps]
    if sorted(bound_indices) != list(product.indices()) or len(set(bound_indices)) != len(bound_indices):
        raise PlannerInvariantBroken(
            f"Steps {bound_indices} do not cover tasks {list(product.indices())} exactly once\n"
            f"{graph.dump()}"
        )

    logger.debug(
        f"Bound {len(binder.bound.steps)} steps for tasks #{product.start}..#{product.end - 1}"
    )
    return binder.bound
