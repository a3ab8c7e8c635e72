"""Argument vectors of the external tools.

OTB applications get the application name as their first argument (the
executor prefixes the launcher); gdal tools are launched directly.
"""

from __future__ import annotations

from typing import List


ANGLES_NO_DATA = "-10000"


def mask_flags_args(tile_file: str, flags_file: str, flags_resampled_file: str, resolution: str) -> List[str]:
    return [
        "GenerateLaiMonoDateMaskFlags",
        "-inxml", tile_file,
        "-out", flags_file,
        "-outres", resolution,
        "-outresampled", flags_resampled_file,
    ]


def ndvi_extraction_args(
    tile_file: str, flags_file: str, ndvi_file: str, resolution: str, lai_cfg_file: str
) -> List[str]:
    return [
        "NdviRviExtractionNew",
        "-xml", tile_file,
        "-msks", flags_file,
        "-ndvi", ndvi_file,
        "-outres", resolution,
        "-laicfgs", lai_cfg_file,
    ]


def create_angles_args(tile_file: str, angles_file: str) -> List[str]:
    return ["CreateAnglesRaster", "-xml", tile_file, "-out", angles_file]


def angles_no_data_args(angles_file: str, out_file: str) -> List[str]:
    return ["-of", "GTiff", "-a_nodata", ANGLES_NO_DATA, angles_file, out_file]


def angles_vrt_args(angles_file: str, vrt_file: str) -> List[str]:
    return [
        "-tr", "10", "10", "-r", "bilinear",
        "-srcnodata", ANGLES_NO_DATA, "-vrtnodata", ANGLES_NO_DATA,
        vrt_file, angles_file,
    ]


def angles_resample_args(vrt_file: str, out_file: str) -> List[str]:
    return [vrt_file, out_file]


def bi_processor_args(
    tile_file: str, angles_file: str, resolution: str, lai_cfg_file: str, out_file: str, index_name: str
) -> List[str]:
    return [
        "BVLaiNewProcessor",
        "-xml", tile_file,
        "-angles", angles_file,
        f"-out{index_name}", out_file,
        "-outres", resolution,
        "-laicfgs", lai_cfg_file,
    ]


def output_domain_flags_args(
    tile_file: str,
    bi_file: str,
    lai_cfg_file: str,
    index_name: str,
    flags_file: str,
    corrected_file: str,
    resolution: str,
) -> List[str]:
    return [
        "GenerateDomainQualityFlags",
        "-xml", tile_file,
        "-in", bi_file,
        "-laicfgs", lai_cfg_file,
        "-indextype", index_name,
        "-outf", flags_file,
        "-out", corrected_file,
        "-outres", resolution,
    ]


def quantify_image_args(in_file: str, out_file: str) -> List[str]:
    return ["QuantifyImage", "-in", in_file, "-out", out_file]


def input_domain_flags_args(tile_file: str, lai_cfg_file: str, flags_file: str, resolution: str) -> List[str]:
    return [
        "GenerateDomainQualityFlags",
        "-xml", tile_file,
        "-laicfgs", lai_cfg_file,
        "-outf", flags_file,
        "-outres", resolution,
    ]
