"""Executor module names and the indicator variant."""

from __future__ import annotations

from enum import Enum


class Indicator(str, Enum):
    NDVI = "ndvi"
    LAI = "lai"
    FAPAR = "fapar"
    FCOVER = "fcover"

    @property
    def caps(self) -> str:
        return self.value.upper()


BI_INDICATORS = (Indicator.LAI, Indicator.FAPAR, Indicator.FCOVER)

MASK_FLAGS = "lai-processor-mask-flags"
NDVI_EXTRACTOR = "lai-processor-ndvi-extractor"
CREATE_ANGLES = "lai-create-angles"
GDAL_TRANSLATE = "gdal_translate"
GDAL_BUILDVRT = "gdalbuildvrt"
GEN_DOMAIN_FLAGS = "gen-domain-flags"
PRODUCT_FORMATTER = "lai-processor-product-formatter"
FILES_REMOVER = "files-remover"
END_OF_JOB = "lai-processor-end-of-job"

GDAL_MODULES = frozenset({GDAL_TRANSLATE, GDAL_BUILDVRT})


def bi_processor_module(indicator: Indicator) -> str:
    return f"{indicator.value}-processor"


def bi_quantify_module(indicator: Indicator) -> str:
    return f"{indicator.value}-quantify-image"
