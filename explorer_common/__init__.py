"""
Shared workbook loading, record normalization and aggregation helpers used by
the dataset explorer.
"""

from .schema import (  # noqa: F401
    CHI_YEARS,
    DEFAULT_ALIASES,
    FRAME_SCHEMAS,
    GRANULARITY_AGGREGATE,
    GRANULARITY_ZONE,
    NRPI_YEARS,
    POPULATION_YEARS,
    CHIRecord,
    CropRecord,
    LiteratureRecord,
    NRPIRecord,
    PopulationRecord,
    merge_alias_maps,
    records_to_frame,
    resolve_aliases,
)

from .workbook import list_sheet_names, read_sheet_rows  # noqa: F401
from .normalize import NormalizationReport  # noqa: F401
from .population import normalize_population, population_summary_rows, read_population  # noqa: F401
from .indices import normalize_chi, normalize_nrpi, read_chi, read_nrpi  # noqa: F401
from .literature import normalize_literature, read_literature  # noqa: F401
from .crops import normalize_crops, read_crops  # noqa: F401
from .config import ConfigError, DatasetSettings, ExplorerConfig, load_config  # noqa: F401
from .datasets import READERS, read_dataset  # noqa: F401

__all__ = [
    "CHI_YEARS",
    "DEFAULT_ALIASES",
    "FRAME_SCHEMAS",
    "GRANULARITY_AGGREGATE",
    "GRANULARITY_ZONE",
    "NRPI_YEARS",
    "POPULATION_YEARS",
    "CHIRecord",
    "CropRecord",
    "LiteratureRecord",
    "NRPIRecord",
    "PopulationRecord",
    "merge_alias_maps",
    "records_to_frame",
    "resolve_aliases",
    "list_sheet_names",
    "read_sheet_rows",
    "NormalizationReport",
    "normalize_population",
    "population_summary_rows",
    "read_population",
    "normalize_chi",
    "normalize_nrpi",
    "read_chi",
    "read_nrpi",
    "normalize_literature",
    "read_literature",
    "normalize_crops",
    "read_crops",
    "ConfigError",
    "DatasetSettings",
    "ExplorerConfig",
    "load_config",
    "READERS",
    "read_dataset",
]
