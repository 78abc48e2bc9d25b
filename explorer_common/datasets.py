from __future__ import annotations

from typing import Any, Callable, Dict

from .config import ConfigError, DatasetSettings
from .crops import read_crops
from .indices import read_chi, read_nrpi
from .literature import read_literature
from .population import read_population

# Datasets that normalize into records; ``population_summary`` is display-only.
READERS: Dict[str, Callable[..., Any]] = {
    "population": read_population,
    "nrpi": read_nrpi,
    "chi": read_chi,
    "literature": read_literature,
    "crops": read_crops,
}


def read_dataset(settings: DatasetSettings, *, log: Callable[[str], None] | None = None):
    """Normalize one configured dataset; returns (records, NormalizationReport)."""

    reader = READERS.get(settings.key)
    if reader is None:
        raise ConfigError(f"Dataset '{settings.key}' has no record normalizer; available: {', '.join(READERS)}")
    kwargs: Dict[str, Any] = {"aliases": settings.columns or None, "log": log, "return_report": True}
    if settings.sheet is not None:
        kwargs["sheet_name"] = settings.sheet
    if settings.header_row is not None:
        kwargs["header_row"] = settings.header_row
    return reader(settings.source, **kwargs)
