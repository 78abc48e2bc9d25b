"""
Cached dataset loading for the explorer Streamlit app.

Each dataset page asks for a Polars frame built from one configured workbook.
Loads are cached by (source path, modification time, sheet, header row, column
overrides), so editing a workbook on disk invalidates its entry.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import polars as pl
import streamlit as st

from explorer_common.config import ConfigError, DatasetSettings, ExplorerConfig
from explorer_common.datasets import READERS, read_dataset
from explorer_common.normalize import NormalizationReport
from explorer_common.population import population_summary_rows
from explorer_common.schema import records_to_frame

LOGGER = logging.getLogger(__name__)

ColumnOverrides = Tuple[Tuple[str, Tuple[str, ...]], ...]


def _cache_data(func):
    """Wrap a loader in st.cache_data; arguments are plain hashable values."""

    return st.cache_data(show_spinner=False)(func)


def source_token(path: Path | str) -> Tuple[str, Optional[float]]:
    """Cache key part for a workbook: resolved path plus mtime (None when missing)."""

    path = Path(path)
    try:
        return str(path), path.stat().st_mtime
    except OSError:
        return str(path), None


def _column_overrides(settings: DatasetSettings) -> ColumnOverrides:
    return tuple((logical, tuple(spellings)) for logical, spellings in sorted(settings.columns.items()))


@_cache_data
def _load_frame(
    kind: str,
    source: str,
    mtime: Optional[float],
    sheet: Optional[str],
    header_row: Optional[int],
    columns: ColumnOverrides,
    include_extra: bool,
) -> Tuple[pl.DataFrame, NormalizationReport]:
    settings = DatasetSettings(
        key=kind,
        title=kind,
        source=Path(source),
        sheet=sheet,
        header_row=header_row,
        columns={logical: list(spellings) for logical, spellings in columns},
    )
    records, report = read_dataset(settings)
    LOGGER.debug("Loaded %s (mtime=%s) for %s", source, mtime, kind)
    return records_to_frame(records, kind, include_extra=include_extra), report


def load_dataset(
    settings: DatasetSettings,
    *,
    include_extra: bool = False,
) -> Tuple[pl.DataFrame, NormalizationReport]:
    """
    Normalize one configured dataset into its fixed-schema frame (plus the run report).

    Raises ``ConfigError`` for datasets without a record normalizer.
    """

    if settings.key not in READERS:
        raise ConfigError(f"Dataset '{settings.key}' has no record normalizer; available: {', '.join(READERS)}")
    source, mtime = source_token(settings.source)
    return _load_frame(
        settings.key,
        source,
        mtime,
        settings.sheet,
        settings.header_row,
        _column_overrides(settings),
        include_extra,
    )


@_cache_data
def _load_summary(source: str, mtime: Optional[float], sheet: Optional[str], header_row: Optional[int]) -> pd.DataFrame:
    rows = population_summary_rows(source, sheet_name=sheet, header_row=header_row)
    # Rows carry different keys and mixed cell types; pandas tolerates both.
    return pd.DataFrame.from_records(rows) if rows else pd.DataFrame()


def load_summary_table(settings: DatasetSettings) -> pd.DataFrame:
    source, mtime = source_token(settings.source)
    return _load_summary(source, mtime, settings.sheet, settings.header_row)


def dataset_status(config: ExplorerConfig) -> List[Dict[str, Any]]:
    """One row per configured dataset: key, title, source and whether the file exists."""

    return [
        {
            "dataset": key,
            "title": settings.title,
            "source": str(settings.source),
            "exists": Path(settings.source).exists(),
        }
        for key, settings in config.datasets.items()
    ]


__all__ = [
    "READERS",
    "dataset_status",
    "load_dataset",
    "load_summary_table",
    "source_token",
]
