"""
Dataset locations and per-dataset overrides.

Defaults describe the published workbook layout. An optional YAML file can move
the data root, point a dataset at another file or sheet, change the header row,
and add header spellings:

    data_root: ./datasets
    datasets:
      crops:
        source: crops/CropStats_2019.xlsx
        columns:
          production: ["Production (t)"]

The file is located via ``EXPLORER_CONFIG`` (default ``config.yaml``); when it
does not exist the built-in defaults are used.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

CONFIG_ENV_KEY = "EXPLORER_CONFIG"
DEFAULT_CONFIG_PATH = Path("config.yaml")
DEFAULT_DATA_ROOT = Path(".")


class ConfigError(ValueError):
    """Raised when the YAML configuration is invalid."""


@dataclass(frozen=True)
class DatasetSettings:
    """Where one dataset lives and how its sheet is laid out."""

    key: str
    title: str
    source: Path
    sheet: Optional[str]
    header_row: Optional[int]
    columns: Dict[str, List[str]] = field(default_factory=dict)


@dataclass(frozen=True)
class ExplorerConfig:
    path: Optional[Path]
    data_root: Path
    datasets: Dict[str, DatasetSettings]

    def dataset(self, key: str) -> DatasetSettings:
        try:
            return self.datasets[key]
        except KeyError as exc:
            raise ConfigError(f"Unknown dataset '{key}'; available: {', '.join(self.datasets)}") from exc

    def with_data_root(self, data_root: Path | str) -> "ExplorerConfig":
        """Re-anchor default (relative) sources under another data root."""

        root = Path(data_root).expanduser()
        datasets = {}
        for key, settings in self.datasets.items():
            default = DEFAULT_DATASETS.get(key)
            if default is not None and settings.source == self.data_root / default.source:
                settings = replace(settings, source=root / default.source)
            datasets[key] = settings
        return replace(self, data_root=root, datasets=datasets)


_LECZ_DIR = Path("nasa-data-1")
_INDEX_DIR = Path("nrpi-chi-2023-xlsx")
_SSP_DIR = Path("ssp-sub-global-scenarios-xlsx")
_CROP_DIR = Path("food-twentieth-century-crop-statistics-1900-2017-xlsx")

DEFAULT_DATASETS: Dict[str, DatasetSettings] = {
    "population": DatasetSettings(
        key="population",
        title="LECZ Delta Urban-Rural Population and Land Area Estimates",
        source=_LECZ_DIR / "lecz-delta-urban-rural-population-land-area-estimates-v1-data-xlsx.xlsx",
        sheet="data",
        header_row=5,
    ),
    "population_summary": DatasetSettings(
        key="population_summary",
        title="LECZ Summary Tables",
        source=_LECZ_DIR / "lecz-delta-urban-rural-population-land-area-estimates-v1-summary-tables-xlsx.xlsx",
        sheet=None,
        header_row=None,
    ),
    "nrpi": DatasetSettings(
        key="nrpi",
        title="Natural Resource Protection Index (2023)",
        source=_INDEX_DIR / "nrpi-chi-2023-xlsx.xlsx",
        sheet="NRPI_v2023",
        header_row=0,
    ),
    "chi": DatasetSettings(
        key="chi",
        title="Child Health Index (2023)",
        source=_INDEX_DIR / "nrpi-chi-2023-xlsx.xlsx",
        sheet="CHI_v2023",
        header_row=0,
    ),
    "literature": DatasetSettings(
        key="literature",
        title="Sub-global SSP Literature Database",
        source=_SSP_DIR / "ssp-sub-global-scenarios-extend-ssp-narratives-literature-db-v1-xlsx.xlsx",
        sheet="Citations",
        header_row=3,
    ),
    "crops": DatasetSettings(
        key="crops",
        title="Twentieth Century Crop Statistics (1900-2017)",
        source=_CROP_DIR / "food-twentieth-century-crop-statistics-1900-2017-xlsx.xlsx",
        sheet="CropStats",
        header_row=0,
    ),
}


def _resolve_path(base: Path, value: str) -> Path:
    return (base / value).expanduser().resolve()


def _parse_columns(key: str, raw: Any) -> Dict[str, List[str]]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"datasets.{key}.columns must be a mapping of field -> header spellings")
    columns: Dict[str, List[str]] = {}
    for logical, spellings in raw.items():
        if isinstance(spellings, str):
            spellings = [spellings]
        if not isinstance(spellings, list):
            raise ConfigError(f"datasets.{key}.columns.{logical} must be a string or list of strings")
        columns[str(logical)] = [str(s) for s in spellings]
    return columns


def _parse_header_row(key: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        header_row = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"datasets.{key}.header_row must be an integer") from exc
    if header_row < 0:
        raise ConfigError(f"datasets.{key}.header_row must be >= 0")
    return header_row


def default_config(data_root: Path | str = DEFAULT_DATA_ROOT) -> ExplorerConfig:
    root = Path(data_root).expanduser()
    datasets = {key: replace(settings, source=root / settings.source) for key, settings in DEFAULT_DATASETS.items()}
    return ExplorerConfig(path=None, data_root=root, datasets=datasets)


def load_config(path: Path | str | None = None) -> ExplorerConfig:
    """
    Load the explorer configuration.

    ``path`` defaults to ``$EXPLORER_CONFIG`` or ``config.yaml``. A missing file
    yields the defaults; a malformed one raises ``ConfigError``.
    """

    if path is None:
        path = Path(os.environ.get(CONFIG_ENV_KEY, DEFAULT_CONFIG_PATH))
    path = Path(path)
    if not path.exists():
        return default_config()

    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a YAML mapping")

    data_root = _resolve_path(path.parent, str(raw.get("data_root", ".")))
    config = default_config(data_root)

    datasets_cfg = raw.get("datasets") or {}
    if not isinstance(datasets_cfg, dict):
        raise ConfigError("`datasets` must be a mapping keyed by dataset name")

    datasets = dict(config.datasets)
    for key, section in datasets_cfg.items():
        if key not in datasets:
            raise ConfigError(f"Unknown dataset '{key}'; available: {', '.join(DEFAULT_DATASETS)}")
        section = section or {}
        if not isinstance(section, dict):
            raise ConfigError(f"datasets.{key} must be a mapping")
        current = datasets[key]
        source = current.source
        if "source" in section:
            source = _resolve_path(data_root, str(section["source"]))
        datasets[key] = replace(
            current,
            title=str(section.get("title", current.title)),
            source=source,
            sheet=section.get("sheet", current.sheet),
            header_row=_parse_header_row(key, section["header_row"]) if "header_row" in section else current.header_row,
            columns=_parse_columns(key, section.get("columns")),
        )

    return ExplorerConfig(path=path, data_root=data_root, datasets=datasets)
