"""
NRPI and CHI normalizers for the 2023 index workbook.

Both sheets are wide by year (``NRPI_v2023_19``, ``CMR_15``, ...). Scores are
parsed with a ``None`` default: a missing score is absent, not zero, and a
real zero is kept.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, List, Mapping, Sequence

from .coerce import coerce_float, coerce_text, first_present
from .normalize import finish, passthrough, prepare_aliases
from .schema import (
    CHI_METRIC_PREFIXES,
    CHI_YEARS,
    DEFAULT_ALIASES,
    NRPI_YEARS,
    CHIRecord,
    NRPIRecord,
    RawRow,
)
from .workbook import read_sheet_rows

NRPI_SHEET = "NRPI_v2023"
CHI_SHEET = "CHI_v2023"


def normalize_nrpi(
    rows: Sequence[RawRow],
    *,
    aliases: Mapping[str, Any] | None = None,
    source: str = "<rows>",
    log: Callable[[str], None] | None = None,
    return_report: bool = False,
):
    """One ``NRPIRecord`` per country and year (2019-2022) with a parseable score."""

    resolved, consumed, missing = prepare_aliases(rows, DEFAULT_ALIASES["nrpi"], aliases)
    records: List[NRPIRecord] = []
    skipped = 0

    for row in rows:
        country = coerce_text(first_present(row, resolved["country"])).strip()
        if not country:
            skipped += 1
            continue
        extra = passthrough(row, consumed)
        for year in NRPI_YEARS:
            value = coerce_float(first_present(row, resolved[f"nrpi_{year}"]))
            if value is None:
                continue
            records.append(NRPIRecord(country=country, year=year, nrpi=value, extra=dict(extra)))

    return finish("nrpi", source, rows, records, skipped, missing, log=log, return_report=return_report)


def normalize_chi(
    rows: Sequence[RawRow],
    *,
    aliases: Mapping[str, Any] | None = None,
    source: str = "<rows>",
    log: Callable[[str], None] | None = None,
    return_report: bool = False,
):
    """
    One ``CHIRecord`` per country and year (2010-2022).

    A year is emitted only when the mortality rate or the composite index is
    present; the other metrics ride along as ``None`` when blank.
    """

    resolved, consumed, missing = prepare_aliases(rows, DEFAULT_ALIASES["chi"], aliases)
    records: List[CHIRecord] = []
    skipped = 0

    for row in rows:
        country = coerce_text(first_present(row, resolved["country"])).strip()
        if not country:
            skipped += 1
            continue
        iso3 = coerce_text(first_present(row, resolved["iso3"], "")).strip()
        extra = passthrough(row, consumed)
        for year in CHI_YEARS:
            metrics = {
                metric: coerce_float(first_present(row, resolved[f"{metric}_{year}"]))
                for metric in CHI_METRIC_PREFIXES
            }
            if metrics["child_mortality_rate"] is None and metrics["child_health_index"] is None:
                continue
            records.append(CHIRecord(country=country, iso3=iso3, year=year, extra=dict(extra), **metrics))

    return finish("chi", source, rows, records, skipped, missing, log=log, return_report=return_report)


def read_nrpi(
    path: str | Path,
    *,
    sheet_name: str = NRPI_SHEET,
    header_row: int = 0,
    aliases: Mapping[str, Any] | None = None,
    log: Callable[[str], None] | None = None,
    return_report: bool = False,
):
    rows = read_sheet_rows(path, sheet_name, header_row, log=log)
    return normalize_nrpi(rows, aliases=aliases, source=str(path), log=log, return_report=return_report)


def read_chi(
    path: str | Path,
    *,
    sheet_name: str = CHI_SHEET,
    header_row: int = 0,
    aliases: Mapping[str, Any] | None = None,
    log: Callable[[str], None] | None = None,
    return_report: bool = False,
):
    rows = read_sheet_rows(path, sheet_name, header_row, log=log)
    return normalize_chi(rows, aliases=aliases, source=str(path), log=log, return_report=return_report)
