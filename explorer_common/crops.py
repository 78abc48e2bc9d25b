from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, List, Mapping, Sequence

from .coerce import coerce_float, coerce_int, coerce_text, first_present
from .normalize import finish, passthrough, prepare_aliases
from .schema import DEFAULT_ALIASES, CropRecord, RawRow
from .workbook import read_sheet_rows

CROP_SHEET = "CropStats"


def _first_positive_year(row: RawRow, headers: Sequence[str]) -> int | None:
    """First alias giving a positive year; a zero or unparseable ``year`` falls through to ``Harvest_year``."""

    for header in headers:
        year = coerce_int(row.get(header))
        if year is not None and year > 0:
            return year
    return None


def normalize_crops(
    rows: Sequence[RawRow],
    *,
    aliases: Mapping[str, Any] | None = None,
    source: str = "<rows>",
    log: Callable[[str], None] | None = None,
    return_report: bool = False,
):
    """
    Build ``CropRecord`` entries from the CropStats sheet.

    Header spellings differ between workbook releases ("production (tonnes)"
    vs "production"); the alias table covers both. Rows without a positive
    year, a country or a crop are dropped whole.
    """

    resolved, consumed, missing = prepare_aliases(rows, DEFAULT_ALIASES["crops"], aliases)
    records: List[CropRecord] = []
    skipped = 0

    for row in rows:
        year = _first_positive_year(row, resolved["year"])
        country = coerce_text(first_present(row, resolved["country"], "")).strip()
        crop = coerce_text(first_present(row, resolved["crop"], "")).strip()
        if year is None or not country or not crop:
            skipped += 1
            continue

        records.append(
            CropRecord(
                harvest_year=coerce_int(first_present(row, resolved["harvest_year"]), default=year) or year,
                year=year,
                country=country,
                crop=crop,
                admin1=coerce_text(first_present(row, resolved["admin1"], "")),
                admin2=coerce_text(first_present(row, resolved["admin2"], "")),
                hectares=coerce_float(first_present(row, resolved["hectares"]), default=0.0),
                production=coerce_float(first_present(row, resolved["production"]), default=0.0),
                yield_=coerce_float(first_present(row, resolved["yield"]), default=0.0),
                notes=coerce_text(first_present(row, resolved["notes"], "")),
                extra=passthrough(row, consumed),
            )
        )

    return finish("crops", source, rows, records, skipped, missing, log=log, return_report=return_report)


def read_crops(
    path: str | Path,
    *,
    sheet_name: str = CROP_SHEET,
    header_row: int = 0,
    aliases: Mapping[str, Any] | None = None,
    log: Callable[[str], None] | None = None,
    return_report: bool = False,
):
    rows = read_sheet_rows(path, sheet_name, header_row, log=log)
    return normalize_crops(rows, aliases=aliases, source=str(path), log=log, return_report=return_report)
