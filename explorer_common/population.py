"""
LECZ / delta population normalizer.

The LECZ data sheet is wide: one row per country, and one column per
(elevation threshold, settlement type, delta zone, year) combination, e.g.
``10_R_O_GP_00`` = 10 m LECZ, rural, outside delta, 2000. Each positive cell
becomes its own long-format record. The country total for a year lives in
`` gpw_unpop{year} `` and is emitted as a separate ``aggregate`` record.

Both granularities end up in the same list; the ``granularity`` field tells
them apart so sums never mix a national total with its own zone breakdown.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, List, Mapping, Sequence

from .coerce import coerce_float, coerce_text, first_present
from .normalize import finish, passthrough, prepare_aliases
from .schema import (
    DEFAULT_ALIASES,
    DELTA_ZONES,
    GRANULARITY_AGGREGATE,
    GRANULARITY_ZONE,
    LECZ_THRESHOLDS,
    POPULATION_TYPES,
    POPULATION_YEARS,
    PopulationRecord,
    RawRow,
    zone_column,
)
from .workbook import read_sheet_rows

POPULATION_SHEET = "data"
POPULATION_HEADER_ROW = 5
# A repeated header row inside the data block reads as a country called "CountryName".
_PLACEHOLDER_COUNTRIES = {"CountryName"}


def _positive(value: Any) -> float:
    return coerce_float(value, default=0.0) or 0.0


def normalize_population(
    rows: Sequence[RawRow],
    *,
    aliases: Mapping[str, Any] | None = None,
    source: str = "<rows>",
    log: Callable[[str], None] | None = None,
    return_report: bool = False,
):
    """
    Reshape wide LECZ rows into ``PopulationRecord`` entries.

    Per country and year: one aggregate record when the country total is
    positive, then one zone record per positive LECZ/type/zone cell. Zero and
    missing cells never produce records.
    """

    resolved, consumed, missing = prepare_aliases(rows, DEFAULT_ALIASES["population"], aliases)
    records: List[PopulationRecord] = []
    skipped = 0

    for row in rows:
        country = coerce_text(first_present(row, resolved["country"])).strip()
        if not country or country in _PLACEHOLDER_COUNTRIES:
            skipped += 1
            continue
        extra = passthrough(row, consumed)

        for year, suffix in POPULATION_YEARS.items():
            total = _positive(first_present(row, resolved[f"total_population_{year}"]))
            if total > 0:
                records.append(
                    PopulationRecord(
                        country=country,
                        year=year,
                        granularity=GRANULARITY_AGGREGATE,
                        total_population=total,
                        total_land_area=coerce_float(first_present(row, resolved[f"total_land_area_{year}"])),
                        built_up_area=coerce_float(first_present(row, resolved[f"built_up_area_{year}"])),
                        extra=dict(extra),
                    )
                )

            for lecz in LECZ_THRESHOLDS:
                for pop_type, type_field in POPULATION_TYPES.items():
                    for zone in DELTA_ZONES:
                        col = zone_column(lecz, pop_type, zone, suffix)
                        value = _positive(first_present(row, resolved[col]))
                        if value <= 0:
                            continue
                        records.append(
                            PopulationRecord(
                                country=country,
                                year=year,
                                granularity=GRANULARITY_ZONE,
                                total_population=value,
                                lecz05=lecz == "5",
                                lecz10=lecz == "10",
                                delta=zone == "I",
                                extra=dict(extra),
                                **{type_field: value},
                            )
                        )

    return finish("population", source, rows, records, skipped, missing, log=log, return_report=return_report)


def read_population(
    path: str | Path,
    *,
    sheet_name: str = POPULATION_SHEET,
    header_row: int = POPULATION_HEADER_ROW,
    aliases: Mapping[str, Any] | None = None,
    log: Callable[[str], None] | None = None,
    return_report: bool = False,
):
    rows = read_sheet_rows(path, sheet_name, header_row, log=log)
    return normalize_population(rows, aliases=aliases, source=str(path), log=log, return_report=return_report)


def population_summary_rows(
    path: str | Path,
    *,
    sheet_name: str | None = None,
    header_row: int | None = None,
    log: Callable[[str], None] | None = None,
) -> List[RawRow]:
    """
    Rows of the companion summary-tables workbook, for display only.

    The sheet follows the loader's fallback order and blank cells are dropped
    from each row, so rows can have different keys.
    """

    rows = read_sheet_rows(path, sheet_name, header_row, log=log)
    return [{k: v for k, v in row.items() if v is not None} for row in rows]
