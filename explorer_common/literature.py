from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence

from .coerce import coerce_flag, coerce_int, coerce_text, first_present
from .normalize import finish, passthrough, prepare_aliases
from .schema import DEFAULT_ALIASES, LiteratureRecord, RawRow
from .workbook import read_sheet_rows

LITERATURE_SHEET = "Citations"
# Three title rows sit above the citation table header.
LITERATURE_HEADER_ROW = 3

_SSP_FLAGS = ("ssp1", "ssp2", "ssp3", "ssp4", "ssp5")
_NON_TEXT_FIELDS = {"publication_year", "ssps", *_SSP_FLAGS}


def normalize_literature(
    rows: Sequence[RawRow],
    *,
    aliases: Mapping[str, Any] | None = None,
    source: str = "<rows>",
    log: Callable[[str], None] | None = None,
    return_report: bool = False,
):
    """
    Build one ``LiteratureRecord`` per citation row.

    Rows whose publication year is not an integer are title, note or spacer
    rows and are skipped. SSP usage columns are checkbox cells marked "x".
    """

    resolved, consumed, missing = prepare_aliases(rows, DEFAULT_ALIASES["literature"], aliases)
    records: List[LiteratureRecord] = []
    skipped = 0

    for row in rows:
        year = coerce_int(first_present(row, resolved["publication_year"]))
        if year is None:
            skipped += 1
            continue

        values: Dict[str, Any] = {
            name: coerce_text(first_present(row, spellings, ""))
            for name, spellings in resolved.items()
            if name not in _NON_TEXT_FIELDS and name in LiteratureRecord.__dataclass_fields__
        }
        # Flags read the first matching header as-is; blanks must stay False.
        for flag in _SSP_FLAGS:
            spellings = resolved[flag]
            values[flag] = coerce_flag(row.get(spellings[0])) if spellings else False

        records.append(
            LiteratureRecord(
                publication_year=year,
                ssps=coerce_int(first_present(row, resolved["ssps"]), default=0) or 0,
                extra=passthrough(row, consumed),
                **values,
            )
        )

    return finish("literature", source, rows, records, skipped, missing, log=log, return_report=return_report)


def read_literature(
    path: str | Path,
    *,
    sheet_name: str = LITERATURE_SHEET,
    header_row: int = LITERATURE_HEADER_ROW,
    aliases: Mapping[str, Any] | None = None,
    log: Callable[[str], None] | None = None,
    return_report: bool = False,
):
    rows = read_sheet_rows(path, sheet_name, header_row, log=log)
    return normalize_literature(rows, aliases=aliases, source=str(path), log=log, return_report=return_report)
