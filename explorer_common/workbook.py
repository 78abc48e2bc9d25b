"""
Workbook loading for the dataset normalizers.

Reads a single worksheet into header-keyed row dicts. The header row is an
absolute 0-based sheet row (blank rows count), which is what the published
workbooks need: several carry title blocks above the real header.

Every failure mode returns an empty list and is logged; callers treat a
missing or broken workbook as "no data" rather than an error.
"""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from openpyxl import load_workbook

from .schema import RawRow

LOGGER = logging.getLogger(__name__)

DEFAULT_SHEET = "data"
# The LECZ "data" sheet carries five title rows above its header.
DEFAULT_SHEET_HEADER_ROW = 5


def _emit(log: Callable[[str], None] | None, message: str) -> None:
    if log:
        log(message)


def header_label(value: Any) -> str:
    """Render a header cell as text; integral numbers lose their ``.0``."""

    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dt.datetime, dt.date)):
        return value.isoformat()
    return str(value)


def build_headers(cells: Sequence[Any]) -> List[str]:
    """
    Turn a header row into unique column keys.

    Blank headers become ``__EMPTY``, ``__EMPTY_1``...; repeated headers get
    ``_1``, ``_2``... suffixes so no column is silently dropped. Whitespace is
    preserved: some source headers (`` gpw_unpop1990 ``) depend on it.
    """

    headers: List[str] = []
    seen: Dict[str, int] = {}
    for cell in cells:
        label = header_label(cell)
        base = label if label.strip() else "__EMPTY"
        if base in seen:
            seen[base] += 1
            label = f"{base}_{seen[base]}"
            while label in seen:
                seen[base] += 1
                label = f"{base}_{seen[base]}"
        else:
            label = base
        seen.setdefault(label, 0)
        headers.append(label)
    return headers


def rows_from_values(values: Iterable[Sequence[Any]], header_row: int = 0) -> List[RawRow]:
    """
    Convert a grid of cell values into header-keyed rows.

    Rows above ``header_row`` are skipped, fully blank data rows are dropped,
    and blank cells are kept as ``None``.
    """

    rows: List[RawRow] = []
    headers: List[str] | None = None
    for index, cells in enumerate(values):
        if index < header_row:
            continue
        if headers is None:
            headers = build_headers(cells)
            continue
        if all(c is None or (isinstance(c, str) and not c.strip()) for c in cells):
            continue
        row: RawRow = {}
        for pos, header in enumerate(headers):
            row[header] = cells[pos] if pos < len(cells) else None
        rows.append(row)
    return rows


def list_sheet_names(path: str | Path) -> List[str]:
    """Sheet names in workbook order, or ``[]`` if the workbook cannot be opened."""

    path = Path(path)
    if not path.exists():
        return []
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except Exception as exc:
        LOGGER.error("Could not open workbook %s: %s", path, exc)
        return []
    try:
        return list(workbook.sheetnames)
    finally:
        workbook.close()


def resolve_sheet_name(available: Sequence[str], requested: str | None) -> str | None:
    """Requested sheet, else ``data``, else the first sheet."""

    if requested:
        return requested
    if DEFAULT_SHEET in available:
        return DEFAULT_SHEET
    return available[0] if available else None


def read_sheet_rows(
    path: str | Path,
    sheet_name: str | None = None,
    header_row: Optional[int] = None,
    *,
    log: Callable[[str], None] | None = None,
) -> List[RawRow]:
    """
    Load one worksheet as a list of header-keyed rows.

    - ``sheet_name`` falls back to ``data`` and then to the first sheet.
    - ``header_row`` defaults to 5 for the ``data`` sheet and 0 otherwise.
    - Missing file, missing sheet or an unreadable workbook yield ``[]``.
    - Nothing is cached; every call re-reads the file.
    """

    path = Path(path)
    if not path.exists():
        message = f"File not found: {path}"
        LOGGER.warning(message)
        _emit(log, message)
        return []

    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except Exception as exc:
        message = f"Error reading workbook {path}: {exc}"
        LOGGER.error(message)
        _emit(log, message)
        return []

    try:
        available = list(workbook.sheetnames)
        target = resolve_sheet_name(available, sheet_name)
        if target is None or target not in available:
            message = f'Sheet "{target}" not found in {path}. Available sheets: {", ".join(available)}'
            LOGGER.warning(message)
            _emit(log, message)
            return []

        if header_row is None:
            header_row = DEFAULT_SHEET_HEADER_ROW if target == DEFAULT_SHEET else 0

        worksheet = workbook[target]
        # Read-only sheets trust the stored <dimension> tag, which some writers leave stale.
        worksheet.reset_dimensions()
        rows = rows_from_values(worksheet.iter_rows(values_only=True), header_row=header_row)
    except Exception as exc:
        message = f"Error parsing sheet {sheet_name or '<default>'} in {path}: {exc}"
        LOGGER.error(message)
        _emit(log, message)
        return []
    finally:
        workbook.close()

    LOGGER.debug("Loaded %d rows from %s [%s] (header row %d)", len(rows), path, target, header_row)
    return rows
