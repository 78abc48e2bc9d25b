from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from .schema import AliasMap, RawRow, consumed_headers, merge_alias_maps, resolve_aliases

LOGGER = logging.getLogger(__name__)


@dataclass
class NormalizationReport:
    dataset: str
    source: str
    raw_row_count: int
    record_count: int
    skipped_rows: int
    missing_headers: List[str] = field(default_factory=list)


def collect_headers(rows: Sequence[RawRow]) -> List[str]:
    """Union of row keys in first-seen order (rows from one sheet share headers)."""

    seen: Dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


def prepare_aliases(
    rows: Sequence[RawRow],
    base: AliasMap,
    overrides: Mapping[str, Any] | None,
) -> Tuple[Dict[str, Tuple[str, ...]], set[str], List[str]]:
    """
    Resolve the alias table against this worksheet once.

    Returns (resolved aliases, consumed headers, logical fields with no header
    present). Fields whose alias list is empty by default are not reported as
    missing.
    """

    aliases = merge_alias_maps(overrides, base=base)
    resolved = resolve_aliases(collect_headers(rows), aliases)
    missing = [name for name, spellings in resolved.items() if not spellings and aliases.get(name)]
    return resolved, consumed_headers(resolved), missing


def passthrough(row: RawRow, consumed: set[str]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if k not in consumed}


def finish(
    dataset: str,
    source: str,
    rows: Sequence[RawRow],
    records: list,
    skipped: int,
    missing: List[str],
    *,
    log: Callable[[str], None] | None = None,
    return_report: bool = False,
):
    """Log the run summary and return records, or (records, report) when requested."""

    report = NormalizationReport(
        dataset=dataset,
        source=source,
        raw_row_count=len(rows),
        record_count=len(records),
        skipped_rows=skipped,
        missing_headers=missing,
    )
    message = (
        f"{dataset}: {report.record_count} records from {report.raw_row_count} rows "
        f"({report.skipped_rows} skipped) [{source}]"
    )
    LOGGER.info(message)
    if log:
        log(message)
    if rows and missing:
        LOGGER.debug("%s: no header found for %d fields: %s", dataset, len(missing), missing[:10])
    if return_report:
        return records, report
    return records
