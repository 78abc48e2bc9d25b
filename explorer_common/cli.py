"""
Command-line access to the dataset normalizers.

    dataset-explorer check                     # rows/records/skips for every dataset
    dataset-explorer export crops --output out/crops.csv
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

import polars as pl

from .config import DEFAULT_CONFIG_PATH, ConfigError, ExplorerConfig, load_config
from .datasets import READERS, read_dataset
from .schema import records_to_frame

LOGGER = logging.getLogger(__name__)


def _load(args: argparse.Namespace) -> ExplorerConfig:
    config = load_config(args.config)
    if args.data_root is not None:
        config = config.with_data_root(args.data_root)
    return config


def cmd_check(args: argparse.Namespace) -> int:
    config = _load(args)
    rows = []
    for key in READERS:
        _, report = read_dataset(config.dataset(key))
        rows.append(
            {
                "dataset": key,
                "raw_rows": report.raw_row_count,
                "records": report.record_count,
                "skipped": report.skipped_rows,
                "missing_headers": len(report.missing_headers),
                "source": report.source,
            }
        )
    summary = pl.DataFrame(rows)
    LOGGER.info("Summary:\n%s", summary.to_pandas().to_string(index=False))
    return 0 if all(row["records"] for row in rows) else 1


def cmd_export(args: argparse.Namespace) -> int:
    config = _load(args)
    records, report = read_dataset(config.dataset(args.dataset))
    if not records:
        LOGGER.warning("No records for dataset '%s' from %s", args.dataset, report.source)
        return 1

    frame = records_to_frame(records, args.dataset, include_extra=args.include_extra)
    output: Path = args.output or Path(f"{args.dataset}.csv")
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix == ".parquet":
        frame.write_parquet(output)
    else:
        frame.write_csv(output, include_header=True)
    LOGGER.info("Wrote %d %s records to %s", frame.height, args.dataset, output)
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Normalize the explorer's Excel datasets")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to YAML config (default: $EXPLORER_CONFIG or {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--data-root", type=Path, help="Override the configured data root.")
    subparsers = parser.add_subparsers(dest="command")

    check = subparsers.add_parser("check", help="Load every dataset and log row/record counts.")
    check.set_defaults(func=cmd_check)

    export = subparsers.add_parser("export", help="Write one normalized dataset to CSV or Parquet.")
    export.add_argument("dataset", choices=sorted(READERS))
    export.add_argument("--output", type=Path, help="Output path; .parquet writes Parquet, anything else CSV.")
    export.add_argument("--include-extra", action="store_true", help="Append passthrough columns as text.")
    export.set_defaults(func=cmd_export)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return 2

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    try:
        return args.func(args)
    except ConfigError as exc:
        LOGGER.error("Config error: %s", exc)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
