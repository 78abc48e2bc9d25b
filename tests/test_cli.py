from pathlib import Path

import pandas as pd
import polars as pl
import pytest

from explorer_common.cli import main
from explorer_common.config import ConfigError, default_config
from explorer_common.datasets import read_dataset


@pytest.fixture
def crops_root(write_workbook, tmp_path):
    frame = pd.DataFrame(
        {"year": [1990, 1991], "admin0": ["Peru", "Peru"], "crop": ["potato", "potato"], "extra_col": ["a", "b"]}
    )
    path = write_workbook("crops.xlsx", {"CropStats": frame})
    config_path = Path(tmp_path) / "config.yaml"
    config_path.write_text(f"datasets:\n  crops:\n    source: {path.name}\n", encoding="utf-8")
    return config_path


def test_export_writes_csv_with_extras(crops_root, tmp_path):
    """Exporting crops writes typed columns plus passthrough columns to CSV."""
    output = Path(tmp_path) / "out" / "crops.csv"

    code = main(["--config", str(crops_root), "export", "crops", "--output", str(output), "--include-extra"])

    assert code == 0
    frame = pl.read_csv(output)
    assert frame["year"].to_list() == [1990, 1991]
    assert frame["extra_col"].to_list() == ["a", "b"]


def test_export_without_records_fails(tmp_path):
    """Exporting a dataset with no records exits with status 1."""
    config_path = Path(tmp_path) / "config.yaml"
    config_path.write_text("data_root: nowhere\n", encoding="utf-8")
    assert main(["--config", str(config_path), "export", "nrpi", "--output", str(Path(tmp_path) / "n.csv")]) == 1


def test_check_reports_missing_datasets(crops_root):
    """``check`` fails when any configured dataset yields no records."""
    # Only crops exists under this root.
    assert main(["--config", str(crops_root), "check"]) == 1


def test_invalid_config_exit_code(tmp_path):
    """A config error is reported with exit status 2."""
    config_path = Path(tmp_path) / "config.yaml"
    config_path.write_text("datasets:\n  nope: {}\n", encoding="utf-8")
    assert main(["--config", str(config_path), "check"]) == 2


def test_no_command_prints_help(capsys):
    """Running without a subcommand prints usage."""
    assert main([]) == 2
    assert "usage" in capsys.readouterr().out


def test_read_dataset_rejects_display_only_dataset(tmp_path):
    """The summary-tables workbook has no record reader."""
    with pytest.raises(ConfigError):
        read_dataset(default_config(tmp_path).dataset("population_summary"))
