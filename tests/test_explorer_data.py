import os
from pathlib import Path

import pandas as pd
import pytest

from explorer_browser.explorer_data import dataset_status, load_dataset, load_summary_table, source_token
from explorer_common.config import DatasetSettings, default_config


def _crop_frame(production):
    return pd.DataFrame({"year": [1950], "admin0": ["Peru"], "crop": ["potato"], "production": [production]})


def _crop_settings(path, **overrides):
    values = dict(key="crops", title="Crops", source=Path(path), sheet="CropStats", header_row=0)
    values.update(overrides)
    return DatasetSettings(**values)


def test_load_dataset_returns_frame_and_report(write_workbook):
    """Cached loads return a Polars frame together with the normalization report."""
    path = write_workbook("crops_a.xlsx", {"CropStats": _crop_frame(12.5)})

    frame, report = load_dataset(_crop_settings(path))

    assert frame.select(["country", "crop", "production"]).to_dict(as_series=False) == {
        "country": ["Peru"],
        "crop": ["potato"],
        "production": [12.5],
    }
    assert report.dataset == "crops"
    assert report.record_count == 1


def test_load_dataset_reloads_after_file_changes(write_workbook):
    """A newer modification time invalidates the cached frame."""
    path = write_workbook("crops_b.xlsx", {"CropStats": _crop_frame(1.0)})
    os.utime(path, (1_000_000, 1_000_000))
    first, _ = load_dataset(_crop_settings(path))

    write_workbook("crops_b.xlsx", {"CropStats": _crop_frame(2.0)})
    os.utime(path, (2_000_000, 2_000_000))
    second, _ = load_dataset(_crop_settings(path))

    assert first["production"].to_list() == [1.0]
    assert second["production"].to_list() == [2.0]


def test_column_overrides_reach_the_normalizer(write_workbook):
    """Configured column aliases are applied by the browser loader."""
    frame = pd.DataFrame({"year": [1950], "admin0": ["Peru"], "crop": ["potato"], "Output (t)": [7.0]})
    path = write_workbook("crops_c.xlsx", {"CropStats": frame})

    loaded, _ = load_dataset(_crop_settings(path, columns={"production": ["Output (t)"]}))

    assert loaded["production"].to_list() == [7.0]


def test_missing_workbook_gives_empty_frame(tmp_path):
    """A missing workbook loads as an empty frame rather than an error."""
    frame, report = load_dataset(_crop_settings(Path(tmp_path) / "none.xlsx"))
    assert frame.is_empty()
    assert report.raw_row_count == 0
    assert source_token(Path(tmp_path) / "none.xlsx")[1] is None


def test_summary_dataset_is_not_a_record_dataset(tmp_path):
    """The summary-tables workbook only loads as a display table."""
    settings = default_config(tmp_path).dataset("population_summary")
    with pytest.raises(ValueError):
        load_dataset(settings)
    assert load_summary_table(settings).empty


def test_dataset_status_flags_missing_files(tmp_path):
    """Status lists every configured dataset and whether its file exists."""
    status = {row["dataset"]: row for row in dataset_status(default_config(tmp_path))}
    assert set(status) == {"population", "population_summary", "nrpi", "chi", "literature", "crops"}
    assert not any(row["exists"] for row in status.values())
