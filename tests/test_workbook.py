import re
import zipfile
from pathlib import Path

import pandas as pd

from explorer_common.workbook import (
    build_headers,
    list_sheet_names,
    read_sheet_rows,
    resolve_sheet_name,
    rows_from_values,
)


def test_missing_file_returns_empty_and_logs(tmp_path):
    """A missing file returns no rows and reports why."""
    messages = []
    rows = read_sheet_rows(Path(tmp_path) / "nope.xlsx", "data", log=messages.append)
    assert rows == []
    assert messages and "File not found" in messages[0]


def test_missing_sheet_lists_available(write_workbook):
    """A missing sheet reports the sheets the workbook does have."""
    path = write_workbook("one.xlsx", {"Alpha": pd.DataFrame({"a": [1]})})
    messages = []
    assert read_sheet_rows(path, "Beta", log=messages.append) == []
    assert "Alpha" in messages[0]


def test_corrupt_workbook_returns_empty(tmp_path):
    """A file that is not a workbook returns no rows instead of raising."""
    path = Path(tmp_path) / "broken.xlsx"
    path.write_bytes(b"this is not a zip archive")
    messages = []
    assert read_sheet_rows(path, log=messages.append) == []
    assert messages and "Error reading workbook" in messages[0]
    assert list_sheet_names(path) == []


def test_data_sheet_defaults_to_header_row_five(write_workbook):
    """The ``data`` sheet is preferred and read from header row 5."""
    frame = pd.DataFrame({"CountryName": ["Testland", "Otherland"], "value": [1, 2]})
    path = write_workbook("lecz.xlsx", {"notes": pd.DataFrame({"x": [1]}), "data": (frame, 5)})

    rows = read_sheet_rows(path)

    assert rows == [
        {"CountryName": "Testland", "value": 1},
        {"CountryName": "Otherland", "value": 2},
    ]


def test_explicit_header_row_overrides_default(write_workbook):
    """An explicit header row skips the title block above it."""
    frame = pd.DataFrame({"Publication Year": [2019], "Title": ["Paper"]})
    path = write_workbook("lit.xlsx", {"Citations": (frame, 3)})

    rows = read_sheet_rows(path, "Citations", 3)

    assert rows == [{"Publication Year": 2019, "Title": "Paper"}]


def test_falls_back_to_first_sheet_without_data_sheet(write_workbook):
    """Without a ``data`` sheet the first sheet is read."""
    path = write_workbook(
        "multi.xlsx",
        {"First": pd.DataFrame({"a": [1]}), "Second": pd.DataFrame({"b": [2]})},
    )
    assert list_sheet_names(path) == ["First", "Second"]
    assert read_sheet_rows(path) == [{"a": 1}]


def test_blank_cells_kept_as_none(write_workbook):
    """Blank cells inside a data row come back as None."""
    frame = pd.DataFrame({"a": [1, None], "b": ["x", "y"]})
    path = write_workbook("blanks.xlsx", {"Sheet1": frame})

    rows = read_sheet_rows(path, "Sheet1")

    assert rows[0]["a"] == 1
    assert rows[1]["a"] is None
    assert rows[1]["b"] == "y"


def test_build_headers_empty_and_duplicates():
    """Blank and repeated headers get unique keys."""
    assert build_headers(["a", None, "a", "", "a", 2015.0]) == ["a", "__EMPTY", "a_1", "__EMPTY_1", "a_2", "2015"]


def test_build_headers_preserves_whitespace():
    assert build_headers([" gpw_unpop1990 "]) == [" gpw_unpop1990 "]


def test_rows_from_values_skips_blank_rows_and_pads():
    """Fully blank rows are skipped and short rows are padded with None."""
    grid = [
        ("Title", None),
        ("name", "score"),
        (None, None),
        ("x", 1),
        ("y",),
        ("  ", None),
    ]
    assert rows_from_values(grid, header_row=1) == [
        {"name": "x", "score": 1},
        {"name": "y", "score": None},
    ]


def test_resolve_sheet_name_order():
    assert resolve_sheet_name(["a", "data"], "b") == "b"
    assert resolve_sheet_name(["a", "data"], None) == "data"
    assert resolve_sheet_name(["a", "b"], None) == "a"
    assert resolve_sheet_name([], None) is None


def test_stale_dimension_tag_does_not_truncate_sheet(write_workbook, tmp_path):
    """Writers that leave <dimension ref="A1"/> behind must still load every populated cell."""
    source = write_workbook("fresh.xlsx", {"Sheet1": pd.DataFrame({"a": [1], "b": [2], "c": [3]})})
    stale = Path(tmp_path) / "stale.xlsx"
    with zipfile.ZipFile(source) as src, zipfile.ZipFile(stale, "w", zipfile.ZIP_DEFLATED) as dst:
        for item in src.infolist():
            data = src.read(item.filename)
            if item.filename == "xl/worksheets/sheet1.xml":
                data = re.sub(rb'<dimension ref="[^"]*"/>', b'<dimension ref="A1"/>', data)
            dst.writestr(item, data)

    assert read_sheet_rows(stale, "Sheet1") == [{"a": 1, "b": 2, "c": 3}]
