import pandas as pd

from explorer_common.crops import normalize_crops, read_crops


def test_crop_row_with_long_header_spellings():
    """Long header spellings map to the same fields; unknown columns pass through."""
    row = {
        "Harvest_year": 1950,
        "admin0": "France",
        "admin1": "Bretagne",
        "crop": "wheat",
        "hectares (ha)": 1000,
        "production (tonnes)": 2500.5,
        "yield(tonnes/ha)": 2.5,
        "source": "census",
    }
    [record] = normalize_crops([row])

    assert record.to_dict() == {
        "source": "census",
        "harvest_year": 1950,
        "year": 1950,
        "country": "France",
        "crop": "wheat",
        "admin1": "Bretagne",
        "admin2": "",
        "hectares": 1000.0,
        "production": 2500.5,
        "yield": 2.5,
        "notes": "",
    }


def test_short_spellings_and_quantity_defaults():
    """Short header spellings work and unparseable quantities default to zero."""
    row = {"year": 2001, "country": "Chile", "crop": "maize", "production": "n/a"}
    [record] = normalize_crops([row])

    assert record.harvest_year == 2001
    assert record.country == "Chile"
    assert record.production == 0.0
    assert record.hectares == 0.0
    assert record.yield_ == 0.0


def test_invalid_rows_are_dropped():
    """Rows missing a positive year, a country or a crop are skipped and counted."""
    rows = [
        {"year": 0, "admin0": "A", "crop": "rice"},
        {"year": 1990, "admin0": "", "crop": "rice"},
        {"year": 1990, "admin0": "A", "crop": None},
        {"year": None, "admin0": "A", "crop": "rice"},
        {"year": 1990, "admin0": "A", "crop": "rice"},
    ]
    records, report = normalize_crops(rows, return_report=True)

    assert len(records) == 1
    assert report.skipped_rows == 4
    assert all(r.year > 0 and r.country and r.crop for r in records)


def test_read_crops_from_cropstats_sheet(write_workbook):
    """The CropStats sheet is read even when it is not the first sheet."""
    frame = pd.DataFrame(
        {
            "year": [1900, 1901],
            "admin0": ["Italy", "Italy"],
            "crop": ["wheat", "wheat"],
            "production": [100.0, 120.0],
            "yield": [1.1, 1.2],
        }
    )
    path = write_workbook("crops.xlsx", {"Readme": pd.DataFrame({"about": ["x"]}), "CropStats": frame})

    records = read_crops(path)

    assert [(r.year, r.production, r.yield_) for r in records] == [(1900, 100.0, 1.1), (1901, 120.0, 1.2)]


def test_zero_year_falls_back_to_harvest_year():
    """A zero or unparseable ``year`` cell defers to ``Harvest_year`` before the row is dropped."""
    rows = [
        {"year": 0, "Harvest_year": 1961, "admin0": "Peru", "crop": "maize"},
        {"year": "n/a", "Harvest_year": 1962, "admin0": "Peru", "crop": "maize"},
        {"year": 0, "Harvest_year": None, "admin0": "Peru", "crop": "maize"},
    ]
    records, report = normalize_crops(rows, return_report=True)

    assert [(r.year, r.harvest_year) for r in records] == [(1961, 1961), (1962, 1962)]
    assert report.skipped_rows == 1
