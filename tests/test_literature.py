import pandas as pd

from explorer_common.literature import normalize_literature, read_literature


def _citation(**overrides):
    row = {
        "Publication Year": 2019,
        "Authors": "Doe, J.",
        "Title": "Downscaled SSPs for the Nile",
        "Journal": "Climatic Change",
        "Case study countries": "Egypt; Sudan",
        "Theme": "Water",
        "SSPs": 2,
        "SSP1": "x",
        "SSP2": None,
        "SSP3": "X",
        "SSP4": "",
        "SSP5": "no",
        "RCPs": "RCP4.5 RCP8.5",
        "Direct stakeholder involvement for the study [Y/N]": "Y",
        "Reviewer": "AB",
    }
    row.update(overrides)
    return row


def test_literature_record_fields_and_flags():
    """Citation rows map to typed fields and SSP checkbox flags."""
    [record] = normalize_literature([_citation()])

    assert record.publication_year == 2019
    assert record.title == "Downscaled SSPs for the Nile"
    assert record.case_study_countries == "Egypt; Sudan"
    assert record.ssps == 2
    assert (record.ssp1, record.ssp2, record.ssp3, record.ssp4, record.ssp5) == (True, False, True, False, False)
    assert record.stakeholder_involvement == "Y"
    assert record.abstract == ""
    assert record.extra == {"Reviewer": "AB"}


def test_rows_without_integer_year_are_skipped():
    """Rows whose publication year is not an integer are skipped."""
    rows = [_citation(), _citation(**{"Publication Year": "Notes:"}), _citation(**{"Publication Year": None})]
    records, report = normalize_literature(rows, return_report=True)

    assert len(records) == 1
    assert report.skipped_rows == 2


def test_missing_ssp_count_defaults_to_zero():
    """A blank SSP count becomes 0."""
    [record] = normalize_literature([_citation(SSPs=None)])
    assert record.ssps == 0


def test_read_literature_uses_header_row_three(write_workbook):
    """The Citations sheet header sits on row 3 below the title block."""
    frame = pd.DataFrame([_citation(), _citation(**{"Publication Year": 2021, "Title": "Second"})])
    path = write_workbook("ssp.xlsx", {"Citations": (frame, 3)})

    records = read_literature(path)

    assert [(r.publication_year, r.title) for r in records] == [
        (2019, "Downscaled SSPs for the Nile"),
        (2021, "Second"),
    ]
    assert records[0].ssp1 and not records[0].ssp2
