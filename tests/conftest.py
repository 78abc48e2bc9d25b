from pathlib import Path

import pandas as pd
import pytest


@pytest.fixture
def write_workbook(tmp_path):
    """
    Write one or more sheets to an .xlsx file with pandas + xlsxwriter.

    ``sheets`` maps sheet name -> DataFrame or (DataFrame, startrow). A title
    string is written at A1 of every sheet written with a startrow > 0, so
    header offsets are exercised with non-blank rows above the header.
    """

    def _write(name, sheets):
        path = Path(tmp_path) / name
        with pd.ExcelWriter(path, engine="xlsxwriter") as writer:
            for sheet_name, entry in sheets.items():
                frame, startrow = entry if isinstance(entry, tuple) else (entry, 0)
                frame.to_excel(writer, sheet_name=sheet_name, index=False, startrow=startrow)
                if startrow:
                    writer.sheets[sheet_name].write(0, 0, f"{sheet_name} title")
        return path

    return _write
