"""Reading scenario tables from uploaded workbooks.

Excel files are read with pandas (openpyxl engine); every sheet is loaded
and the scenario sheet is chosen by name. CSV files hold a single table.
Cells come back as text, with blank cells as "" and whole numbers without a
trailing ".0".
"""

import csv
import io
import logging
from pathlib import Path
from typing import BinaryIO, Sequence
from zipfile import BadZipFile

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from specgraph.importer.patterns import DEFAULT_PATTERNS, ScenarioPatterns
from specgraph.importer.scenario_table import ImportFailure, ScenarioImportError

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
CSV_SUFFIXES = {".csv"}
SUPPORTED_SUFFIXES = EXCEL_SUFFIXES | CSV_SUFFIXES

# tried in order; cp1251 covers CSVs saved by a Russian-locale Excel
CSV_ENCODINGS = ("utf-8-sig", "cp1251")

# what pandas and openpyxl raise for a file that is not a readable workbook
WORKBOOK_ERRORS = (
    BadZipFile,
    InvalidFileException,
    ValueError,
    KeyError,
    OSError,
    pd.errors.OptionError,
)


def select_sheet(names: Sequence[str], patterns: ScenarioPatterns = DEFAULT_PATTERNS) -> str:
    """Prefer a sheet whose name mentions the scenario, else the first sheet."""
    if not names:
        raise ScenarioImportError(ImportFailure.empty_sheet, "The workbook has no sheets")
    for name in names:
        lowered = str(name).lower()
        if any(hint in lowered for hint in patterns.sheet_hints):
            return name
    return names[0]


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


def frame_to_rows(frame: pd.DataFrame) -> list[list[str]]:
    """Convert a header-less DataFrame into rows of cell text."""
    return [
        [_cell_text(value) for value in row]
        for row in frame.itertuples(index=False, name=None)
    ]


def _decode_csv(data: bytes) -> str:
    for encoding in CSV_ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            logger.debug("csv is not %s", encoding)
    raise ScenarioImportError(
        ImportFailure.unsupported_file,
        f"Could not decode the CSV file; expected one of: {', '.join(CSV_ENCODINGS)}",
    )


def _read_csv(data: bytes) -> pd.DataFrame:
    text = _decode_csv(data)
    # title and note rows are shorter than the step table; size the frame to the widest row
    width = max((len(row) for row in csv.reader(io.StringIO(text))), default=0)
    if width == 0:
        return pd.DataFrame()
    return pd.read_csv(
        io.StringIO(text),
        header=None,
        names=list(range(width)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=False,
    )


def read_scenario_table(
    source: str | Path | bytes | BinaryIO,
    filename: str | None = None,
    patterns: ScenarioPatterns = DEFAULT_PATTERNS,
) -> list[list[str]]:
    """Read the scenario sheet of a workbook as rows of cell text.

    Args:
        source: a path, the raw file bytes, or a binary file object
        filename: original file name, used for the type when ``source`` is not a path
        patterns: phrase tables used to pick the sheet

    Raises:
        ScenarioImportError: for unsupported or unreadable files and empty sheets
    """
    if filename is None and isinstance(source, (str, Path)):
        filename = str(source)
    suffix = Path(filename or "").suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ScenarioImportError(
            ImportFailure.unsupported_file,
            f"Unsupported file type: {suffix or filename!r}",
        )

    if isinstance(source, (str, Path)):
        data = Path(source).read_bytes()
    elif isinstance(source, bytes):
        data = source
    else:
        data = source.read()

    if suffix in CSV_SUFFIXES:
        try:
            frame = _read_csv(data)
        except (csv.Error, pd.errors.ParserError) as exc:
            raise ScenarioImportError(
                ImportFailure.unsupported_file,
                f"Could not parse CSV {filename!r}: {exc}",
            ) from exc
        sheet_name = "csv"
    else:
        try:
            sheets = pd.read_excel(io.BytesIO(data), sheet_name=None, header=None)
        except WORKBOOK_ERRORS as exc:
            raise ScenarioImportError(
                ImportFailure.unsupported_file,
                f"Could not read workbook {filename!r}: {exc}",
            ) from exc
        sheet_name = select_sheet(list(sheets), patterns)
        frame = sheets[sheet_name]

    if frame.empty:
        raise ScenarioImportError(ImportFailure.empty_sheet)

    rows = frame_to_rows(frame)
    logger.debug("read %d rows from sheet %r of %s", len(rows), sheet_name, filename)
    return rows
