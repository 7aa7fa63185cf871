"""Read a tracker workbook into plain cell grids.

A grid is a list of rows, each a list of cell values as openpyxl reports them
with ``data_only=True`` (cached formula results): numbers, strings, ``None``
for empty cells, and occasionally dates or booleans which the extractors treat
as non-numeric.
"""
from __future__ import annotations

import logging
import zipfile
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException


LOGGER = logging.getLogger("weeklytracker.reader")

Grid = List[List[Any]]


class WorkbookParseError(ValueError):
    """Raised when the spreadsheet container cannot be parsed at all."""


def read_workbook(
    source: Union[str, Path, bytes, bytearray],
    sheet_names: Optional[Iterable[str]] = None,
) -> Dict[str, Grid]:
    """Return ``{sheet_name: grid}`` for every (or every requested) sheet.

    Requested sheets that do not exist are simply absent from the result.
    """
    if isinstance(source, (bytes, bytearray)):
        handle: Any = BytesIO(bytes(source))
        label = "<bytes>"
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Workbook not found: {path}")
        handle = path
        label = str(path)

    try:
        wb = load_workbook(handle, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise WorkbookParseError(f"Unable to parse workbook {label}: {exc}") from exc

    wanted = set(sheet_names) if sheet_names is not None else None
    sheets: Dict[str, Grid] = {}
    try:
        for ws in wb.worksheets:
            if wanted is not None and ws.title not in wanted:
                continue
            sheets[ws.title] = [list(row) for row in ws.iter_rows(values_only=True)]
            LOGGER.debug("Read sheet '%s' (%d rows)", ws.title, len(sheets[ws.title]))
    finally:
        wb.close()

    LOGGER.info("Workbook %s: %d sheets read", label, len(sheets))
    return sheets
