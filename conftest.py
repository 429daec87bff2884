"""
Pytest configuration file.

Puts the project root on the Python path so the flat modules import the
same way they do at runtime, and provides fixtures shared by the test
modules.
"""
import io
import os
import sys

import pytest

# Add the current directory to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from openpyxl import Workbook


def build_xlsx(rows):
    """
    Build an in-memory .xlsx file whose first sheet holds `rows`.

    Args:
        rows: Iterable of row value lists; the first is the header

    Returns:
        io.BytesIO: Stream positioned at the start of the workbook bytes
    """
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    buffer.seek(0)
    return buffer


@pytest.fixture
def xlsx_stream():
    """
    Fixture returning the `build_xlsx` factory.

    Returns:
        Callable: Builds an xlsx stream from a list of rows
    """
    return build_xlsx


def build_xlsx_cells(cells):
    """
    Build an in-memory .xlsx file with values placed at given coordinates.

    Args:
        cells: Mapping of cell reference (e.g. "B2") to value

    Returns:
        io.BytesIO: Stream positioned at the start of the workbook bytes
    """
    workbook = Workbook()
    sheet = workbook.active
    for ref, value in cells.items():
        sheet[ref] = value
    buffer = io.BytesIO()
    workbook.save(buffer)
    buffer.seek(0)
    return buffer


@pytest.fixture
def xlsx_cells():
    """
    Fixture returning the `build_xlsx_cells` factory.

    Returns:
        Callable: Builds an xlsx stream from a cell reference mapping
    """
    return build_xlsx_cells


@pytest.fixture
def legacy_xls_path():
    """
    Fixture providing the path of a BIFF8 .xls file with rows
    Name/Age, C/25, a whitespace row, then D/41.

    Returns:
        str: Absolute path of static/excel/people.xls
    """
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "static", "excel", "people.xls")
