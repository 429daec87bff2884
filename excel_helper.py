import io
import logging
import time
import uuid
from typing import Any, BinaryIO, Callable, Iterator, List, Sequence, Type, TypeVar
from urllib.parse import quote_plus

import pandas as pd
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

from utils.converters import cell_text
from utils.descriptors import FieldDescriptor, build_descriptors
from utils.errors import ColumnMismatchError, ExcelHelperError, WorkbookReadError

logger = logging.getLogger(__name__)

T = TypeVar('T')

SHEET_NAME = "sheet1"
XLSX_MARKER = ".xlsx"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
MODERN_ENGINE = "openpyxl"
LEGACY_ENGINE = "xlrd"
STREAM_CHUNK_SIZE = 64 * 1024

# Callers supply one of these instead of field names for custom mappings
ColumnExtractor = Callable[[T], Sequence[str]]
RowBuilder = Callable[[List[str]], Sequence[T]]


class LogContext:
    """Context manager for tracking and logging operation metrics"""
    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.start_time = None
        self.request_id = kwargs.pop('request_id', str(uuid.uuid4())[:8])
        self.extra = kwargs

    def __enter__(self):
        self.start_time = time.time()
        logger.info(f"Starting {self.operation_name}", extra={"request_id": self.request_id, **self.extra})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if exc_type:
            logger.error(
                f"Failed {self.operation_name} in {duration:.2f}s: {str(exc_val)}",
                extra={"request_id": self.request_id, "duration": duration, **self.extra},
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            logger.info(
                f"Completed {self.operation_name} in {duration:.2f}s",
                extra={"request_id": self.request_id, "duration": duration, **self.extra}
            )


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def export_from_list(
    src_list: Sequence[T],
    head_names: Sequence[str],
    field_names: Sequence[str],
    record_type: Type[T]
) -> Workbook:
    """
    Export records to a workbook, one column per named field.

    Fields are resolved once against the annotations of `record_type` and
    its base classes before any row is written. Names without an annotation
    are accepted when the class or the first record has that attribute.

    Args:
        src_list: Records to export, one per data row
        head_names: Header labels, aligned with `field_names`
        field_names: Attribute names to read from each record
        record_type: Class declaring the fields

    Returns:
        Workbook: A workbook with a single sheet named "sheet1"

    Raises:
        ColumnMismatchError: If header labels and field names differ in length
        UnknownFieldError: If a field name does not resolve on `record_type`
    """
    if len(head_names) != len(field_names):
        raise ColumnMismatchError(len(head_names), len(field_names), "Header labels vs field names")

    sample = src_list[0] if src_list else None
    descriptors = build_descriptors(record_type, field_names, inherited=True, require_converter=False, sample=sample)
    return export_from_list_with(src_list, head_names, _column_extractor(descriptors))


def _column_extractor(descriptors: List[FieldDescriptor]) -> Callable[[Any], List[str]]:
    def extract(record: Any) -> List[str]:
        return [descriptor.get_text(record) for descriptor in descriptors]
    return extract


def export_from_list_with(
    src_list: Sequence[T],
    head_names: Sequence[str],
    extractor: ColumnExtractor
) -> Workbook:
    """
    Export records to a workbook using a caller-supplied column extractor.

    Row 1 holds the header labels in bold, centered; the same style is the
    default style of every header column. Each following row holds the
    values `extractor` returns for one record.

    Args:
        src_list: Records to export
        head_names: Header labels
        extractor: Returns the cell strings for one record, in header order

    Returns:
        Workbook: A workbook with a single sheet named "sheet1"

    Raises:
        ColumnMismatchError: If the extractor returns a row of the wrong width
    """
    with LogContext("spreadsheet export", record_count=len(src_list), column_count=len(head_names)):
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = SHEET_NAME

        header_font = Font(bold=True)
        header_alignment = Alignment(horizontal="center")
        for col_idx, head_name in enumerate(head_names, start=1):
            cell = sheet.cell(row=1, column=col_idx, value=head_name)
            cell.font = header_font
            cell.alignment = header_alignment
            column = sheet.column_dimensions[get_column_letter(col_idx)]
            column.font = header_font
            column.alignment = header_alignment

        for row_idx, record in enumerate(src_list, start=2):
            columns = extractor(record)
            if len(columns) != len(head_names):
                raise ColumnMismatchError(len(head_names), len(columns), f"Record {row_idx - 2}")
            for col_idx, value in enumerate(columns, start=1):
                sheet.cell(row=row_idx, column=col_idx, value=value)

        return workbook


def write_workbook(workbook: Workbook, output_stream: BinaryIO) -> None:
    """Write the workbook bytes to `output_stream`, then close it."""
    try:
        workbook.save(output_stream)
    finally:
        output_stream.close()


def _iter_buffer(buffer: BinaryIO) -> Iterator[bytes]:
    try:
        while True:
            chunk = buffer.read(STREAM_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        buffer.close()


def content_disposition(file_name: str) -> str:
    """Attachment header value with the form-encoded "<file_name>.xlsx"."""
    # Same escaping as HTML form encoding: "*" kept, "~" escaped
    encoded = quote_plus(f"{file_name}.xlsx", safe="*", encoding="utf-8").replace("~", "%7E")
    return "attachment;filename=" + encoded


def export_from_list_to_stream(
    src_list: Sequence[T],
    head_names: Sequence[str],
    field_names: Sequence[str],
    record_type: Type[T],
    file_name: str
) -> StreamingResponse:
    """
    Export records and stream the workbook as an HTTP attachment.

    The workbook is fully serialized before the response is built, so export
    failures raise here rather than after headers have been sent.

    Args:
        src_list: Records to export
        head_names: Header labels
        field_names: Attribute names to read from each record
        record_type: Class declaring the fields
        file_name: Download name without extension; ".xlsx" is appended

    Returns:
        StreamingResponse: Response carrying the workbook bytes
    """
    workbook = export_from_list(src_list, head_names, field_names, record_type)
    buffer = io.BytesIO()
    workbook.save(buffer)
    size_bytes = buffer.tell()
    buffer.seek(0)
    logger.info(f"Streaming workbook {file_name}.xlsx", extra={"size_bytes": size_bytes})
    return StreamingResponse(
        _iter_buffer(buffer),
        media_type=XLSX_MEDIA_TYPE,
        headers={"content-disposition": content_disposition(file_name)}
    )


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def is_xlsx_file_name(file_name: str) -> bool:
    """True when ".xlsx" appears anywhere in the name, not only as the suffix."""
    return XLSX_MARKER in file_name


def _read_first_sheet(file_name: str, input_stream: BinaryIO) -> pd.DataFrame:
    engine = MODERN_ENGINE if is_xlsx_file_name(file_name) else LEGACY_ENGINE
    logger.debug(f"Reading first sheet of {file_name}", extra={"engine": engine})
    try:
        return pd.read_excel(
            input_stream,
            sheet_name=0,
            header=None,
            dtype=object,
            engine=engine,
            keep_default_na=False,
            na_filter=False
        )
    except Exception as e:
        logger.error(
            "Failed to read spreadsheet",
            extra={"file_name": file_name, "engine": engine, "error": str(e), "error_type": type(e).__name__}
        )
        raise WorkbookReadError(file_name, f"Failed to read spreadsheet with {engine}") from e
    finally:
        input_stream.close()


def _to_cell_text(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return cell_text(value)


def _is_blank(columns: List[str]) -> bool:
    return all(not column.strip() for column in columns)


def _sheet_rows(df: pd.DataFrame) -> List[List[str]]:
    """
    Text rows of the used range of the sheet.

    The frame is anchored at cell A1; leading rows and columns that hold no
    cell text are dropped so the header is the first used row and column 0
    is the first used column.
    """
    rows = [[_to_cell_text(value) for value in row.tolist()] for _, row in df.iterrows()]
    while rows and not any(rows[0]):
        rows.pop(0)

    first_col = min((next(i for i, text in enumerate(row) if text) for row in rows if any(row)), default=0)
    return [row[first_col:] for row in rows]


def _record_builder(record_type: Type[T], descriptors: List[FieldDescriptor]) -> Callable[[List[str]], List[T]]:
    def build(columns: List[str]) -> List[T]:
        record = record_type()
        for index, descriptor in enumerate(descriptors):
            # Trailing empty cells are not materialized by the reader
            text = columns[index] if index < len(columns) else ""
            descriptor.set(record, descriptor.parse(text))
        return [record]
    return build


def import_from_input_stream(
    file_name: str,
    input_stream: BinaryIO,
    record_type: Type[T],
    *field_names: str
) -> List[T]:
    """
    Import the first sheet of a spreadsheet as a list of `record_type`.

    Each non-blank data row becomes one record built with the no-argument
    constructor; column i is parsed into the declared type of `field_names[i]`.
    Fields must be declared directly on `record_type`; inherited fields are
    not searched.

    Args:
        file_name: Original file name, used only to pick the reader
        input_stream: Spreadsheet bytes; closed before this returns
        record_type: Class to instantiate per row
        field_names: Attribute names in column order

    Returns:
        List[T]: One record per non-blank data row, in row order

    Raises:
        UnknownFieldError: If a field is not declared on `record_type`
        UnsupportedTypeError: If a field type has no converter
        TypeCoercionError: If a cell cannot be parsed
        WorkbookReadError: If the stream is not a readable spreadsheet
    """
    try:
        descriptors = build_descriptors(record_type, field_names, inherited=False)
    except ExcelHelperError:
        input_stream.close()
        raise
    return import_from_input_stream_with(file_name, input_stream, _record_builder(record_type, descriptors))


def import_from_input_stream_with(
    file_name: str,
    input_stream: BinaryIO,
    builder: RowBuilder
) -> List[T]:
    """
    Import the first sheet of a spreadsheet using a caller-supplied row builder.

    Every cell is forced to text and columns start at the first used column
    of the sheet. The first used row is treated as a header and skipped;
    rows whose cells are all empty or whitespace are skipped. `builder`
    receives the text columns of each remaining row and may return any
    number of records.

    Args:
        file_name: Original file name; a name containing ".xlsx" is read as
            the zip-based format, anything else as the legacy binary format
        input_stream: Spreadsheet bytes; closed once the workbook is loaded
        builder: Maps the text columns of one row to zero or more records

    Returns:
        List[T]: Concatenated builder output in row order
    """
    with LogContext("spreadsheet import", file_name=file_name):
        rows = _sheet_rows(_read_first_sheet(file_name, input_stream))

        records: List[T] = []
        skipped = 0
        for columns in rows[1:]:
            if _is_blank(columns):
                skipped += 1
                continue
            records.extend(builder(columns))

        logger.info(
            f"Imported {len(records)} records",
            extra={"file_name": file_name, "data_rows": max(len(rows) - 1, 0), "blank_rows": skipped}
        )
        return records
