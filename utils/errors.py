"""
Exception hierarchy for the spreadsheet mapper.

Every failure propagates to the caller; an import aborts on the first error
and never returns a partial list.
"""
from typing import Any, Optional


class ExcelHelperError(Exception):
    """Base class for all spreadsheet mapping errors."""


class UnknownFieldError(ExcelHelperError, AttributeError):
    """
    Raised when a field name does not resolve on a record type.

    Attributes:
        record_type: The class the field was looked up on
        field_name: The name that failed to resolve
    """
    def __init__(self, record_type: type, field_name: str, message: Optional[str] = None):
        self.record_type = record_type
        self.field_name = field_name
        super().__init__(message or f"Unknown field '{field_name}' on {record_type.__name__}")


class UnsupportedTypeError(ExcelHelperError, TypeError):
    """Raised when a field is declared with a type that has no cell converter."""
    def __init__(self, field_type: Any, field_name: Optional[str] = None):
        self.field_type = field_type
        self.field_name = field_name
        target = f" for field '{field_name}'" if field_name else ""
        super().__init__(f"Unsupported field type {field_type!r}{target}")


class TypeCoercionError(ExcelHelperError, ValueError):
    """
    Raised when the text of a cell cannot be parsed into the field's type.

    Attributes:
        value: The cell text that failed to parse
        target_type: The declared field type
    """
    def __init__(self, value: str, target_type: type, field_name: Optional[str] = None):
        self.value = value
        self.target_type = target_type
        self.field_name = field_name
        target = f" (field '{field_name}')" if field_name else ""
        super().__init__(f"Cannot convert {value!r} to {target_type.__name__}{target}")


class ColumnMismatchError(ExcelHelperError, ValueError):
    """Raised when header labels, field names and row cells are not aligned."""
    def __init__(self, expected: int, actual: int, context: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"{context}: expected {expected} columns, got {actual}")


class WorkbookReadError(ExcelHelperError):
    """Raised when the spreadsheet library cannot parse the uploaded stream."""
    def __init__(self, file_name: str, message: str):
        self.file_name = file_name
        self.message = message
        super().__init__(f"{message}: {file_name}")
