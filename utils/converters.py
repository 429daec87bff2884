"""
Text <-> field value conversion for spreadsheet cells.

Cells are exchanged as text in both directions: `cell_text` renders whatever
the reading library produced as a string, and `parse_value` turns that string
back into the declared type of a record field using a closed table of
converters.
"""
import math
import types
import typing
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional

from utils.errors import TypeCoercionError, UnsupportedTypeError

_TRUE_WORDS = {"true", "yes", "y", "1"}
_FALSE_WORDS = {"false", "no", "n", "0"}


def _to_text(text: str) -> str:
    return text


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        pass
    # Numeric cells can come back as "25.0"
    number = Decimal(text)
    if not number.is_finite():
        raise ValueError(f"{text!r} is not a finite number")
    if number != number.to_integral_value():
        raise ValueError(f"{text!r} has a fractional part")
    return int(number)


def _to_float(text: str) -> float:
    return float(text)


def _to_decimal(text: str) -> Decimal:
    return Decimal(text)


def _to_bool(text: str) -> bool:
    word = text.lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"{text!r} is not a boolean")


def _to_date(text: str) -> date:
    try:
        return date.fromisoformat(text)
    except ValueError:
        return datetime.fromisoformat(text).date()


def _to_datetime(text: str) -> datetime:
    return datetime.fromisoformat(text)


CONVERTERS: Dict[type, Callable[[str], Any]] = {
    str: _to_text,
    int: _to_int,
    float: _to_float,
    Decimal: _to_decimal,
    bool: _to_bool,
    date: _to_date,
    datetime: _to_datetime,
}


def unwrap_optional(field_type: Any) -> Any:
    """Return `X` for `Optional[X]` / `X | None`, otherwise the type unchanged."""
    origin = typing.get_origin(field_type)
    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(field_type) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return field_type


def get_converter(field_type: Any, field_name: Optional[str] = None) -> Callable[[str], Any]:
    """
    Look up the converter for a declared field type.

    Args:
        field_type: Declared type, possibly wrapped in Optional
        field_name: Used in the error message only

    Returns:
        Callable[[str], Any]: Converter from cell text to the field type

    Raises:
        UnsupportedTypeError: If the type is not in the converter table
    """
    target = unwrap_optional(field_type)
    # Exact lookup: bool must not fall back to int, datetime must not fall back to date
    converter = CONVERTERS.get(target) if isinstance(target, type) else None
    if converter is None:
        raise UnsupportedTypeError(field_type, field_name)
    return converter


def parse_value(field_type: Any, text: Optional[str], field_name: Optional[str] = None) -> Any:
    """
    Parse cell text into a value of `field_type`.

    Blank text becomes "" for str fields and None for every other type.

    Raises:
        UnsupportedTypeError: If the type has no converter
        TypeCoercionError: If the text cannot be parsed
    """
    converter = get_converter(field_type, field_name)
    target = unwrap_optional(field_type)
    if text is None or not text.strip():
        return "" if target is str else None
    try:
        return converter(text.strip() if target is not str else text)
    except (ValueError, InvalidOperation, OverflowError) as e:
        raise TypeCoercionError(text, target, field_name) from e


def cell_text(value: Any) -> str:
    """
    Force a raw cell value to its text form.

    Args:
        value: Value as produced by the reading engine

    Returns:
        str: "" for empty cells, TRUE/FALSE for booleans, integral numbers
        without a decimal part, ISO text for dates
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)
