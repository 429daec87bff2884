"""
Field descriptors: named, typed accessors for one spreadsheet column.

A descriptor is resolved once per call, before any row is read or written,
so an unknown field or an unsupported type fails the whole operation up front.
"""
import inspect
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from utils.converters import get_converter, parse_value
from utils.errors import UnknownFieldError
from utils.result import Result


@dataclass(frozen=True)
class FieldDescriptor:
    """
    Accessor for one named field of a record type.

    Attributes:
        name: Attribute name on the record
        field_type: Declared annotation of the attribute
    """
    name: str
    field_type: Any

    def get(self, record: Any) -> Any:
        return getattr(record, self.name)

    def set(self, record: Any, value: Any) -> None:
        setattr(record, self.name, value)

    def get_text(self, record: Any) -> str:
        """Read the field as cell text; None becomes an empty string."""
        value = self.get(record)
        return "" if value is None else str(value)

    def parse(self, text: str) -> Any:
        """Parse cell text into the declared type of the field."""
        return parse_value(self.field_type, text, self.name)


def _find_declaring_class(record_type: type, field_name: str, inherited: bool) -> Optional[type]:
    classes = record_type.__mro__ if inherited else (record_type,)
    for klass in classes:
        if klass is object:
            break
        if field_name in inspect.get_annotations(klass):
            return klass
    return None


def _has_attribute(record_type: type, field_name: str, sample: Any) -> bool:
    return hasattr(record_type, field_name) or (sample is not None and hasattr(sample, field_name))


def resolve_field(
    record_type: type,
    field_name: str,
    inherited: bool = True,
    require_converter: bool = True,
    sample: Any = None
) -> Result[FieldDescriptor]:
    """
    Resolve one field name on a record type.

    Args:
        record_type: Class whose annotations declare the field
        field_name: Attribute name to resolve
        inherited: Search base classes up to `object` as well as the class itself
        require_converter: Fail unless the declared type has a cell-text converter
        sample: A record to check for plain attributes when the name is not
            annotated; only consulted when no converter is required

    Returns:
        Result[FieldDescriptor]: The descriptor, or a not-found failure

    Raises:
        UnsupportedTypeError: If a parser is required and the type has none
    """
    owner = _find_declaring_class(record_type, field_name, inherited)
    if owner is None and not require_converter and _has_attribute(record_type, field_name, sample):
        # Instance attributes set in __init__ carry no declared type
        return Result.ok(FieldDescriptor(name=field_name, field_type=Any))
    if owner is None:
        scope = "" if inherited else " (declared fields only)"
        return Result.field_not_found(f"Unknown field '{field_name}' on {record_type.__name__}{scope}")

    field_type = inspect.get_annotations(owner, eval_str=True)[field_name]
    if require_converter:
        get_converter(field_type, field_name)
    return Result.ok(FieldDescriptor(name=field_name, field_type=field_type))


def build_descriptors(
    record_type: type,
    field_names: Sequence[str],
    inherited: bool = True,
    require_converter: bool = True,
    sample: Any = None
) -> List[FieldDescriptor]:
    """
    Resolve every field name up front.

    Raises:
        UnknownFieldError: On the first name that does not resolve
        UnsupportedTypeError: On the first field whose type has no converter
    """
    descriptors = []
    for field_name in field_names:
        result = resolve_field(record_type, field_name, inherited=inherited, require_converter=require_converter, sample=sample)
        if result.is_failure():
            raise UnknownFieldError(record_type, field_name, result.error)
        descriptors.append(result.data)
    return descriptors
