"""Kinds of values that columns can hold.

Arrow has a rich type system, but when reshaping data
what matters is the broad kind of a column: if it's numbers,
text, dates or booleans. Every kind can also hold missing values,
a column made only of missing values has the ``MISSING`` kind.

>>> kind_of(pa.int64())
<Kind.NUMERIC: 'numeric'>
>>> common_type([pa.int64(), pa.float64(), pa.null()])
DataType(double)
>>> to_text(datetime.date(2016, 1, 5))
'2016-01-05'
"""

import datetime
import enum
from typing import Any, Iterable

import pyarrow as pa

__all__ = (
    "Kind",
    "kind_of",
    "arrow_type_for",
    "accepts",
    "common_type",
    "cast_values",
    "to_text",
)


class Kind(enum.Enum):
    NUMERIC = "numeric"
    TEXT = "text"
    DATE = "date"
    BOOLEAN = "boolean"
    MISSING = "missing"


def kind_of(datatype: pa.DataType) -> Kind:
    """Detect the kind of values stored by an arrow type."""
    if pa.types.is_null(datatype):
        return Kind.MISSING
    if pa.types.is_boolean(datatype):
        return Kind.BOOLEAN
    if pa.types.is_integer(datatype) or pa.types.is_floating(datatype) or pa.types.is_decimal(datatype):
        return Kind.NUMERIC
    if pa.types.is_date(datatype) or pa.types.is_timestamp(datatype):
        return Kind.DATE
    if pa.types.is_string(datatype) or pa.types.is_large_string(datatype):
        return Kind.TEXT
    if pa.types.is_dictionary(datatype):
        return kind_of(datatype.value_type)
    raise TypeError(f"Unsupported column type: {datatype}")


def arrow_type_for(kind: Kind, values: Iterable[Any]) -> pa.DataType:
    """Pick the arrow type used to store values of a kind.

    Numbers are stored as integers unless any of them is a float,
    dates are stored as timestamps when any of them has a time of day.
    """
    match kind:
        case Kind.NUMERIC:
            if any(isinstance(v, float) for v in values):
                return pa.float64()
            return pa.int64()
        case Kind.TEXT:
            return pa.string()
        case Kind.DATE:
            if any(isinstance(v, datetime.datetime) for v in values):
                return pa.timestamp("us")
            return pa.date32()
        case Kind.BOOLEAN:
            return pa.bool_()
        case Kind.MISSING:
            return pa.null()
    raise ValueError(f"Unknown kind: {kind!r}")


def accepts(kind: Kind, value: Any) -> bool:
    """If a Python value can be stored in a column of the given kind.

    Missing values (``None``) fit any kind.
    """
    if value is None:
        return True
    match kind:
        case Kind.NUMERIC:
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        case Kind.TEXT:
            return isinstance(value, str)
        case Kind.DATE:
            return isinstance(value, datetime.date)
        case Kind.BOOLEAN:
            return isinstance(value, bool)
    return False


def common_type(types: list[pa.DataType]) -> pa.DataType:
    """Find a type able to hold values of all the provided types.

    Types that are all the same are preserved, integers and
    floats are widened to floats, missing-only columns adopt the
    type of the others, everything else falls back to text.
    """
    concrete = [t for t in types if not pa.types.is_null(t)]
    if not concrete:
        return pa.null()

    first = concrete[0]
    if all(t.equals(first) for t in concrete):
        return first
    if all(pa.types.is_integer(t) or pa.types.is_floating(t) for t in concrete):
        if all(pa.types.is_integer(t) for t in concrete):
            return pa.int64()
        return pa.float64()
    return pa.string()


def cast_values(array: pa.Array, datatype: pa.DataType) -> pa.Array:
    """Cast an array to a type found by :func:`common_type`.

    Casting to text goes through :func:`to_text`, so that
    booleans and dates read the same as when they are pasted together.
    """
    if array.type.equals(datatype):
        return array
    if pa.types.is_string(datatype) and not pa.types.is_null(array.type):
        return pa.array(
            [None if v is None else to_text(v) for v in array.to_pylist()], type=datatype
        )
    return array.cast(datatype)


def to_text(value: Any) -> str:
    """Text representation of a value, as used when pasting values together."""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return str(value)
