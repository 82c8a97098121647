"""
Column model shared by converters and the schema reconciler.

This module provides:
- ColumnType: storage classes a column may be declared with
- Column: a (name, type) pair describing one mapped column
- zero values used for non-nullable scalar fields on null cells
- ISO 8601 parsing helpers for date and datetime text cells
"""
import datetime
import enum
import types
from dataclasses import dataclass
from typing import Any

import dateutil.parser


class ColumnType(enum.Enum):
    """Storage class of a mapped column.

    VIRTUAL columns are read-only projections (for example join results);
    they are never written and never created.
    """
    TEXT = 'TEXT'
    INTEGER = 'INTEGER'
    REAL = 'REAL'
    BLOB = 'BLOB'
    VIRTUAL = 'VIRTUAL'

    @property
    def is_storable(self) -> bool:
        return self is not ColumnType.VIRTUAL


@dataclass(frozen=True)
class Column:
    """Column metadata for a mapped record type.
    """
    name: str
    type: ColumnType

    @property
    def is_virtual(self) -> bool:
        return self.type is ColumnType.VIRTUAL


# Values left in place when a non-nullable field reads a null cell
zero_values: dict[type, Any] = {
    int: 0,
    float: 0.0,
    bool: False,
    }

primitive_types: tuple[type, ...] = tuple(zero_values)


def convert_date(val: str | bytes) -> datetime.date:
    """Convert ISO 8601 date string to date object."""
    if isinstance(val, bytes):
        val = val.decode()
    return dateutil.parser.isoparse(val).date()


def convert_datetime(val: str | bytes) -> datetime.datetime:
    """Convert ISO 8601 datetime string to datetime object."""
    if isinstance(val, bytes):
        val = val.decode()
    return dateutil.parser.isoparse(val)


def is_class(obj: Any) -> bool:
    """Check for a real class; parameterized generics such as list[str] are not."""
    return isinstance(obj, type) and not isinstance(obj, types.GenericAlias)
