"""
Enum fields, stored by member name.
"""
import enum
from typing import Any

from tablemap.convert.base import FieldConverter, FieldConverterFactory
from tablemap.types import ColumnType, is_class


class EnumConverter(FieldConverter[enum.Enum]):
    """Store an enum member as its name.

    Reading an unknown name raises KeyError.
    """

    def __init__(self, enum_type: type[enum.Enum]) -> None:
        self.enum_type = enum_type

    def from_row_value(self, row, index: int) -> enum.Enum:
        return self.enum_type[row.get_str(index)]

    def to_row_value(self, value: enum.Enum) -> str:
        return value.name

    @property
    def column_type(self) -> ColumnType:
        return ColumnType.TEXT


class EnumFieldConverterFactory(FieldConverterFactory):

    def create(self, mapper, field_type: Any) -> FieldConverter | None:
        if is_class(field_type) and issubclass(field_type, enum.Enum):
            return EnumConverter(field_type)
        return None
