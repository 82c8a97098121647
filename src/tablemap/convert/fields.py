"""
Default scalar field converters.

| Python type          | Column  | Stored as                       |
|----------------------|---------|---------------------------------|
| int                  | INTEGER | integer                         |
| float                | REAL    | float                           |
| str                  | TEXT    | text                            |
| bytes, bytearray     | BLOB    | bytes                           |
| bool                 | INTEGER | 1 / 0                           |
| decimal.Decimal      | TEXT    | decimal string                  |
| datetime.date        | TEXT    | ISO 8601 date                   |
| datetime.datetime    | TEXT    | ISO 8601 datetime               |
"""
import datetime
import decimal
import logging
from typing import Any

from tablemap.convert.base import FieldConverter, FieldConverterFactory
from tablemap.types import ColumnType, convert_date, convert_datetime

logger = logging.getLogger(__name__)


class IntegerConverter(FieldConverter[int]):

    def from_row_value(self, row, index: int) -> int:
        return row.get_int(index)

    def to_row_value(self, value: int) -> int:
        return int(value)

    @property
    def column_type(self) -> ColumnType:
        return ColumnType.INTEGER


class FloatConverter(FieldConverter[float]):

    def from_row_value(self, row, index: int) -> float:
        return row.get_float(index)

    def to_row_value(self, value: float) -> float:
        return float(value)

    @property
    def column_type(self) -> ColumnType:
        return ColumnType.REAL


class StrConverter(FieldConverter[str]):

    def from_row_value(self, row, index: int) -> str:
        return row.get_str(index)

    def to_row_value(self, value: str) -> str:
        return value

    @property
    def column_type(self) -> ColumnType:
        return ColumnType.TEXT


class BytesConverter(FieldConverter[bytes]):

    def from_row_value(self, row, index: int) -> bytes:
        return row.get_bytes(index)

    def to_row_value(self, value: bytes) -> bytes:
        return bytes(value)

    @property
    def column_type(self) -> ColumnType:
        return ColumnType.BLOB


class BoolConverter(FieldConverter[bool]):
    """Booleans stored as 1 / 0.

    Text cells written by other tools are accepted: 'true' in any case reads
    as True, anything else as False.
    """

    def from_row_value(self, row, index: int) -> bool:
        try:
            return row.get_int(index) == 1
        except ValueError:
            return row.get_str(index).lower() == 'true'

    def to_row_value(self, value: bool) -> int:
        return 1 if value else 0

    @property
    def column_type(self) -> ColumnType:
        return ColumnType.INTEGER


class DecimalConverter(FieldConverter[decimal.Decimal]):

    def from_row_value(self, row, index: int) -> decimal.Decimal:
        return decimal.Decimal(row.get_str(index))

    def to_row_value(self, value: decimal.Decimal) -> str:
        return str(value)

    @property
    def column_type(self) -> ColumnType:
        return ColumnType.TEXT


class DateConverter(FieldConverter[datetime.date]):

    def from_row_value(self, row, index: int) -> datetime.date:
        return convert_date(row.get_str(index))

    def to_row_value(self, value: datetime.date) -> str:
        return value.isoformat()

    @property
    def column_type(self) -> ColumnType:
        return ColumnType.TEXT


class DateTimeConverter(FieldConverter[datetime.datetime]):

    def from_row_value(self, row, index: int) -> datetime.datetime:
        return convert_datetime(row.get_str(index))

    def to_row_value(self, value: datetime.datetime) -> str:
        return value.isoformat()

    @property
    def column_type(self) -> ColumnType:
        return ColumnType.TEXT


class DefaultFieldConverterFactory(FieldConverterFactory):
    """Converters for the built-in scalar types.

    Lookup is by exact type, so `bool` never falls through to `int` and
    `datetime.datetime` never to `datetime.date`.
    """

    def __init__(self) -> None:
        bytes_converter = BytesConverter()
        self._converters: dict[Any, FieldConverter] = {
            int: IntegerConverter(),
            float: FloatConverter(),
            str: StrConverter(),
            bytes: bytes_converter,
            bytearray: bytes_converter,
            bool: BoolConverter(),
            decimal.Decimal: DecimalConverter(),
            datetime.date: DateConverter(),
            datetime.datetime: DateTimeConverter(),
            }

    def create(self, mapper, field_type: Any) -> FieldConverter | None:
        try:
            return self._converters.get(field_type)
        except TypeError:
            logger.debug(f'Unhashable field type {field_type!r}')
            return None
