"""
Converter interfaces.

A FieldConverter maps one row cell to a field value and back. A RecordConverter
maps a whole record instance to a row and back, and describes the table the
record type is stored in. Factories are consulted by the converter registry in
priority order; a factory returns None for types it does not handle.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from tablemap.types import Column, ColumnType

if TYPE_CHECKING:
    from tablemap.cursor import ResultCursor
    from tablemap.indexes import IndexSpec
    from tablemap.mapper import Mapper

T = TypeVar('T')

__all__ = [
    'FieldConverter',
    'FieldConverterFactory',
    'RecordConverter',
    'RecordConverterFactory',
]


class FieldConverter(ABC, Generic[T]):
    """Converts a single field value to and from a row cell.
    """

    @abstractmethod
    def from_row_value(self, row: 'ResultCursor', index: int) -> T:
        """Read the value at column `index` of the current row.

        Only called for non-null cells.
        """

    @abstractmethod
    def to_row_value(self, value: T) -> Any:
        """Convert a non-None value to the cell stored for it.
        """

    @property
    @abstractmethod
    def column_type(self) -> ColumnType | None:
        """Column type used for this field, or None to leave the field unmapped.
        """


class FieldConverterFactory(ABC):
    """Creates field converters for the field types it recognizes.
    """

    @abstractmethod
    def create(self, mapper: 'Mapper', field_type: Any) -> FieldConverter | None:
        """Create a converter for `field_type`, or return None.
        """


class RecordConverter(ABC, Generic[T]):
    """Converts record instances to and from rows of one table.
    """

    @property
    @abstractmethod
    def table(self) -> str:
        """Table name for the record type."""

    @property
    @abstractmethod
    def columns(self) -> list[Column]:
        """Mapped columns in read and write order."""

    @abstractmethod
    def from_row(self, row: 'ResultCursor') -> T:
        """Build a record from the current row.

        The row exposes this converter's columns in order; a trailing subset
        may be missing.
        """

    @abstractmethod
    def to_row(self, instance: T) -> dict[str, Any]:
        """Convert a record to a column name -> cell mapping.
        """

    @abstractmethod
    def get_id(self, instance: T) -> int | None:
        pass

    @abstractmethod
    def set_id(self, instance: T, id: int | None) -> None:
        pass

    @abstractmethod
    def new_instance(self) -> T:
        """Create an empty record, as used for id-only references."""

    @property
    def index_specs(self) -> 'list[IndexSpec]':
        """Indexes the table should carry."""
        return []


class RecordConverterFactory(ABC):
    """Creates record converters for the record types it recognizes.
    """

    @abstractmethod
    def create(self, mapper: 'Mapper', record_type: type) -> RecordConverter | None:
        """Create a converter for `record_type`, or return None.
        """
