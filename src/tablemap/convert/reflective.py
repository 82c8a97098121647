"""
Record converter built from a record type's introspected fields.
"""
import dataclasses
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import more_itertools

from tablemap.annotations import FieldSpec
from tablemap.convert.base import FieldConverter, RecordConverter
from tablemap.convert.base import RecordConverterFactory
from tablemap.exceptions import MappingError, UnsupportedTypeError
from tablemap.indexes import IndexSpec, IndexSpecBuilder
from tablemap.types import Column, ColumnType, is_class, zero_values

if TYPE_CHECKING:
    from tablemap.mapper import Mapper

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class _Property:
    field: FieldSpec
    converter: FieldConverter
    column_type: ColumnType

    @property
    def column(self) -> str:
        return self.field.column


class ReflectiveRecordConverter(RecordConverter):
    """Map every supported field of a record type to a column.

    Fields whose converter reports no column type are left out. The field
    whose column name equals the mapper's id column holds the row id.

    Args:
        mapper: Mapper the record type is registered on
        record_type: Record class to convert
        ignored_field_names: Field names to leave out of the mapping
        additional_columns: Extra columns reported after the mapped ones,
            for example VIRTUAL columns produced by a join
    """

    def __init__(self, mapper: 'Mapper', record_type: type,
                 ignored_field_names: Iterable[str] = (),
                 additional_columns: Iterable[Column] = ()) -> None:
        self._mapper = mapper
        self._record_type = record_type
        self._ignored_field_names = frozenset(ignored_field_names)
        self._table = self.get_table(record_type)
        self._id_property: _Property | None = None

        properties = []
        index_builder = IndexSpecBuilder()
        for field in mapper.fields_of(record_type):
            if self.is_ignored(field):
                continue
            converter = self.get_field_converter(field)
            column_type = converter.column_type
            if column_type is None:
                logger.debug(f'Skipping field {field.name} of {record_type.__name__}')
                continue
            prop = _Property(field, converter, column_type)
            properties.append(prop)
            if self._id_property is None and field.column == mapper.options.id_column:
                self._id_property = prop
            if field.index is not None:
                index_builder.add_indexed_column(self._table, field.column, field.index)
        self._properties = tuple(properties)
        self._columns = [Column(p.column, p.column_type) for p in properties]
        self._columns += list(additional_columns)

        duplicates = list(more_itertools.duplicates_everseen(
            col.name.lower() for col in self._columns))
        if duplicates:
            raise MappingError(f'Record {record_type.__name__} maps more than one field '
                               f'to column {duplicates[0]}')
        self._index_specs = index_builder.build()

    def get_table(self, record_type: type) -> str:
        """Table name for the record type; the class name by default."""
        return record_type.__name__

    def is_ignored(self, field: FieldSpec) -> bool:
        """Check if a field is left out of the mapping.

        Directive-based exclusions have already been applied by the mapper.
        """
        return field.name in self._ignored_field_names

    def get_field_converter(self, field: FieldSpec) -> FieldConverter:
        """Resolve the converter for a field.

        Raises
            UnsupportedTypeError: no converter exists for the field's type
        """
        try:
            return self._mapper.resolve_field_converter(field.type)
        except UnsupportedTypeError as e:
            raise UnsupportedTypeError(
                f"don't know how to convert field {field.name} of record "
                f'{self._record_type.__name__} of type {field.type!r}', field.type) from e

    @property
    def record_type(self) -> type:
        return self._record_type

    @property
    def table(self) -> str:
        return self._table

    @property
    def columns(self) -> list[Column]:
        return list(self._columns)

    @property
    def index_specs(self) -> list[IndexSpec]:
        return list(self._index_specs)

    def _default_for(self, field: FieldSpec) -> Any:
        dataclass_fields = getattr(self._record_type, '__dataclass_fields__', {})
        declared = dataclass_fields.get(field.name)
        if declared is not None:
            if declared.default is not dataclasses.MISSING:
                return declared.default
            if declared.default_factory is not dataclasses.MISSING:
                return declared.default_factory()
        else:
            value = getattr(self._record_type, field.name, _MISSING)
            if value is not _MISSING and not callable(value):
                return value
        if field.is_primitive:
            return zero_values[field.type]
        return None

    def new_instance(self) -> Any:
        """Create a record without calling its constructor.

        Fields get their declared defaults, zero values for non-nullable
        scalars, or None.
        """
        instance = self._record_type.__new__(self._record_type)
        for field in self._mapper.fields_of(self._record_type):
            object.__setattr__(instance, field.name, self._default_for(field))
        return instance

    def from_row(self, row) -> Any:
        instance = self.new_instance()
        count = min(row.column_count, len(self._properties))
        for index in range(count):
            prop = self._properties[index]
            if row.is_null(index):
                if not prop.field.is_primitive:
                    object.__setattr__(instance, prop.field.name, None)
                continue
            value = prop.converter.from_row_value(row, index)
            object.__setattr__(instance, prop.field.name, value)
        return instance

    def to_row(self, instance: Any) -> dict[str, Any]:
        values = {}
        for prop in self._properties:
            if prop.column_type is ColumnType.VIRTUAL:
                continue
            value = getattr(instance, prop.field.name, None)
            if value is None:
                if prop is not self._id_property:
                    values[prop.column] = None
                continue
            values[prop.column] = prop.converter.to_row_value(value)
        return values

    def get_id(self, instance: Any) -> int | None:
        if self._id_property is None:
            return None
        return getattr(instance, self._id_property.field.name, None)

    def set_id(self, instance: Any, id: int | None) -> None:
        if self._id_property is not None:
            object.__setattr__(instance, self._id_property.field.name, id)


class ReflectiveRecordConverterFactory(RecordConverterFactory):
    """Default record factory, answering for any class."""

    def create(self, mapper: 'Mapper', record_type: type) -> RecordConverter | None:
        if not is_class(record_type):
            return None
        return ReflectiveRecordConverter(mapper, record_type)
