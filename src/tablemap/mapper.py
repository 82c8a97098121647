"""
Mapper: the owner of registered record types and their converters.

    mapper = Mapper()
    mapper.register(Book)
    with connect({'database': 'books.db'}) as cn:
        mapper.with_database(cn).upgrade_tables()
"""
import logging
from typing import TYPE_CHECKING, Any, Self

from tablemap.annotations import FieldSpec, inspect_record
from tablemap.convert.base import FieldConverter, FieldConverterFactory
from tablemap.convert.base import RecordConverter, RecordConverterFactory
from tablemap.convert.registry import ConverterRegistry
from tablemap.cursor import ResultCursor, iter_records
from tablemap.exceptions import UnregisteredTypeError
from tablemap.options import MapperOptions
from tablemap.types import is_class

if TYPE_CHECKING:
    from tablemap.connection import ConnectionWrapper
    from tablemap.schema import SchemaReconciler

logger = logging.getLogger(__name__)

__all__ = ['Mapper', 'MapperBuilder']


class Mapper:
    """Registered record types and the registry that converts them.

    Args:
        options: MapperOptions, or None to build them from keyword arguments
        record_factories: Full record factory list, highest priority first
        field_factories: Full field factory list, highest priority first
    """

    def __init__(self, options: MapperOptions | None = None, *,
                 record_factories: list[RecordConverterFactory] | None = None,
                 field_factories: list[FieldConverterFactory] | None = None,
                 **kw: Any) -> None:
        self.options = options or MapperOptions(**kw)
        self._registered: dict[type, tuple[FieldSpec, ...]] = {}
        self._introspected: dict[type, tuple[FieldSpec, ...]] = {}
        self._registry = ConverterRegistry(self, record_factories, field_factories)

    @property
    def registry(self) -> ConverterRegistry:
        return self._registry

    def register(self, record_type: type) -> None:
        """Register a record type; registering it again has no effect.
        """
        if not is_class(record_type):
            raise TypeError(f'Expected a class, got {record_type!r}')
        if record_type in self._registered:
            return
        self._registered[record_type] = self.fields_of(record_type)
        logger.debug(f'Registered record type {record_type.__name__}')

    def is_registered(self, record_type: Any) -> bool:
        return record_type in self._registered

    @property
    def registered_types(self) -> tuple[type, ...]:
        """Registered record types in registration order."""
        return tuple(self._registered)

    def fields_of(self, record_type: type) -> tuple[FieldSpec, ...]:
        """Introspected fields of a record type, computed once per type.
        """
        specs = self._introspected.get(record_type)
        if specs is None:
            specs = inspect_record(record_type, self.options.use_annotations)
            self._introspected[record_type] = specs
        return specs

    def resolve_record_converter(self, record_type: type) -> RecordConverter:
        """Return the converter for a registered record type.

        Raises
            UnregisteredTypeError: the type has not been registered
            UnsupportedTypeError: no factory can convert the type or one of its fields
        """
        if not self.is_registered(record_type):
            raise UnregisteredTypeError(record_type)
        return self._registry.resolve_record_converter(record_type)

    def resolve_field_converter(self, field_type: Any) -> FieldConverter:
        return self._registry.resolve_field_converter(field_type)

    def delegate_record_converter(self, skip_past: RecordConverterFactory,
                                  record_type: type) -> RecordConverter:
        return self._registry.delegate_record_converter(skip_past, record_type)

    def delegate_field_converter(self, skip_past: FieldConverterFactory,
                                 field_type: Any) -> FieldConverter:
        return self._registry.delegate_field_converter(skip_past, field_type)

    def register_record_converter_factory(self, factory: RecordConverterFactory) -> None:
        self._registry.register_record_converter_factory(factory)

    def register_field_converter_factory(self, factory: FieldConverterFactory) -> None:
        self._registry.register_field_converter_factory(factory)

    def register_field_converter(self, field_type: Any, converter: FieldConverter) -> None:
        self._registry.register_field_converter(field_type, converter)

    def get_table(self, record_type: type) -> str:
        """Table name of a registered record type."""
        return self.resolve_record_converter(record_type).table

    def iter_records(self, cursor: ResultCursor, record_type: type):
        """Yield records of `record_type` from the rows of `cursor`."""
        return iter_records(cursor, self.resolve_record_converter(record_type))

    def with_database(self, cn: 'ConnectionWrapper') -> 'SchemaReconciler':
        """Schema operations for the registered types on `cn`."""
        from tablemap.schema import SchemaReconciler
        return SchemaReconciler(self, cn)


class MapperBuilder:
    """Fluent Mapper construction.

    Starting from an existing mapper copies its options, factories and
    registered types.

    Examples
        mapper = MapperBuilder().use_annotations().register_field_converter(
            list, StringListConverter()).build()
    """

    def __init__(self, mapper: Mapper | None = None) -> None:
        self._use_annotations = False
        self._id_column = MapperOptions.id_column
        self._record_factories: list[RecordConverterFactory] | None = None
        self._field_factories: list[FieldConverterFactory] | None = None
        self._registered: tuple[type, ...] = ()
        self._custom: list[tuple[str, tuple]] = []
        if mapper is not None:
            self._use_annotations = mapper.options.use_annotations
            self._id_column = mapper.options.id_column
            self._record_factories = mapper.registry.record_factories
            self._field_factories = mapper.registry.field_factories
            self._registered = mapper.registered_types

    def use_annotations(self) -> Self:
        self._use_annotations = True
        return self

    def id_column(self, name: str) -> Self:
        self._id_column = name
        return self

    def register_record_converter_factory(self, factory: RecordConverterFactory) -> Self:
        self._custom.append(('register_record_converter_factory', (factory,)))
        return self

    def register_field_converter_factory(self, factory: FieldConverterFactory) -> Self:
        self._custom.append(('register_field_converter_factory', (factory,)))
        return self

    def register_field_converter(self, field_type: Any, converter: FieldConverter) -> Self:
        self._custom.append(('register_field_converter', (field_type, converter)))
        return self

    def build(self) -> Mapper:
        options = MapperOptions(use_annotations=self._use_annotations, id_column=self._id_column)
        mapper = Mapper(options, record_factories=self._record_factories,
                        field_factories=self._field_factories)
        for method, args in self._custom:
            getattr(mapper, method)(*args)
        for record_type in self._registered:
            mapper.register(record_type)
        return mapper
