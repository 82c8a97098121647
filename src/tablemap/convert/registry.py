"""
Cycle-safe converter resolution.

Record types may refer to each other (A has a field of type B, B one of type
A). Building A's converter resolves a field converter for B, which builds B's
record converter, which asks for A again. To terminate, every resolution first
publishes a forwarding placeholder for its type in a per-thread in-flight map;
a nested request for the same type gets the placeholder, and the placeholder is
wired to the real converter once construction finishes.

Failures are never cached. When a construction fails, everything cached while
it was in flight is discarded as well, since those converters may hold the
failed placeholder.
"""
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from tablemap.convert.base import FieldConverter, FieldConverterFactory
from tablemap.convert.base import RecordConverter, RecordConverterFactory
from tablemap.convert.enums import EnumFieldConverterFactory
from tablemap.convert.fields import DefaultFieldConverterFactory
from tablemap.convert.references import RecordFieldConverterFactory
from tablemap.convert.references import RecordReferenceConverter
from tablemap.convert.reflective import ReflectiveRecordConverterFactory
from tablemap.exceptions import IllegalStateError, UnsupportedTypeError

if TYPE_CHECKING:
    from tablemap.mapper import Mapper

logger = logging.getLogger(__name__)

__all__ = [
    'ConverterRegistry',
    'ForwardingFieldConverter',
    'ForwardingRecordConverter',
    'SingleTypeFieldConverterFactory',
]


def _type_name(target: Any) -> str:
    return getattr(target, '__name__', repr(target))


class _Forwarding:
    """Delegate holder shared by both placeholder kinds."""

    def __init__(self, target: Any) -> None:
        self.target = target
        self._delegate = None

    @property
    def delegate(self):
        if self._delegate is None:
            raise IllegalStateError(
                f'Converter for {_type_name(self.target)} is still being built and cannot be used yet')
        return self._delegate

    @property
    def is_wired(self) -> bool:
        return self._delegate is not None

    def set_delegate(self, delegate) -> None:
        if self._delegate is not None:
            raise IllegalStateError(f'Delegate for {_type_name(self.target)} is already set')
        self._delegate = delegate


class ForwardingFieldConverter(_Forwarding, FieldConverter):
    """Placeholder handed out while a field converter is under construction."""

    def from_row_value(self, row, index: int) -> Any:
        return self.delegate.from_row_value(row, index)

    def to_row_value(self, value: Any) -> Any:
        return self.delegate.to_row_value(value)

    @property
    def column_type(self):
        return self.delegate.column_type


class ForwardingRecordConverter(_Forwarding, RecordConverter):
    """Placeholder handed out while a record converter is under construction."""

    @property
    def table(self) -> str:
        return self.delegate.table

    @property
    def columns(self):
        return self.delegate.columns

    def from_row(self, row) -> Any:
        return self.delegate.from_row(row)

    def to_row(self, instance: Any) -> dict[str, Any]:
        return self.delegate.to_row(instance)

    def get_id(self, instance: Any) -> int | None:
        return self.delegate.get_id(instance)

    def set_id(self, instance: Any, id: int | None) -> None:
        self.delegate.set_id(instance, id)

    def new_instance(self) -> Any:
        return self.delegate.new_instance()

    @property
    def index_specs(self):
        return self.delegate.index_specs


class SingleTypeFieldConverterFactory(FieldConverterFactory):
    """Factory answering with one fixed converter for one exact type."""

    def __init__(self, field_type: Any, converter: FieldConverter) -> None:
        self.field_type = field_type
        self.converter = converter

    def create(self, mapper, field_type: Any) -> FieldConverter | None:
        if field_type == self.field_type:
            return self.converter
        return None


class ConverterRegistry:
    """Factories and caches of record and field converters for one mapper.

    Factories are consulted most recently registered first; the defaults come
    last. Registering a factory affects later resolutions only.
    """

    def __init__(self, mapper: 'Mapper',
                 record_factories: list[RecordConverterFactory] | None = None,
                 field_factories: list[FieldConverterFactory] | None = None) -> None:
        self._mapper = mapper
        if record_factories is None:
            record_factories = [ReflectiveRecordConverterFactory()]
        if field_factories is None:
            field_factories = [
                DefaultFieldConverterFactory(),
                EnumFieldConverterFactory(),
                RecordFieldConverterFactory(),
                ]
        self._record_factories = list(record_factories)
        self._field_factories = list(field_factories)
        self._record_converters: dict[Any, RecordConverter] = {}
        self._field_converters: dict[Any, FieldConverter] = {}
        self._local = threading.local()

    @property
    def record_factories(self) -> list[RecordConverterFactory]:
        return list(self._record_factories)

    @property
    def field_factories(self) -> list[FieldConverterFactory]:
        return list(self._field_factories)

    def register_record_converter_factory(self, factory: RecordConverterFactory) -> None:
        self._record_factories.insert(0, factory)
        logger.debug(f'Registered record converter factory {type(factory).__name__}')

    def register_field_converter_factory(self, factory: FieldConverterFactory) -> None:
        self._field_factories.insert(0, factory)
        logger.debug(f'Registered field converter factory {type(factory).__name__}')

    def register_field_converter(self, field_type: Any, converter: FieldConverter) -> None:
        """Use `converter` for fields of exactly `field_type`.
        """
        self.register_field_converter_factory(SingleTypeFieldConverterFactory(field_type, converter))

    def _state(self) -> threading.local:
        """Per-thread in-flight placeholders and open construction frames."""
        if not hasattr(self._local, 'frames'):
            self._local.records = {}
            self._local.fields = {}
            self._local.frames = []
        return self._local

    def resolve_record_converter(self, record_type: type) -> RecordConverter:
        """Return the converter for a record type, building it on first use.

        Raises
            UnsupportedTypeError: no factory can build one
        """
        return self._resolve(record_type, self._record_converters, self._state().records,
                             ForwardingRecordConverter, self._record_factories, 'record')

    def resolve_field_converter(self, field_type: Any) -> FieldConverter:
        """Return the converter for a field type, building it on first use.

        A registered record type whose field converter is itself still in
        flight resolves to a reference over its record converter, so that a
        record type pointing back at itself can read its column type.

        Raises
            UnsupportedTypeError: no factory can build one
        """
        state = self._state()
        if (field_type in state.fields and field_type not in self._field_converters
                and self._mapper.is_registered(field_type)):
            logger.debug(f'Cycle on {_type_name(field_type)}, returning reference over record converter')
            return RecordReferenceConverter(field_type, self.resolve_record_converter(field_type))
        return self._resolve(field_type, self._field_converters, state.fields,
                             ForwardingFieldConverter, self._field_factories, 'field')

    def _resolve(self, target: Any, cache: dict, in_flight: dict,
                 placeholder_cls: Callable[[Any], _Forwarding],
                 factories: list, kind: str):
        converter = cache.get(target)
        if converter is not None:
            return converter

        placeholder = in_flight.get(target)
        if placeholder is not None:
            logger.debug(f'Cycle on {_type_name(target)}, returning {kind} placeholder')
            return placeholder

        state = self._state()
        placeholder = placeholder_cls(target)
        in_flight[target] = placeholder
        frame: list[tuple[dict, Any]] = []
        state.frames.append(frame)
        try:
            converter = self._create(factories, target)
            if converter is None:
                raise UnsupportedTypeError(
                    f'No {kind} converter for type {_type_name(target)}', target)
            placeholder.set_delegate(converter)
        except Exception:
            for owner, key in frame:
                owner.pop(key, None)
            if frame:
                logger.debug(f'Discarded {len(frame)} converters built for {_type_name(target)}')
            raise
        finally:
            state.frames.pop()
            del in_flight[target]

        cache[target] = converter
        for open_frame in state.frames:
            open_frame.append((cache, target))
        logger.debug(f'Built {kind} converter {type(converter).__name__} for {_type_name(target)}')
        return converter

    def _create(self, factories: list, target: Any, skip_past: Any = None):
        start = 0
        if skip_past is not None:
            positions = [i for i, factory in enumerate(factories) if factory is skip_past]
            if not positions:
                raise ValueError(f'{type(skip_past).__name__} is not a registered factory')
            start = positions[0] + 1
        for factory in factories[start:]:
            converter = factory.create(self._mapper, target)
            if converter is not None:
                return converter
        return None

    def delegate_record_converter(self, skip_past: RecordConverterFactory,
                                  record_type: type) -> RecordConverter:
        """Build a record converter using only the factories after `skip_past`.

        Lets a factory wrap the converter it would otherwise have shadowed.
        The result is not cached.
        """
        converter = self._create(self._record_factories, record_type, skip_past)
        if converter is None:
            raise UnsupportedTypeError(
                f'No record converter for type {_type_name(record_type)}', record_type)
        return converter

    def delegate_field_converter(self, skip_past: FieldConverterFactory,
                                 field_type: Any) -> FieldConverter:
        """Build a field converter using only the factories after `skip_past`.
        """
        converter = self._create(self._field_factories, field_type, skip_past)
        if converter is None:
            raise UnsupportedTypeError(
                f'No field converter for type {_type_name(field_type)}', field_type)
        return converter
