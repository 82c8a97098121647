"""
Fields that refer to another registered record type.

Only the target's id is stored. Reading creates an empty target instance with
just its id set.
"""
import logging
from typing import Any

from tablemap.convert.base import FieldConverter, FieldConverterFactory
from tablemap.convert.base import RecordConverter
from tablemap.types import ColumnType, is_class

logger = logging.getLogger(__name__)


class RecordReferenceConverter(FieldConverter):
    """Store a reference to a record as the record's id.

    The record converter may still be a placeholder while a cyclic graph of
    record types is being resolved; it is only used once rows are converted.
    """

    def __init__(self, record_type: type, record_converter: RecordConverter) -> None:
        self.record_type = record_type
        self.record_converter = record_converter

    def from_row_value(self, row, index: int) -> Any:
        instance = self.record_converter.new_instance()
        self.record_converter.set_id(instance, row.get_int(index))
        return instance

    def to_row_value(self, value: Any) -> int | None:
        return self.record_converter.get_id(value)

    @property
    def column_type(self) -> ColumnType:
        return ColumnType.INTEGER


class RecordFieldConverterFactory(FieldConverterFactory):
    """Reference converters for record types registered on the mapper."""

    def create(self, mapper, field_type: Any) -> FieldConverter | None:
        if not is_class(field_type) or not mapper.is_registered(field_type):
            return None
        logger.debug(f'Reference converter for {field_type.__name__}')
        return RecordReferenceConverter(field_type, mapper.resolve_record_converter(field_type))
