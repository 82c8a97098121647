"""
Converters between record instances, field values and row cells.
"""
from tablemap.convert.base import FieldConverter as FieldConverter
from tablemap.convert.base import FieldConverterFactory as FieldConverterFactory
from tablemap.convert.base import RecordConverter as RecordConverter
from tablemap.convert.base import RecordConverterFactory as RecordConverterFactory
from tablemap.convert.reflective import ReflectiveRecordConverter as ReflectiveRecordConverter
from tablemap.convert.registry import ConverterRegistry as ConverterRegistry
