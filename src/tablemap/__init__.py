"""
Record-to-row mapping with additive schema synchronization for SQLite.

Schema operations can be called either as:
- Module functions: tablemap.upgrade_tables(mapper, cn)
- SchemaReconciler methods: mapper.with_database(cn).upgrade_tables()
"""
__version__ = '0.1.0'

from tablemap.annotations import CompositeIndex, Ignore, Index, IndexBuilder
from tablemap.annotations import Rename, Transient
from tablemap.connection import ConnectionWrapper, connect
from tablemap.convert import FieldConverter, FieldConverterFactory
from tablemap.convert import RecordConverter, RecordConverterFactory
from tablemap.convert import ReflectiveRecordConverter
from tablemap.cursor import ColumnOrderView, ResultCursor, iter_records
from tablemap.exceptions import IllegalStateError, IndexDefinitionConflict
from tablemap.exceptions import IntegrityError, MappingError, OperationalError
from tablemap.exceptions import ProgrammingError, SchemaApplyFailure
from tablemap.exceptions import UnregisteredTypeError, UnsupportedTypeError
from tablemap.indexes import IndexColumn, IndexSpec, IndexSpecBuilder
from tablemap.mapper import Mapper, MapperBuilder
from tablemap.options import DatabaseOptions, MapperOptions
from tablemap.schema import SchemaReconciler
from tablemap.transaction import Transaction as transaction
from tablemap.types import Column, ColumnType


def create_tables(mapper: Mapper, cn: ConnectionWrapper) -> list[str]:
    """Create missing tables of the mapper's registered types.
    """
    return mapper.with_database(cn).create_tables()


def upgrade_tables(mapper: Mapper, cn: ConnectionWrapper) -> list[str]:
    """Create missing tables, add missing columns and reconcile indexes.
    """
    return mapper.with_database(cn).upgrade_tables()


def drop_all_tables(mapper: Mapper, cn: ConnectionWrapper) -> list[str]:
    """Drop the tables of the mapper's registered types.
    """
    return mapper.with_database(cn).drop_all_tables()


def drop_all_indices(mapper: Mapper, cn: ConnectionWrapper) -> list[str]:
    """Drop all explicit indexes on the tables of registered types.
    """
    return mapper.with_database(cn).drop_all_indices()


__all__ = [
    'Column',
    'ColumnOrderView',
    'ColumnType',
    'CompositeIndex',
    'ConnectionWrapper',
    'DatabaseOptions',
    'FieldConverter',
    'FieldConverterFactory',
    'Ignore',
    'IllegalStateError',
    'Index',
    'IndexBuilder',
    'IndexColumn',
    'IndexDefinitionConflict',
    'IndexSpec',
    'IndexSpecBuilder',
    'IntegrityError',
    'Mapper',
    'MapperBuilder',
    'MapperOptions',
    'MappingError',
    'OperationalError',
    'ProgrammingError',
    'RecordConverter',
    'RecordConverterFactory',
    'ReflectiveRecordConverter',
    'Rename',
    'ResultCursor',
    'SchemaApplyFailure',
    'SchemaReconciler',
    'Transient',
    'UnregisteredTypeError',
    'UnsupportedTypeError',
    'connect',
    'create_tables',
    'drop_all_indices',
    'drop_all_tables',
    'iter_records',
    'transaction',
    'upgrade_tables',
]
