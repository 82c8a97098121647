"""
Mapping and schema exception classes.
"""
import sqlite3

import sqlalchemy.exc


class MappingError(Exception):
    """Base class for all tablemap errors.
    """


class UnsupportedTypeError(MappingError):
    """No registered factory could build a converter for a type.

    Never cached; a later factory registration can make a retry succeed.
    """

    def __init__(self, message: str, target: type | None = None) -> None:
        super().__init__(message)
        self.target = target


class UnregisteredTypeError(MappingError):
    """A record type was used before it was registered on the mapper.
    """

    def __init__(self, target: type) -> None:
        name = getattr(target, '__name__', repr(target))
        super().__init__(f'Record type {name} has not been registered')
        self.target = target


class IndexDefinitionConflict(MappingError):
    """Index directives contradict each other, within a record type or across tables.
    """


class SchemaApplyFailure(MappingError):
    """The storage engine rejected a DDL statement.
    """

    def __init__(self, sql: str, cause: BaseException) -> None:
        super().__init__(f'Failed to apply schema change: {sql} ({cause})')
        self.sql = sql


class IllegalStateError(MappingError):
    """A converter placeholder was used before its delegate was wired.
    """


ProgrammingError = (
    sqlite3.ProgrammingError,
    sqlite3.DatabaseError,
    sqlalchemy.exc.ProgrammingError,
    sqlalchemy.exc.DatabaseError,
    )

OperationalError = (
    sqlite3.OperationalError,
    sqlalchemy.exc.OperationalError,
    )

IntegrityError = (
    sqlite3.IntegrityError,
    sqlalchemy.exc.IntegrityError,
    )

EngineError = ProgrammingError + OperationalError + IntegrityError
