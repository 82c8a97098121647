"""
Base strategy interface for schema operations.

A strategy encapsulates the dialect-specific SQL the schema reconciler needs:
introspection of live columns and indexes, DDL text, and transaction control.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from tablemap.sql import quote_identifier as sql_quote_identifier
from tablemap.types import Column, ColumnType

if TYPE_CHECKING:
    from tablemap.connection import ConnectionWrapper
    from tablemap.options import DatabaseOptions

logger = logging.getLogger(__name__)

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['SchemaStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('sqlite')
        class SQLiteStrategy(SchemaStrategy):
            ...
    """
    def decorator(cls: type['SchemaStrategy']) -> type['SchemaStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class SchemaStrategy(ABC):
    """Base class for dialect-specific schema operations.
    """

    @contextmanager
    def _cursor(self, cn: 'ConnectionWrapper', sql: str, params: tuple | None = None):
        """Context manager for cursor lifecycle.
        """
        cursor = cn.dbapi_connection.cursor()
        try:
            cursor.execute(sql, params or ())
            yield cursor
        finally:
            cursor.close()

    def _execute_raw(self, cn: 'ConnectionWrapper', sql: str,
                     params: tuple | None = None) -> int:
        """Execute SQL and return rowcount.
        """
        with self._cursor(cn, sql, params) as cursor:
            return cursor.rowcount

    def _select_raw(self, cn: 'ConnectionWrapper', sql: str,
                    params: tuple | None = None) -> list[dict]:
        """Execute SQL and return results as list of dicts.
        """
        with self._cursor(cn, sql, params) as cursor:
            if cursor.description is None:
                return []
            columns = [desc[0] for desc in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def _select_column_raw(self, cn: 'ConnectionWrapper', sql: str,
                           params: tuple | None = None) -> list:
        """Execute SQL and return first column as list.
        """
        with self._cursor(cn, sql, params) as cursor:
            return [row[0] for row in cursor.fetchall()]

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier."""

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Raise ValueError if options lack what this dialect needs.
        """

    def quote_identifier(self, identifier: str) -> str:
        """Quote a table or column name.
        """
        return sql_quote_identifier(identifier)

    def column_type_sql(self, column_type: ColumnType) -> str:
        """Declared SQL type for a column type.
        """
        if not column_type.is_storable:
            raise ValueError(f'{column_type.name} columns are not stored')
        return column_type.value

    @abstractmethod
    def configure_connection(self, raw_conn: Any) -> None:
        """Apply connection settings right after connecting.
        """

    @abstractmethod
    def begin_transaction(self, cn: 'ConnectionWrapper') -> None:
        pass

    @abstractmethod
    def commit_transaction(self, cn: 'ConnectionWrapper') -> None:
        pass

    @abstractmethod
    def rollback_transaction(self, cn: 'ConnectionWrapper') -> None:
        pass

    @abstractmethod
    def get_columns(self, cn: 'ConnectionWrapper', table: str,
                    bypass_cache: bool = False) -> tuple[str, ...]:
        """Get all column names of a table; empty when the table does not exist.

        Args:
            cn: Database connection object
            table: Table name
            bypass_cache: Read the live schema instead of cached metadata
        """

    @abstractmethod
    def get_indexes(self, cn: 'ConnectionWrapper', table: str,
                    bypass_cache: bool = False) -> tuple[tuple[str, str], ...]:
        """Get (name, sql) of every explicitly created index on a table.

        Indexes the engine creates on its own (primary key and unique
        constraints) are not included.
        """

    def create_table_sql(self, table: str, id_column: str, columns: list[Column]) -> str:
        """Build CREATE TABLE with an autoincrement id and the stored columns.
        """
        definitions = [f'{self.quote_identifier(id_column)} INTEGER PRIMARY KEY AUTOINCREMENT']
        definitions += [
            f'{self.quote_identifier(col.name)} {self.column_type_sql(col.type)}'
            for col in columns
            if not col.is_virtual and col.name.lower() != id_column.lower()
            ]
        return f"CREATE TABLE {self.quote_identifier(table)} ({', '.join(definitions)})"

    def add_column_sql(self, table: str, column: Column) -> str:
        return (f'ALTER TABLE {self.quote_identifier(table)} ADD COLUMN '
                f'{self.quote_identifier(column.name)} {self.column_type_sql(column.type)}')

    def drop_table_sql(self, table: str) -> str:
        return f'DROP TABLE IF EXISTS {self.quote_identifier(table)}'

    def drop_index_sql(self, index: str) -> str:
        return f'DROP INDEX IF EXISTS {self.quote_identifier(index)}'
