"""
SQLite-specific strategy implementation.

Handles SQLite's particulars:
- Metadata retrieval using the pragma_table_info table-valued function
- Index DDL read back from sqlite_master (NULL sql marks automatic indexes)
- Autocommit connections with explicit BEGIN/COMMIT/ROLLBACK
"""
import logging
from typing import TYPE_CHECKING, Any

from tablemap.cache import cacheable_strategy
from tablemap.strategy.base import SchemaStrategy, register_strategy

if TYPE_CHECKING:
    from tablemap.connection import ConnectionWrapper
    from tablemap.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('sqlite')
class SQLiteStrategy(SchemaStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        if not options.database:
            raise ValueError('database is required for sqlite (use :memory: for an in-memory database)')

    def configure_connection(self, raw_conn: Any) -> None:
        """Configure connection settings for SQLite.

        Autocommit mode lets transactions be started explicitly, so DDL runs
        inside them.
        """
        raw_conn.isolation_level = None
        raw_conn.execute('PRAGMA foreign_keys = ON')

    def begin_transaction(self, cn: 'ConnectionWrapper') -> None:
        self._execute_raw(cn, 'BEGIN')

    def commit_transaction(self, cn: 'ConnectionWrapper') -> None:
        self._execute_raw(cn, 'COMMIT')

    def rollback_transaction(self, cn: 'ConnectionWrapper') -> None:
        self._execute_raw(cn, 'ROLLBACK')

    @cacheable_strategy('table_columns', ttl=300)
    def get_columns(self, cn: 'ConnectionWrapper', table: str) -> tuple[str, ...]:
        """Get all columns for a table in declaration order.
        """
        sql = 'SELECT name FROM pragma_table_info(?) ORDER BY cid'
        return tuple(self._select_column_raw(cn, sql, (table,)))

    @cacheable_strategy('table_indexes', ttl=300)
    def get_indexes(self, cn: 'ConnectionWrapper', table: str) -> tuple[tuple[str, str], ...]:
        """Get name and creation SQL of the explicit indexes on a table.
        """
        sql = """
SELECT name, sql FROM sqlite_master
WHERE type = 'index' AND lower(tbl_name) = lower(?) AND sql IS NOT NULL
ORDER BY name
"""
        rows = self._select_raw(cn, sql, (table,))
        return tuple((row['name'], row['sql']) for row in rows)
