"""
Database connection handling with SQLAlchemy.

This module provides:
1. The `connect()` function for creating new database connections
2. The `ConnectionWrapper` class the schema reconciler talks to
3. Engine creation and management through a thread-safe registry

SQLAlchemy owns engines and connection pooling; statements run on the
underlying DBAPI connection, which is kept in autocommit mode so that
transactions are started explicitly (see `tablemap.transaction`).
"""
import atexit
import itertools
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import fields
from functools import wraps
from typing import Any, Self

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from tablemap.cursor import ResultCursor
from tablemap.options import DatabaseOptions
from tablemap.strategy import get_db_strategy
from tablemap.utils import get_dialect_name

from libb import load_options

__all__ = [
    'ConnectionWrapper',
    'connect',
    'configure_connection',
    'create_url_from_options',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()
_connection_ids = itertools.count(1)


def create_url_from_options(options: DatabaseOptions,
                            url_creator: Callable[..., sa.URL] = sa.URL.create) -> sa.URL:
    """Convert DatabaseOptions to SQLAlchemy URL.
    """
    if options.drivername == 'sqlite':
        query = {}
        if options.timeout:
            query['timeout'] = str(options.timeout)
        return url_creator(drivername='sqlite', database=options.database, query=query)

    raise ValueError(f'Unsupported database type: {options.drivername}')


def get_engine_for_options(options: DatabaseOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.
    """
    key = str(options)

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        url = create_url_from_options(options)

        engine_kwargs: dict[str, Any] = {'echo': False}
        if not options.use_pool:
            engine_kwargs['poolclass'] = NullPool
        else:
            engine_kwargs['pool_size'] = options.pool_max_connections
            engine_kwargs['pool_recycle'] = options.pool_max_idle_time
            engine_kwargs['pool_timeout'] = options.pool_wait_timeout
            engine_kwargs['pool_pre_ping'] = True
            engine_kwargs['pool_reset_on_return'] = 'rollback'
        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in _engine_registry.values():
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


def dumpsql(func):
    """Decorator for logging SQL statements, parameters and timing."""
    @wraps(func)
    def wrapper(self, sql: str, *args: Any):
        start = time.time()
        logger.debug(f'SQL:\n{sql}\nargs: {args}')
        try:
            return func(self, sql, *args)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{sql}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            self.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class ConnectionWrapper:
    """Wraps a SQLAlchemy connection object to track calls and execution time

    This class provides a thin wrapper around SQLAlchemy connection objects that:
    1. Runs statements on the underlying DBAPI connection
    2. Tracks query execution counts and timing
    3. Exposes live table metadata through the dialect strategy
    4. Supports context manager protocol for explicit resource management
    """

    def __init__(self, sa_connection: sa.engine.Connection,
                 options: DatabaseOptions | None = None) -> None:
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine
        self.options = options
        self.dbapi_connection = sa_connection.connection.dbapi_connection
        self._dialect = get_dialect_name(sa_connection)
        self.uid = next(_connection_ids)
        self.calls = 0
        self.time = 0
        self.in_transaction = False

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        """Return the connection to the pool when exiting the context manager
        """
        self.close()

    def __getattr__(self, name: str) -> Any:
        """Delegate attribute access to the SQLAlchemy connection.
        """
        return getattr(self.sa_connection, name)

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    @property
    def dialect(self) -> str:
        """Return the dialect name."""
        return self._dialect

    @property
    def closed(self) -> bool:
        return self.sa_connection.closed

    @dumpsql
    def execute(self, sql: str, *args: Any) -> int:
        """Execute a statement and return the affected row count.
        """
        cursor = self.dbapi_connection.cursor()
        try:
            cursor.execute(sql, args)
            return cursor.rowcount
        finally:
            cursor.close()

    @dumpsql
    def query(self, sql: str, *args: Any) -> ResultCursor:
        """Execute a query and return its rows in a ResultCursor.
        """
        cursor = self.dbapi_connection.cursor()
        try:
            cursor.execute(sql, args)
            return ResultCursor.from_dbapi(cursor)
        finally:
            cursor.close()

    def commit(self) -> None:
        self.dbapi_connection.commit()

    def rollback(self) -> None:
        self.dbapi_connection.rollback()

    def close(self) -> None:
        """Close the SQLAlchemy connection.
        """
        if self.sa_connection.closed:
            return
        self.sa_connection.close()
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s '
                     f'(avg: {self.time/max(1, self.calls):.3f}s per query)')

    def get_table_columns(self, table: str, bypass_cache: bool = False) -> list[str]:
        """Get all column names of a table; empty when the table does not exist.
        """
        strategy = get_db_strategy(self)
        return list(strategy.get_columns(self, table, bypass_cache=bypass_cache))

    def get_table_indexes(self, table: str, bypass_cache: bool = False) -> dict[str, str]:
        """Get creation SQL of the explicit indexes on a table, keyed by index name.
        """
        strategy = get_db_strategy(self)
        return dict(strategy.get_indexes(self, table, bypass_cache=bypass_cache))

    def table_exists(self, table: str) -> bool:
        return bool(self.get_table_columns(table, bypass_cache=True))


def configure_connection(sa_connection: sa.engine.Connection) -> None:
    """Configure a SQLAlchemy connection with database-specific settings.
    """
    strategy = get_db_strategy(sa_connection)
    strategy.configure_connection(sa_connection.connection.dbapi_connection)


@load_options(cls=DatabaseOptions)
def connect(options: DatabaseOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> ConnectionWrapper:
    """Connect to a database using SQLAlchemy for connection management

    Args:
        options: Can be:
                - DatabaseOptions object
                - String path to configuration
                - Dictionary of options
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        ConnectionWrapper object for connecting to the database
    """
    if isinstance(options, DatabaseOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=DatabaseOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    engine = get_engine_for_options(options)

    sa_connection = engine.connect()
    configure_connection(sa_connection)

    return ConnectionWrapper(sa_connection, options)
