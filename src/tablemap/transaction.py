"""
Transaction handling for schema changes.
"""
import logging
import threading
from typing import Any

from tablemap.cursor import ResultCursor
from tablemap.strategy import get_db_strategy

logger = logging.getLogger(__name__)


_local = threading.local()


class Transaction:
    """Context manager for running multiple commands in a transaction.

    This implementation uses thread-local storage to track transaction state,
    making it safe to use in multi-threaded environments. Each thread can have
    its own transaction for the same connection, but nested transactions within
    the same thread are not supported.

    Examples
        with Transaction(cn) as tx:
            tx.execute('ALTER TABLE ...')
            tx.execute('CREATE INDEX ...')
    """

    def __init__(self, cn: Any) -> None:
        self.connection = cn
        self.strategy = get_db_strategy(cn)

        if not hasattr(_local, 'active_transactions'):
            _local.active_transactions = {}

        if id(cn) in _local.active_transactions:
            raise RuntimeError('Nested transactions are not supported')

    def __enter__(self):
        _local.active_transactions[id(self.connection)] = True
        try:
            self.strategy.begin_transaction(self.connection)
        except Exception:
            _local.active_transactions.pop(id(self.connection), None)
            raise
        self.connection.in_transaction = True
        logger.debug(f'Started transaction for connection {id(self.connection)}')
        return self

    def __exit__(self, exc_type: type | None, value: Exception | None, traceback: Any | None) -> None:
        try:
            if exc_type is not None:
                self.strategy.rollback_transaction(self.connection)
                logger.warning('Rolling back the current transaction')
            else:
                self.strategy.commit_transaction(self.connection)
                logger.debug(f'Committed transaction for connection {id(self.connection)}')
        finally:
            _local.active_transactions.pop(id(self.connection), None)
            self.connection.in_transaction = False

    def execute(self, sql: str, *args: Any) -> int:
        """Execute SQL within transaction context"""
        return self.connection.execute(sql, *args)

    def query(self, sql: str, *args: Any) -> ResultCursor:
        """Execute a query within transaction context"""
        return self.connection.query(sql, *args)


def is_in_transaction(cn: Any) -> bool:
    """Check if the current thread holds an open transaction on `cn`."""
    return id(cn) in getattr(_local, 'active_transactions', {})
