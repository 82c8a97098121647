"""
Row cursors consumed by record converters.

ResultCursor is a positioned, in-memory cursor over a query result.
ColumnOrderView presents a cursor's columns in the order a record converter
expects, reporting requested columns the source lacks as null.
"""
import logging
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tablemap.convert.base import RecordConverter

logger = logging.getLogger(__name__)

__all__ = [
    'ResultCursor',
    'ColumnOrderView',
    'iter_records',
]


class ResultCursor:
    """Positioned cursor over a fetched result set.

    The cursor starts before the first row; call `move_to_next()` or
    `move_to_first()` before reading values.
    """

    def __init__(self, column_names: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        self._column_names = list(column_names)
        self._rows = list(rows)
        self._position = -1
        self.closed = False

    @classmethod
    def from_dbapi(cls, cursor: Any) -> 'ResultCursor':
        """Fetch all rows of a DB-API cursor into a ResultCursor.
        """
        if cursor.description is None:
            return cls([], [])
        names = [desc[0] for desc in cursor.description]
        return cls(names, cursor.fetchall())

    @property
    def count(self) -> int:
        return len(self._rows)

    @property
    def position(self) -> int:
        return self._position

    @property
    def column_names(self) -> list[str]:
        return list(self._column_names)

    @property
    def column_count(self) -> int:
        return len(self._column_names)

    def get_column_index(self, name: str) -> int:
        """Return the index of a column by name, ignoring case, or -1.
        """
        lowered = name.lower()
        for i, column_name in enumerate(self._column_names):
            if column_name.lower() == lowered:
                return i
        return -1

    def get_column_name(self, index: int) -> str:
        return self._column_names[index]

    def move_to_position(self, position: int) -> bool:
        """Move to an absolute row position.

        Returns
            True if the cursor now points at a row
        """
        if position < 0:
            self._position = -1
            return False
        if position >= self.count:
            self._position = self.count
            return False
        self._position = position
        return True

    def move_to_first(self) -> bool:
        return self.move_to_position(0)

    def move_to_next(self) -> bool:
        return self.move_to_position(self._position + 1)

    def is_after_last(self) -> bool:
        return self._position >= self.count

    def _current(self) -> Sequence[Any]:
        if self.closed:
            raise ValueError('Cursor is closed')
        if not 0 <= self._position < self.count:
            raise IndexError(f'Cursor is not positioned on a row (position {self._position})')
        return self._rows[self._position]

    def get_value(self, index: int) -> Any:
        return self._current()[index]

    def is_null(self, index: int) -> bool:
        return self.get_value(index) is None

    def get_int(self, index: int) -> int:
        """Read a cell as an integer; null reads as 0.

        Raises ValueError for text that is not a number.
        """
        value = self.get_value(index)
        if value is None:
            return 0
        return int(value)

    def get_float(self, index: int) -> float:
        value = self.get_value(index)
        if value is None:
            return 0.0
        return float(value)

    def get_str(self, index: int) -> str | None:
        value = self.get_value(index)
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bytes):
            return value.decode()
        return str(value)

    def get_bytes(self, index: int) -> bytes | None:
        value = self.get_value(index)
        if value is None or isinstance(value, bytes):
            return value
        if isinstance(value, str):
            return value.encode()
        return bytes(value)

    def close(self) -> None:
        self._rows = []
        self.closed = True


class ColumnOrderView:
    """Expose a cursor's columns in a requested order.

    Each requested column maps to its index in the source cursor, or -1 when
    the source lacks it. Absent columns read as null. The visible column list
    ends at the last requested column the source actually has, so converters
    reading a prefix of their columns stop there.

    Row navigation and anything else not overridden is delegated to the
    wrapped cursor.
    """

    def __init__(self, source: ResultCursor, columns: Sequence[str]) -> None:
        self._source = source
        columns = list(columns)
        self._mapping = [source.get_column_index(name) for name in columns]
        last_present = max((i for i, idx in enumerate(self._mapping) if idx != -1), default=-1)
        self._column_names = list(columns[:last_present + 1])
        logger.debug(f'Column mapping {dict(zip(columns, self._mapping))}')

    def __getattr__(self, name: str) -> Any:
        """Delegate navigation to the wrapped cursor."""
        return getattr(self._source, name)

    @property
    def source(self) -> ResultCursor:
        return self._source

    @property
    def column_names(self) -> list[str]:
        return list(self._column_names)

    @property
    def column_count(self) -> int:
        return len(self._column_names)

    def get_column_index(self, name: str) -> int:
        lowered = name.lower()
        for i, column_name in enumerate(self._column_names):
            if column_name.lower() == lowered:
                return i
        return -1

    def get_column_name(self, index: int) -> str:
        return self._column_names[index]

    def _source_index(self, index: int) -> int:
        if 0 <= index < len(self._mapping):
            return self._mapping[index]
        return -1

    def get_value(self, index: int) -> Any:
        source_index = self._source_index(index)
        if source_index == -1:
            return None
        return self._source.get_value(source_index)

    def is_null(self, index: int) -> bool:
        source_index = self._source_index(index)
        if source_index == -1:
            return True
        return self._source.is_null(source_index)

    def get_int(self, index: int) -> int:
        source_index = self._source_index(index)
        if source_index == -1:
            return 0
        return self._source.get_int(source_index)

    def get_float(self, index: int) -> float:
        source_index = self._source_index(index)
        if source_index == -1:
            return 0.0
        return self._source.get_float(source_index)

    def get_str(self, index: int) -> str | None:
        source_index = self._source_index(index)
        if source_index == -1:
            return None
        return self._source.get_str(source_index)

    def get_bytes(self, index: int) -> bytes | None:
        source_index = self._source_index(index)
        if source_index == -1:
            return None
        return self._source.get_bytes(source_index)


def iter_records(cursor: ResultCursor, converter: 'RecordConverter') -> Iterator[Any]:
    """Yield one record per remaining row of `cursor`, closing it when done.
    """
    view = ColumnOrderView(cursor, [col.name for col in converter.columns])
    try:
        while cursor.move_to_next():
            yield converter.from_row(view)
    finally:
        cursor.close()
