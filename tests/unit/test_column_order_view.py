import pytest
from tablemap import ColumnOrderView, Mapper, ResultCursor, iter_records

from tests.fixtures.records import Author


@pytest.fixture
def source():
    """Cursor with columns b, a positioned on its first row"""
    cursor = ResultCursor(['b', 'a'], [(2, 1), (4, 3)])
    cursor.move_to_first()
    return cursor


def test_reorders_columns(source):
    view = ColumnOrderView(source, ['a', 'b'])

    assert view.column_names == ['a', 'b']
    assert view.get_int(0) == 1
    assert view.get_int(1) == 2


def test_missing_middle_column_reads_null(source):
    view = ColumnOrderView(source, ['a', 'x', 'b'])

    assert view.column_count == 3
    assert view.is_null(1)
    assert view.get_value(1) is None
    assert view.get_int(1) == 0
    assert view.get_float(1) == 0.0
    assert view.get_str(1) is None
    assert view.get_bytes(1) is None
    assert view.get_int(2) == 2


def test_trailing_missing_columns_are_truncated(source):
    view = ColumnOrderView(source, ['a', 'b', 'c'])

    assert view.column_names == ['a', 'b']
    assert view.column_count == 2
    assert view.is_null(2)


def test_no_present_columns(source):
    view = ColumnOrderView(source, ['x', 'y'])

    assert view.column_names == []
    assert view.column_count == 0


def test_lookup_ignores_case(source):
    view = ColumnOrderView(source, ['A', 'B'])

    assert view.get_int(0) == 1
    assert view.get_column_index('a') == 0


def test_navigation_is_delegated(source):
    view = ColumnOrderView(source, ['a'])

    assert view.move_to_next()
    assert view.get_int(0) == 3
    assert not view.move_to_next()
    assert view.is_after_last()


def test_result_cursor_requires_position():
    cursor = ResultCursor(['a'], [(1,)])
    with pytest.raises(IndexError):
        cursor.get_value(0)
    assert cursor.move_to_first()
    assert cursor.get_str(0) == '1'


def test_iter_records_closes_cursor():
    m = Mapper()
    m.register(Author)
    converter = m.resolve_record_converter(Author)
    cursor = ResultCursor(['name', '_id', 'extra'], [('Ann', 1, 'x'), ('Bob', 2, 'y')])

    authors = list(iter_records(cursor, converter))

    assert authors == [Author(_id=1, name='Ann'), Author(_id=2, name='Bob')]
    assert cursor.closed


def test_iter_records_with_subset_of_columns():
    m = Mapper()
    m.register(Author)
    cursor = ResultCursor(['_id'], [(5,)])

    assert list(m.iter_records(cursor, Author)) == [Author(_id=5)]


if __name__ == '__main__':
    __import__('pytest').main([__file__])
