import datetime
import decimal

import pytest
import tablemap
from tablemap import IndexDefinitionConflict, Mapper, SchemaApplyFailure
from tablemap import UnsupportedTypeError

from tests.fixtures.records import Author, Book, Color, Customer, Indexed, Node
from tests.fixtures.records import Shop, Tagged


def _insert(cn, converter, record):
    row = converter.to_row(record)
    columns = ', '.join(f'"{name}"' for name in row)
    placeholders = ', '.join('?' for _ in row)
    cn.execute(f'INSERT INTO "{converter.table}" ({columns}) VALUES ({placeholders})',
               *row.values())


def test_create_tables(sqlite_cn, mapper):
    statements = tablemap.create_tables(mapper, sqlite_cn)

    assert len(statements) == 2
    assert sqlite_cn.get_table_columns('Author') == ['_id', 'name', 'born']
    assert sqlite_cn.get_table_columns('Book') == [
        '_id', 'title', 'pages', 'price', 'rating', 'in_print', 'cover', 'color', 'author']


def test_create_tables_twice_is_a_no_op(sqlite_cn, mapper):
    tablemap.create_tables(mapper, sqlite_cn)
    assert tablemap.create_tables(mapper, sqlite_cn) == []
    assert tablemap.upgrade_tables(mapper, sqlite_cn) == []


def test_create_tables_with_indexes(sqlite_cn, annotated_mapper):
    tablemap.create_tables(annotated_mapper, sqlite_cn)

    indexes = sqlite_cn.get_table_indexes('Indexed', bypass_cache=True)
    assert set(indexes) == {'by_author_year', 'Indexed_title'}
    assert indexes['Indexed_title'].startswith('CREATE UNIQUE INDEX')


def test_create_tables_adds_missing_indexes_only(sqlite_cn, annotated_mapper):
    tablemap.create_tables(annotated_mapper, sqlite_cn)
    sqlite_cn.execute('DROP INDEX "by_author_year"')

    statements = tablemap.create_tables(annotated_mapper, sqlite_cn)

    assert len(statements) == 1
    assert 'by_author_year' in statements[0]


def test_round_trip_through_database(sqlite_cn, mapper):
    tablemap.create_tables(mapper, sqlite_cn)
    converter = mapper.resolve_record_converter(Book)
    book = Book(title='Dune', pages=412, price=decimal.Decimal('9.99'), rating=4.5,
                in_print=True, cover=b'\x01\x02', color=Color.RED, author=Author(_id=7))

    _insert(sqlite_cn, converter, book)
    cursor = sqlite_cn.query('SELECT * FROM "Book"')
    (stored,) = mapper.iter_records(cursor, Book)

    assert stored._id == 1
    book._id = 1
    assert stored == book


def test_upgrade_creates_missing_tables(sqlite_cn, mapper):
    statements = tablemap.upgrade_tables(mapper, sqlite_cn)

    assert [s.split(' (')[0] for s in statements] == [
        'CREATE TABLE "Author"', 'CREATE TABLE "Book"']


def test_upgrade_adds_missing_columns(sqlite_cn, mapper):
    sqlite_cn.execute('CREATE TABLE "Author" (_id INTEGER PRIMARY KEY AUTOINCREMENT, NAME TEXT, legacy TEXT)')
    sqlite_cn.execute('INSERT INTO "Author" (NAME, legacy) VALUES (?, ?)', 'Ann', 'old')

    statements = mapper.with_database(sqlite_cn).upgrade_tables()

    assert statements[0] == 'ALTER TABLE "Author" ADD COLUMN "born" TEXT'
    assert sqlite_cn.get_table_columns('Author', bypass_cache=True) == ['_id', 'NAME', 'legacy', 'born']

    cursor = sqlite_cn.query('SELECT * FROM "Author"')
    assert list(mapper.iter_records(cursor, Author)) == [Author(_id=1, name='Ann')]


def test_second_upgrade_executes_nothing(sqlite_cn, annotated_mapper):
    sqlite_cn.execute('CREATE TABLE "Indexed" (_id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT)')

    first = tablemap.upgrade_tables(annotated_mapper, sqlite_cn)
    second = tablemap.upgrade_tables(annotated_mapper, sqlite_cn)

    assert len(first) == 5
    assert second == []


def test_upgrade_drops_unmanaged_and_changed_indexes(sqlite_cn, annotated_mapper):
    tablemap.create_tables(annotated_mapper, sqlite_cn)
    sqlite_cn.execute('CREATE INDEX custom ON "Indexed" (year)')
    sqlite_cn.execute('DROP INDEX "Indexed_title"')
    sqlite_cn.execute('CREATE INDEX "Indexed_title" ON "Indexed" (title)')

    statements = tablemap.upgrade_tables(annotated_mapper, sqlite_cn)

    assert 'DROP INDEX IF EXISTS "custom"' in statements
    assert 'DROP INDEX IF EXISTS "Indexed_title"' in statements
    assert statements[-1].startswith('CREATE UNIQUE INDEX IF NOT EXISTS "Indexed_title"')
    assert not any('by_author_year' in s for s in statements)

    indexes = sqlite_cn.get_table_indexes('Indexed', bypass_cache=True)
    assert set(indexes) == {'by_author_year', 'Indexed_title'}
    assert tablemap.upgrade_tables(annotated_mapper, sqlite_cn) == []


def test_upgrade_adopts_annotations(sqlite_cn):
    """Turning directives on later creates the declared indexes"""
    plain = Mapper()
    plain.register(Indexed)
    tablemap.create_tables(plain, sqlite_cn)

    annotated = Mapper(use_annotations=True)
    annotated.register(Indexed)
    statements = tablemap.upgrade_tables(annotated, sqlite_cn)

    assert statements[0] == 'ALTER TABLE "Indexed" ADD COLUMN "alias" TEXT'
    assert len(statements) == 3
    assert 'nickname' in sqlite_cn.get_table_columns('Indexed', bypass_cache=True)


def test_drop_all_tables(sqlite_cn, mapper):
    tablemap.create_tables(mapper, sqlite_cn)
    _insert(sqlite_cn, mapper.resolve_record_converter(Author), Author(name='Ann'))

    statements = tablemap.drop_all_tables(mapper, sqlite_cn)

    assert statements == ['DROP TABLE IF EXISTS "Author"', 'DROP TABLE IF EXISTS "Book"']
    assert not sqlite_cn.table_exists('Book')
    assert sqlite_cn.get_table_columns('Author', bypass_cache=True) == []

    tablemap.create_tables(mapper, sqlite_cn)
    assert sqlite_cn.query('SELECT * FROM "Author"').count == 0


def test_drop_then_create_matches_fresh_upgrade(sqlite_cn, sqlite_file_cn, annotated_mapper):
    """Dropping and recreating yields the schema a fresh database gets"""
    tablemap.upgrade_tables(annotated_mapper, sqlite_file_cn)
    expected_columns = sqlite_file_cn.get_table_columns('Indexed', bypass_cache=True)
    expected_indexes = sqlite_file_cn.get_table_indexes('Indexed', bypass_cache=True)

    sqlite_cn.execute('CREATE TABLE "Indexed" (_id INTEGER PRIMARY KEY AUTOINCREMENT, legacy TEXT)')
    sqlite_cn.execute('CREATE INDEX custom ON "Indexed" (legacy)')
    tablemap.upgrade_tables(annotated_mapper, sqlite_cn)
    tablemap.drop_all_tables(annotated_mapper, sqlite_cn)
    tablemap.create_tables(annotated_mapper, sqlite_cn)

    assert sqlite_cn.get_table_columns('Indexed', bypass_cache=True) == expected_columns
    assert sqlite_cn.get_table_indexes('Indexed', bypass_cache=True) == expected_indexes
    assert set(expected_indexes) == {'by_author_year', 'Indexed_title'}
    assert tablemap.upgrade_tables(annotated_mapper, sqlite_cn) == []


def test_index_name_shared_across_tables_rejected(sqlite_cn):
    """Index names are global in SQLite, so two tables cannot both claim one"""
    m = Mapper(use_annotations=True)
    m.register(Shop)
    m.register(Customer)

    with pytest.raises(IndexDefinitionConflict, match='by_name'):
        tablemap.upgrade_tables(m, sqlite_cn)
    with pytest.raises(IndexDefinitionConflict):
        tablemap.create_tables(m, sqlite_cn)

    assert not sqlite_cn.table_exists('Shop')
    assert not sqlite_cn.table_exists('Customer')


def test_drop_all_tables_without_tables(sqlite_cn, mapper):
    assert len(tablemap.drop_all_tables(mapper, sqlite_cn)) == 2


def test_drop_all_indices_leaves_unregistered_tables(sqlite_cn, annotated_mapper):
    tablemap.create_tables(annotated_mapper, sqlite_cn)
    sqlite_cn.execute('CREATE INDEX custom ON "Indexed" (year)')
    sqlite_cn.execute('CREATE TABLE other (_id INTEGER PRIMARY KEY, name TEXT UNIQUE)')
    sqlite_cn.execute('CREATE INDEX other_name ON other (name)')

    statements = tablemap.drop_all_indices(annotated_mapper, sqlite_cn)

    assert len(statements) == 3
    assert sqlite_cn.get_table_indexes('Indexed', bypass_cache=True) == {}
    assert set(sqlite_cn.get_table_indexes('other', bypass_cache=True)) == {'other_name'}


def test_failed_upgrade_rolls_back(sqlite_cn, mapper):
    """A rejected statement leaves the schema untouched"""
    sqlite_cn.execute('CREATE VIEW "Book" AS SELECT 1 AS title')

    with pytest.raises(SchemaApplyFailure):
        tablemap.upgrade_tables(mapper, sqlite_cn)

    assert sqlite_cn.get_table_columns('Author', bypass_cache=True) == []


def test_unsupported_record_creates_nothing(sqlite_cn):
    m = Mapper()
    m.register(Author)
    m.register(Tagged)

    with pytest.raises(UnsupportedTypeError):
        tablemap.create_tables(m, sqlite_cn)
    assert sqlite_cn.get_table_columns('Author', bypass_cache=True) == []


def test_runs_inside_callers_transaction(sqlite_cn, mapper):
    with pytest.raises(RuntimeError):
        with tablemap.transaction(sqlite_cn):
            tablemap.create_tables(mapper, sqlite_cn)
            assert sqlite_cn.get_table_columns('Book', bypass_cache=True)
            raise RuntimeError('abort')

    assert sqlite_cn.get_table_columns('Book', bypass_cache=True) == []


def test_nested_transactions_rejected(sqlite_cn):
    with tablemap.transaction(sqlite_cn):
        with pytest.raises(RuntimeError, match='Nested'):
            tablemap.transaction(sqlite_cn)


def test_self_referencing_table(sqlite_cn):
    m = Mapper()
    m.register(Node)
    tablemap.create_tables(m, sqlite_cn)
    converter = m.resolve_record_converter(Node)

    _insert(sqlite_cn, converter, Node(label='root'))
    _insert(sqlite_cn, converter, Node(label='leaf', parent=Node(_id=1)))

    cursor = sqlite_cn.query('SELECT * FROM "Node" ORDER BY _id')
    assert list(m.iter_records(cursor, Node)) == [
        Node(_id=1, label='root'),
        Node(_id=2, label='leaf', parent=Node(_id=1)),
    ]


def test_schema_persists_across_connections(sqlite_file_cn, mapper, tmp_path):
    tablemap.create_tables(mapper, sqlite_file_cn)
    sqlite_file_cn.close()

    with tablemap.connect({'database': str(tmp_path / 'tablemap.db')}) as cn:
        assert tablemap.upgrade_tables(mapper, cn) == []
        assert cn.get_table_columns('Author') == ['_id', 'name', 'born']


def test_dates_round_trip(sqlite_cn, mapper):
    tablemap.create_tables(mapper, sqlite_cn)
    converter = mapper.resolve_record_converter(Author)
    _insert(sqlite_cn, converter, Author(name='Ann', born=datetime.date(1901, 12, 31)))

    (author,) = mapper.iter_records(sqlite_cn.query('SELECT * FROM "Author"'), Author)
    assert author.born == datetime.date(1901, 12, 31)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
