import pytest
from tablemap import Column, ColumnType
from tablemap.sql import normalize_ddl, quote_identifier, quote_literal
from tablemap.strategy import get_strategy


def test_quote_identifier():
    assert quote_identifier('Book') == '"Book"'
    assert quote_identifier('odd"name') == '"odd""name"'


def test_quote_literal():
    assert quote_literal('title') == "'title'"
    assert quote_literal("it's") == "'it''s'"


@pytest.mark.parametrize(('sql', 'expected'), [
    (None, ''),
    ('', ''),
    ('CREATE INDEX IF NOT EXISTS "a" ON "T" (\'x\' ASC);', 'create index "a" on "t" (\'x\' asc)'),
    ('create   index "a"\n\ton "T"( \'x\' ASC )', 'create index "a" on "t"(\'x\' asc)'),
    ('CREATE UNIQUE INDEX if not exists "a" ON "T" (\'x\' DESC)', 'create unique index "a" on "t" (\'x\' desc)'),
])
def test_normalize_ddl(sql, expected):
    assert normalize_ddl(sql) == expected


def test_create_table_sql():
    strategy = get_strategy('sqlite')
    columns = [
        Column('_id', ColumnType.INTEGER),
        Column('title', ColumnType.TEXT),
        Column('score', ColumnType.REAL),
        Column('joined', ColumnType.VIRTUAL),
        Column('cover', ColumnType.BLOB),
    ]

    assert strategy.create_table_sql('Book', '_id', columns) == (
        'CREATE TABLE "Book" ("_id" INTEGER PRIMARY KEY AUTOINCREMENT, '
        '"title" TEXT, "score" REAL, "cover" BLOB)')


def test_alter_and_drop_sql():
    strategy = get_strategy('sqlite')

    assert strategy.add_column_sql('Book', Column('pages', ColumnType.INTEGER)) == (
        'ALTER TABLE "Book" ADD COLUMN "pages" INTEGER')
    assert strategy.drop_table_sql('Book') == 'DROP TABLE IF EXISTS "Book"'
    assert strategy.drop_index_sql('Book_title') == 'DROP INDEX IF EXISTS "Book_title"'


def test_virtual_columns_have_no_storage_type():
    with pytest.raises(ValueError):
        get_strategy('sqlite').column_type_sql(ColumnType.VIRTUAL)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
