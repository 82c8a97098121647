"""
SQL text helpers.

- `quote_identifier()` - Quote table/column names
- `quote_literal()` - Quote a name as a string literal, the form index DDL uses
- `normalize_ddl()` - Canonical form of a DDL statement for comparison
"""
import re

_WHITESPACE = re.compile(r'\s+')
_IF_NOT_EXISTS = re.compile(r'\s+if\s+not\s+exists\s+', re.IGNORECASE)


def quote_identifier(identifier: str) -> str:
    """Quote a table or column name for SQLite.

    Args:
        identifier: Name to quote

    Returns
        Identifier wrapped in double quotes with embedded quotes doubled
    """
    return '"' + identifier.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """Quote a value as a single-quoted SQL string literal.
    """
    return "'" + value.replace("'", "''") + "'"


def normalize_ddl(sql: str | None) -> str:
    """Collapse whitespace, drop IF NOT EXISTS and lower-case a DDL statement.

    SQLite stores index DDL without the IF NOT EXISTS clause, so two
    statements describing the same index compare equal after this.
    """
    if not sql:
        return ''
    sql = _IF_NOT_EXISTS.sub(' ', sql)
    sql = _WHITESPACE.sub(' ', sql)
    sql = sql.replace('( ', '(').replace(' )', ')')
    return sql.strip().rstrip(';').strip().lower()
