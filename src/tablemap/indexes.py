"""
Index specifications derived from field Index directives.

IndexSpecBuilder aggregates the directives of all fields of one record type
into named index groups and validates them:

    builder = IndexSpecBuilder()
    builder.add_indexed_column('Book', 'title', Index(unique=True))
    builder.add_indexed_column('Book', 'author', Index(names=(CompositeIndex('by_author'),)))
    specs = builder.build()
"""
import itertools
import logging
from dataclasses import dataclass

from tablemap.annotations import CompositeIndex, Index
from tablemap.exceptions import IndexDefinitionConflict
from tablemap.sql import quote_identifier, quote_literal

logger = logging.getLogger(__name__)

GENERATED_INDEX_NAME = '{table}_{column}'

__all__ = [
    'IndexColumn',
    'IndexSpec',
    'IndexSpecBuilder',
    'GENERATED_INDEX_NAME',
]


@dataclass(frozen=True)
class IndexColumn:
    name: str
    ascending: bool = True


@dataclass(frozen=True)
class IndexSpec:
    """A named index over ordered columns of one table.
    """
    unique: bool
    name: str
    columns: tuple[IndexColumn, ...]

    def creation_sql(self, table: str, if_not_exists: bool = True) -> str:
        """Build the CREATE INDEX statement for this index on `table`.

        Args:
            table: Table the index belongs to
            if_not_exists: Include the IF NOT EXISTS guard

        Returns
            CREATE [UNIQUE] INDEX [IF NOT EXISTS] statement
        """
        unique = 'UNIQUE ' if self.unique else ''
        guard = 'IF NOT EXISTS ' if if_not_exists else ''
        columns = ', '.join(
            f"{quote_literal(col.name)} {'ASC' if col.ascending else 'DESC'}"
            for col in self.columns)
        return (f'CREATE {unique}INDEX {guard}{quote_identifier(self.name)} '
                f'ON {quote_identifier(table)} ({columns})')


class _IndexGroup:
    """Columns collected under one index name, in first-seen order."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.members: dict[str, tuple[str, CompositeIndex]] = {}

    def add(self, column: str, member: CompositeIndex) -> None:
        key = column.lower()
        if key in self.members:
            raise IndexDefinitionConflict(
                f"Column '{column}' has two indexes with the same name {self.name}")
        self.members[key] = (column, member)

    def to_spec(self, unique: bool) -> IndexSpec:
        ordered = sorted(self.members.values(), key=lambda item: item[1].order)
        for (first, a), (second, b) in itertools.pairwise(ordered):
            if a.order == b.order:
                raise IndexDefinitionConflict(
                    f"Columns '{first}' and '{second}' cannot have the same "
                    f'composite index order {a.order}')
        return IndexSpec(unique=unique, name=self.name,
                         columns=tuple(IndexColumn(col, member.ascending) for col, member in ordered))


class IndexSpecBuilder:
    """Collect Index directives of one record type into IndexSpecs.
    """

    def __init__(self) -> None:
        self._groups: dict[str, _IndexGroup] = {}
        self._unique_groups: dict[str, _IndexGroup] = {}

    def add_indexed_column(self, table: str, column: str, index: Index) -> None:
        """Register the index memberships of one column.

        Without explicit names the column gets its own index named
        `<table>_<column>`, unique when `index.unique` is set.
        """
        if not index.names and not index.unique_names:
            name = GENERATED_INDEX_NAME.format(table=table, column=column)
            groups = self._unique_groups if index.unique else self._groups
            self._add(groups, name, column, CompositeIndex(name))
            return
        for member in index.names:
            self._add(self._groups, member.name, column, member)
        for member in index.unique_names:
            self._add(self._unique_groups, member.name, column, member)

    @staticmethod
    def _add(groups: dict[str, _IndexGroup], name: str, column: str,
             member: CompositeIndex) -> None:
        group = groups.get(name.lower())
        if group is None:
            group = groups[name.lower()] = _IndexGroup(name)
        group.add(column, member)

    def build(self) -> list[IndexSpec]:
        """Validate and return the collected indexes.

        Non-unique indexes come first, then unique ones, each in the order
        their names were first seen.

        Raises
            IndexDefinitionConflict: a name is both unique and non-unique, or
                two columns of one index share an order position
        """
        conflicts = [key for key in self._groups if key in self._unique_groups]
        if conflicts:
            raise IndexDefinitionConflict(
                'There are both unique and non-unique indexes with the same name : '
                f'{self._groups[conflicts[0]].name}')
        specs = [group.to_spec(False) for group in self._groups.values()]
        specs += [group.to_spec(True) for group in self._unique_groups.values()]
        logger.debug(f'Built {len(specs)} index specs')
        return specs

    def build_map(self) -> dict[str, IndexSpec]:
        """Return the collected indexes keyed by name.
        """
        return {spec.name: spec for spec in self.build()}
