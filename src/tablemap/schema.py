"""
Schema synchronization for registered record types.

SchemaReconciler brings the live tables of a database in line with the
columns and indexes the mapper derives from its registered record types.
Migration is additive: missing tables and columns are created, columns are
never dropped or retyped. Indexes are fully reconciled, so a table ends up
with exactly the indexes its record type declares.

Every public operation returns the DDL statements it executed; running an
operation twice in a row executes nothing the second time.
"""
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from tablemap.cache import Cache
from tablemap.convert.base import RecordConverter
from tablemap.exceptions import EngineError, IndexDefinitionConflict
from tablemap.exceptions import SchemaApplyFailure
from tablemap.sql import normalize_ddl
from tablemap.strategy import get_db_strategy
from tablemap.transaction import Transaction, is_in_transaction

if TYPE_CHECKING:
    from tablemap.connection import ConnectionWrapper
    from tablemap.mapper import Mapper

logger = logging.getLogger(__name__)

__all__ = ['SchemaReconciler']


class SchemaReconciler:
    """Create, upgrade and drop the tables of a mapper's registered types.

    Operations run in one transaction on `cn`, or in the caller's
    transaction when one is already open.
    """

    def __init__(self, mapper: 'Mapper', cn: 'ConnectionWrapper') -> None:
        self.mapper = mapper
        self.cn = cn
        self.strategy = get_db_strategy(cn)

    @contextmanager
    def _transaction(self):
        if is_in_transaction(self.cn):
            yield
            return
        with Transaction(self.cn):
            yield

    def _converters(self) -> list[RecordConverter]:
        return [self.mapper.resolve_record_converter(record_type)
                for record_type in self.mapper.registered_types]

    def _indexed_converters(self) -> list[RecordConverter]:
        """Converters of all registered types, with index names unique across tables.

        SQLite index names share one namespace per database.

        Raises
            IndexDefinitionConflict: two tables declare an index with the same name
        """
        converters = self._converters()
        owners: dict[str, str] = {}
        for converter in converters:
            for spec in converter.index_specs:
                owner = owners.setdefault(spec.name.lower(), converter.table)
                if owner != converter.table:
                    raise IndexDefinitionConflict(
                        f'Index {spec.name} is declared on both {owner} and {converter.table}')
        return converters

    def _apply(self, sql: str, table: str) -> str:
        try:
            self.cn.execute(sql)
        except EngineError as e:
            logger.error(f'Schema change rejected on {table}: {e}')
            raise SchemaApplyFailure(sql, e) from e
        Cache.get_instance().clear_for_table(table, self.cn.uid)
        return sql

    def _live_columns(self, table: str) -> list[str]:
        return list(self.strategy.get_columns(self.cn, table, bypass_cache=True))

    def _live_indexes(self, table: str) -> dict[str, tuple[str, str]]:
        """Live explicit indexes keyed by lower-cased name."""
        return {name.lower(): (name, sql)
                for name, sql in self.strategy.get_indexes(self.cn, table, bypass_cache=True)}

    def _create_table(self, converter: RecordConverter) -> list[str]:
        table = converter.table
        sql = self.strategy.create_table_sql(table, self.mapper.options.id_column,
                                             converter.columns)
        statements = [self._apply(sql, table)]
        for spec in converter.index_specs:
            statements.append(self._apply(spec.creation_sql(table), table))
        logger.info(f'Created table {table} with {len(converter.index_specs)} indexes')
        return statements

    def _add_missing_columns(self, converter: RecordConverter, live: list[str]) -> list[str]:
        table = converter.table
        present = {name.lower() for name in live}
        statements = []
        for column in converter.columns:
            if column.is_virtual or column.name.lower() in present:
                continue
            statements.append(self._apply(self.strategy.add_column_sql(table, column), table))
            present.add(column.name.lower())
        if statements:
            logger.info(f'Added {len(statements)} columns to {table}')
        return statements

    def _create_missing_indexes(self, converter: RecordConverter) -> list[str]:
        table = converter.table
        live = self._live_indexes(table)
        return [self._apply(spec.creation_sql(table), table)
                for spec in converter.index_specs
                if spec.name.lower() not in live]

    def _reconcile_indexes(self, converter: RecordConverter) -> list[str]:
        """Make the live indexes of a table equal the desired ones.

        A live index is kept only when its name is desired and its stored
        definition matches the desired one; every other live index is
        dropped. Desired indexes not kept are then created.
        """
        table = converter.table
        desired = {spec.name.lower(): spec for spec in converter.index_specs}
        kept = set()
        statements = []
        for key, (name, sql) in self._live_indexes(table).items():
            spec = desired.get(key)
            if spec is not None and normalize_ddl(sql) == normalize_ddl(
                    spec.creation_sql(table, if_not_exists=False)):
                kept.add(key)
                continue
            logger.warning(f'Dropping index {name} on {table}')
            statements.append(self._apply(self.strategy.drop_index_sql(name), table))
        for key, spec in desired.items():
            if key not in kept:
                statements.append(self._apply(spec.creation_sql(table), table))
        return statements

    def create_tables(self) -> list[str]:
        """Create the missing tables of all registered types and their indexes.

        Existing tables only get indexes they lack.
        """
        converters = self._indexed_converters()
        statements = []
        with self._transaction():
            for converter in converters:
                if self._live_columns(converter.table):
                    statements += self._create_missing_indexes(converter)
                else:
                    statements += self._create_table(converter)
        return statements

    def upgrade_tables(self) -> list[str]:
        """Create missing tables, add missing columns and reconcile indexes.
        """
        converters = self._indexed_converters()
        statements = []
        with self._transaction():
            for converter in converters:
                live = self._live_columns(converter.table)
                if not live:
                    statements += self._create_table(converter)
                    continue
                statements += self._add_missing_columns(converter, live)
                statements += self._reconcile_indexes(converter)
        logger.info(f'Upgrade executed {len(statements)} statements')
        return statements

    def drop_all_tables(self) -> list[str]:
        """Drop the tables of all registered types.
        """
        statements = []
        with self._transaction():
            for converter in self._converters():
                sql = self.strategy.drop_table_sql(converter.table)
                statements.append(self._apply(sql, converter.table))
        return statements

    def drop_all_indices(self) -> list[str]:
        """Drop every explicit index on the tables of registered types.
        """
        statements = []
        with self._transaction():
            for converter in self._converters():
                table = converter.table
                for name, _ in self._live_indexes(table).values():
                    statements.append(self._apply(self.strategy.drop_index_sql(name), table))
        return statements
