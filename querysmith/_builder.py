from __future__ import annotations

import sys
from collections.abc import Callable, Iterable
from typing import IO, Any, Optional

from ._core import (QueryConfigurationError, RenderContext, SqlFragment, Statement, StatementKind, number_parameters,
                    require_identifier)
from ._columns import Column, ColumnManager
from ._ddl import AlterTable, CreateTableHandler, DropTableHandler
from ._mutations import InsertHandler, QueryRemover, UpdateBuilder
from ._select import QueryModifier
from ._with import WithManager
from . import util
from .util import jsonize


class QueryBuilder:
    """The query builder is the entry point to construct SQL statements.

    Each builder holds at most one statement. Selecting a statement kind (e.g. via `select` or `update`) creates a fresh
    statement of that kind and provides the specialized builder to configure it. Selecting another kind afterwards
    discards the previous statement.

    Once the statement is configured, `build` provides the SQL text and `get_values` provides the values that have to be
    bound to the placeholders of the text. Both are derived from the same rendering pass and are therefore always in sync:

    >>> query = QueryBuilder()
    >>> _ = query.select().from_("users").where(lambda where: where.column("age").greater_than(18))
    >>> query.build()
    'SELECT * FROM users WHERE age > ?;'
    >>> query.get_values()
    {1: 18}

    Query builders can be embedded into other statements as sub-queries, e.g. as table source of a ``SELECT`` or as
    right-hand side of an ``IN`` comparison. Embedded builders are always rendered with the settings of the outermost
    builder.

    Parameters
    ----------
    placeholders : bool, optional
        Whether values should be replaced by placeholders. If disabled, values are embedded as literals and `get_values`
        is always empty. Enabled by default.
    marker : str, optional
        The placeholder marker. Defaults to ``?``.
    quote_literals : bool, optional
        Whether string literals should be quoted if placeholders are disabled. Off by default.
    debug : bool, optional
        Whether each built statement should be logged. Off by default.
    log_file : Optional[IO[str]], optional
        Where debug output is written to. Defaults to ``sys.stderr``.
    """

    def __init__(self, *, placeholders: bool = True, marker: str = "?", quote_literals: bool = False,
                 debug: bool = False, log_file: Optional[IO[str]] = None) -> None:
        self._statement: Optional[Statement] = None
        self._table: Optional[str] = None
        self._placeholders = placeholders
        self._marker = marker
        self._quote_literals = quote_literals
        self._log = util.make_logger(debug, file=log_file if log_file is not None else sys.stderr,
                                     prefix=util.timestamp)

    @property
    def kind(self) -> StatementKind:
        """The kind of the current statement, `StatementKind.None_` if no statement has been selected yet."""
        return self._statement.kind if self._statement is not None else StatementKind.None_

    @property
    def statement(self) -> Optional[Statement]:
        return self._statement

    @property
    def table(self) -> Optional[str]:
        """The table that the current statement operates on.

        For ``SELECT`` statements, this is the name of the source table (if it is not a sub-query). ``WITH`` statements do
        not have a table.
        """
        if isinstance(self._statement, QueryModifier):
            return self._statement.table
        return self._table

    @property
    def placeholders(self) -> bool:
        return self._placeholders

    def set_placeholders(self, enabled: bool) -> QueryBuilder:
        """Enables or disables placeholders for all subsequent calls to `build` and `get_values`."""
        self._placeholders = enabled
        return self

    def context(self) -> RenderContext:
        """Provides the render context that reflects the current settings of this builder."""
        return RenderContext(placeholders=self._placeholders, marker=self._marker, quote_literals=self._quote_literals)

    def is_query_set(self) -> bool:
        return self._statement is not None

    def select(self, columns: Optional[ColumnManager | Iterable[Column]] = None) -> QueryModifier:
        """Starts a ``SELECT`` statement.

        Parameters
        ----------
        columns : Optional[ColumnManager | Iterable[Column]], optional
            The output columns. If omitted (and no columns are added later on), all columns are selected.

        Returns
        -------
        QueryModifier
            The builder to configure the table source and all other clauses
        """
        return self._activate(QueryModifier(columns), None)

    def update(self, table: str, callback: Optional[Callable[[UpdateBuilder], Any]] = None) -> UpdateBuilder:
        return self._configure(UpdateBuilder(table), table, callback)

    def insert_into(self, table: str, callback: Optional[Callable[[InsertHandler], Any]] = None) -> InsertHandler:
        return self._configure(InsertHandler(table, StatementKind.Insert), table, callback)

    def merge_into(self, table: str, callback: Optional[Callable[[InsertHandler], Any]] = None) -> InsertHandler:
        return self._configure(InsertHandler(table, StatementKind.MergeInto), table, callback)

    def replace_into(self, table: str, callback: Optional[Callable[[InsertHandler], Any]] = None) -> InsertHandler:
        return self._configure(InsertHandler(table, StatementKind.ReplaceInto), table, callback)

    def delete_from(self, table: str) -> QueryRemover:
        return self._activate(QueryRemover(table), table)

    def create_table(self, table: str) -> CreateTableHandler:
        return self._activate(CreateTableHandler(table), table)

    def create_table_if_not_exists(self, table: str) -> CreateTableHandler:
        return self._activate(CreateTableHandler(table, if_not_exists=True), table)

    def drop_table(self, table: str) -> DropTableHandler:
        return self._activate(DropTableHandler(table), table)

    def alter_table(self, table: str) -> AlterTable:
        return self._activate(AlterTable(table), table)

    def with_(self, callback: Optional[Callable[[WithManager], Any]] = None) -> WithManager:
        """Starts a statement with common table expressions.

        Parameters
        ----------
        callback : Optional[Callable[[WithManager], Any]], optional
            Configures the CTEs and the main query. The return value of the callback is ignored.
        """
        return self._configure(WithManager(), None, callback)

    def render(self, context: Optional[RenderContext] = None) -> SqlFragment:
        """Renders the current statement without the terminating semicolon.

        Parameters
        ----------
        context : Optional[RenderContext], optional
            The settings to use. If omitted, the settings of this builder are used. Sub-queries receive the context of
            the statement that embeds them.

        Raises
        ------
        QueryConfigurationError
            If no statement kind has been selected, or the statement is incomplete
        """
        if self._statement is None:
            raise QueryConfigurationError("No statement has been configured for the query builder")
        return self._statement.render(context or self.context())

    def build(self) -> str:
        """Provides the SQL text of the current statement, terminated by a semicolon.

        Raises
        ------
        QueryConfigurationError
            If no statement kind has been selected, or the statement is incomplete
        """
        rendered = self.render()
        self._log(f":: Built {self.kind.name} statement: {rendered.text} with {len(rendered.parameters)} parameters")
        return rendered.text + ";"

    def get_values(self) -> dict[int, Any]:
        """Provides the values that are bound to the placeholders of `build`, keyed by their 1-based position.

        If placeholders are disabled, the mapping is always empty.

        Raises
        ------
        QueryConfigurationError
            If no statement kind has been selected, or the statement is incomplete
        """
        context = self.context()
        if not context.placeholders:
            return {}
        return number_parameters(self.render(context).parameters)

    def get_amount_columns_set(self) -> Optional[int]:
        """Provides the number of columns that are written (``UPDATE``, ``INSERT``) or read (``SELECT``).

        For all other statements, as well as for an unconfigured builder, *None* is returned.
        """
        if self.kind == StatementKind.Select or self.kind == StatementKind.Update or self.kind.is_insert_like():
            return self._statement.columns_set()
        return None

    def columns_set(self) -> Optional[int]:
        return self.get_amount_columns_set()

    def _activate[S: Statement](self, statement: S, table: Optional[str]) -> S:
        self._statement = statement
        self._table = require_identifier(table, "table name") if table is not None else None
        return statement

    def _configure[S: Statement](self, statement: S, table: Optional[str],
                                 callback: Optional[Callable[[S], Any]]) -> S:
        self._activate(statement, table)
        if callback is not None:
            callback(statement)
        return statement

    def __json__(self) -> jsonize.jsondict:
        return {"kind": self.kind, "table": self.table, "placeholders": self._placeholders,
                "statement": self._statement}

    def __repr__(self) -> str:
        return f"QueryBuilder(kind={self.kind.name}, table={self.table!r}, placeholders={self._placeholders})"

    def __str__(self) -> str:
        return self.render().text + ";" if self._statement is not None else ""


class QueryDefinition:
    """A query that is either given as raw SQL text or as a query builder.

    Parameters
    ----------
    query : str | QueryBuilder
        The query
    """

    def __init__(self, query: str | QueryBuilder) -> None:
        if isinstance(query, str):
            require_identifier(query, "query")
        self._query = query

    @staticmethod
    def of(query: str | QueryBuilder) -> QueryDefinition:
        return QueryDefinition(query)

    @property
    def builder(self) -> Optional[QueryBuilder]:
        return self._query if isinstance(self._query, QueryBuilder) else None

    @property
    def query(self) -> str:
        """The SQL text of the query. Builders are built on every access."""
        return self._query if isinstance(self._query, str) else self._query.build()

    @property
    def values(self) -> dict[int, Any]:
        """The placeholder values of the query. Raw queries do not have any values."""
        return {} if isinstance(self._query, str) else self._query.get_values()

    @property
    def kind(self) -> StatementKind:
        if isinstance(self._query, str):
            return StatementKind.parse_prefix(self._query)
        return self._query.kind

    def is_raw(self) -> bool:
        return isinstance(self._query, str)

    def __json__(self) -> jsonize.jsondict:
        return {"query": self.query, "kind": self.kind}

    def __repr__(self) -> str:
        return f"QueryDefinition({self._query!r})"

    def __str__(self) -> str:
        return self.query
