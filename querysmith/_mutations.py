from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Optional

from ._core import (DefaultContext, QueryConfigurationError, QueryLike, RenderContext, SqlFragment, Statement,
                    StatementKind, require_identifier)
from ._conditions import WhereBuilder
from .util import jsonize
from .util.collections import pairwise_items


def _install_where(condition: WhereBuilder | Callable[[WhereBuilder], Any]) -> WhereBuilder:
    if isinstance(condition, WhereBuilder):
        return condition
    where = WhereBuilder()
    condition(where)
    return where


class InsertHandler(Statement):
    """Builds ``INSERT``-shaped statements, i.e. ``INSERT INTO``, ``MERGE INTO`` and ``REPLACE INTO``.

    The handler describes a single row as an ordered sequence of column/value pairs. Adding a column a second time
    replaces its value but keeps its original position. Alternatively, the rows can be produced by a query
    (``INSERT INTO t (a, b) SELECT ...``), see `from_query`.

    Parameters
    ----------
    table : str
        The table to insert into
    kind : StatementKind, optional
        The keyword of the statement. Must be one of `StatementKind.Insert`, `StatementKind.MergeInto` or
        `StatementKind.ReplaceInto`.
    """

    def __init__(self, table: str, kind: StatementKind = StatementKind.Insert) -> None:
        if not kind.is_insert_like():
            raise ValueError(f"Insert handler cannot render {kind.name} statements")
        self._table = require_identifier(table, "table name")
        self._kind = kind
        self._row: dict[str, Any] = {}
        self._target_columns: list[str] = []
        self._query: Optional[QueryLike] = None

    @property
    def kind(self) -> StatementKind:
        return self._kind

    @property
    def table(self) -> str:
        return self._table

    @property
    def row(self) -> dict[str, Any]:
        return dict(self._row)

    def add(self, column: str, value: Any) -> InsertHandler:
        """Sets the value of a column."""
        self._row[require_identifier(column, "column name")] = value
        return self

    def add_all(self, values: dict[str, Any] | Iterable[tuple[str, Any]]) -> InsertHandler:
        """Sets the values of multiple columns, keeping the order of `values`."""
        for column, value in pairwise_items(values):
            self.add(column, value)
        return self

    def columns(self, *columns: str) -> InsertHandler:
        """Sets the target columns for an insert that is fed by a query."""
        self._target_columns = [require_identifier(column, "column name") for column in columns]
        return self

    def from_query(self, query: QueryLike) -> InsertHandler:
        """Inserts the result set of another query instead of a single row."""
        self._query = query
        return self

    def columns_set(self) -> int:
        return len(self._target_columns) if self._query is not None else len(self._row)

    def render(self, context: Optional[RenderContext] = None) -> SqlFragment:
        context = context or DefaultContext
        if self._query is not None:
            if self._row:
                raise QueryConfigurationError(f"Insert into {self._table} specifies both a row and a source query")
            if not self._target_columns:
                raise QueryConfigurationError(f"Insert into {self._table} from a query requires target columns")
            header = f"{self._kind.value} {self._table} ({', '.join(self._target_columns)}) "
            return header + self._query.render(context)

        if not self._row:
            raise QueryConfigurationError(f"Insert into {self._table} does not specify any columns")
        header = f"{self._kind.value} {self._table} ({', '.join(self._row)}) VALUES "
        return header + context.values(list(self._row.values())).wrap()

    def __json__(self) -> jsonize.jsondict:
        return {"kind": self._kind, "table": self._table, "row": self._row, "columns": self._target_columns,
                "query": self._query is not None}


class UpdateBuilder(Statement):
    """Builds ``UPDATE`` statements.

    The assignments of the ``SET`` clause are rendered in the order in which they were added, followed by the optional
    ``WHERE`` clause. Consequently, the values of the assignments precede the values of the condition.

    Parameters
    ----------
    table : str
        The table to update
    """

    def __init__(self, table: str) -> None:
        self._table = require_identifier(table, "table name")
        self._assignments: dict[str, Any] = {}
        self._where = WhereBuilder()

    @property
    def kind(self) -> StatementKind:
        return StatementKind.Update

    @property
    def table(self) -> str:
        return self._table

    @property
    def assignments(self) -> dict[str, Any]:
        return dict(self._assignments)

    @property
    def where_builder(self) -> WhereBuilder:
        return self._where

    def put(self, column: str, value: Any) -> UpdateBuilder:
        """Assigns a new value to a column."""
        self._assignments[require_identifier(column, "column name")] = value
        return self

    def put_all(self, values: dict[str, Any] | Iterable[tuple[str, Any]]) -> UpdateBuilder:
        for column, value in pairwise_items(values):
            self.put(column, value)
        return self

    def where(self, condition: WhereBuilder | Callable[[WhereBuilder], Any]) -> UpdateBuilder:
        """Restricts the rows to update. Replaces any previous condition."""
        self._where = _install_where(condition)
        return self

    def columns_set(self) -> int:
        return len(self._assignments)

    def render(self, context: Optional[RenderContext] = None) -> SqlFragment:
        """Renders the ``UPDATE`` statement.

        Raises
        ------
        QueryConfigurationError
            If no assignments have been specified
        """
        context = context or DefaultContext
        if not self._assignments:
            raise QueryConfigurationError(f"Update of table {self._table} does not assign any columns")
        assignments = SqlFragment.join(", ", [f"{column} = " + context.value(value)
                                              for column, value in self._assignments.items()])
        return f"UPDATE {self._table} SET " + assignments + self._where.render(context)

    def __json__(self) -> jsonize.jsondict:
        return {"table": self._table, "set": self._assignments, "where": self._where}


class QueryRemover(Statement):
    """Builds ``DELETE`` statements. Without a condition, all rows of the table are deleted."""

    def __init__(self, table: str) -> None:
        self._table = require_identifier(table, "table name")
        self._where = WhereBuilder()

    @property
    def kind(self) -> StatementKind:
        return StatementKind.Delete

    @property
    def table(self) -> str:
        return self._table

    @property
    def where_builder(self) -> WhereBuilder:
        return self._where

    def where(self, condition: WhereBuilder | Callable[[WhereBuilder], Any]) -> QueryRemover:
        self._where = _install_where(condition)
        return self

    def render(self, context: Optional[RenderContext] = None) -> SqlFragment:
        context = context or DefaultContext
        return f"DELETE FROM {self._table}" + self._where.render(context)

    def __json__(self) -> jsonize.jsondict:
        return {"table": self._table, "where": self._where}
