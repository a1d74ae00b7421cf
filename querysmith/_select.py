from __future__ import annotations

import enum
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Optional

from ._core import (DefaultContext, QueryConfigurationError, QueryLike, RenderContext, SqlFragment, Statement,
                    StatementKind, require_identifier)
from ._columns import Column, ColumnBuilder, ColumnManager
from ._conditions import HavingBuilder, WhereBuilder
from .util import jsonize


class JoinType(enum.Enum):
    """Indicates the type of a join using the explicit ``JOIN`` syntax, e.g. ``LEFT JOIN`` or ``CROSS JOIN``."""
    InnerJoin = "INNER JOIN"
    LeftJoin = "LEFT JOIN"
    RightJoin = "RIGHT JOIN"
    FullJoin = "FULL OUTER JOIN"
    CrossJoin = "CROSS JOIN"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TableSource:
    """The table that a statement reads from. This can be a physical table or a sub-query.

    Attributes
    ----------
    table : str | QueryLike
        The table name or the query builder of the sub-query
    alias : Optional[str]
        An optional alias. It is separated from the table by a single space.
    """
    table: str | QueryLike
    alias: Optional[str] = None

    def is_subquery(self) -> bool:
        return not isinstance(self.table, str)

    def render(self, context: RenderContext) -> SqlFragment:
        source = (self.table.render(context).wrap() if self.is_subquery()
                  else SqlFragment(self.table))
        return source + f" {self.alias}" if self.alias else source

    def __json__(self) -> jsonize.jsondict:
        return {"table": self.table if isinstance(self.table, str) else "<subquery>", "alias": self.alias}


@dataclass(frozen=True)
class JoinClause:
    """A single join. Implicit joins have no `join_type` and no `condition` and are rendered as ``, table``."""
    join_type: Optional[JoinType]
    table: str | QueryLike
    alias: Optional[str] = None
    condition: Optional[str] = None

    def is_implicit(self) -> bool:
        return self.join_type is None

    def render(self, context: RenderContext) -> SqlFragment:
        table = self.table if isinstance(self.table, str) else self.table.render(context).wrap()
        rendered = SqlFragment.lift(table)
        if self.alias:
            rendered += f" AS {self.alias}"
        if self.is_implicit():
            return ", " + rendered
        rendered = f" {self.join_type.value} " + rendered
        return rendered + f" ON {self.condition}" if self.condition else rendered


class JoinBuilder:
    """Collects the joins of a ``SELECT`` statement.

    Explicit joins render as `` INNER JOIN orders AS o ON u.id = o.user_id``, implicit joins as ``, orders AS o``. All
    joins are rendered in the order in which they were added.
    """

    def __init__(self) -> None:
        self._joins: list[JoinClause] = []

    @property
    def joins(self) -> list[JoinClause]:
        return list(self._joins)

    def join(self, join_type: JoinType, table: str | QueryLike, on: Optional[str] = None, *,
             alias: Optional[str] = None) -> JoinBuilder:
        """Adds an explicit join.

        Parameters
        ----------
        join_type : JoinType
            The kind of join
        table : str | QueryLike
            The joined table or a sub-query
        on : Optional[str], optional
            The join condition. All joins except for cross joins require one.
        alias : Optional[str], optional
            The alias of the joined table

        Raises
        ------
        ValueError
            If a join condition is missing for a join other than a cross join
        """
        if isinstance(table, str):
            require_identifier(table, "join table")
        if not on and join_type != JoinType.CrossJoin:
            raise ValueError(f"{join_type} on {table} requires a join condition")
        self._joins.append(JoinClause(join_type, table, alias, on))
        return self

    def inner_join(self, table: str | QueryLike, on: str, *, alias: Optional[str] = None) -> JoinBuilder:
        return self.join(JoinType.InnerJoin, table, on, alias=alias)

    def left_join(self, table: str | QueryLike, on: str, *, alias: Optional[str] = None) -> JoinBuilder:
        return self.join(JoinType.LeftJoin, table, on, alias=alias)

    def right_join(self, table: str | QueryLike, on: str, *, alias: Optional[str] = None) -> JoinBuilder:
        return self.join(JoinType.RightJoin, table, on, alias=alias)

    def full_join(self, table: str | QueryLike, on: str, *, alias: Optional[str] = None) -> JoinBuilder:
        return self.join(JoinType.FullJoin, table, on, alias=alias)

    def cross_join(self, table: str | QueryLike, *, alias: Optional[str] = None) -> JoinBuilder:
        return self.join(JoinType.CrossJoin, table, alias=alias)

    def implicit_join(self, table: str, alias: Optional[str] = None) -> JoinBuilder:
        """Adds a table to the ``FROM`` list, i.e. ``FROM users, orders AS o``."""
        require_identifier(table, "join table")
        self._joins.append(JoinClause(None, table, alias))
        return self

    def has_implicit_joins(self) -> bool:
        return any(join.is_implicit() for join in self._joins)

    def is_empty(self) -> bool:
        return not self._joins

    def render(self, context: Optional[RenderContext] = None) -> SqlFragment:
        context = context or DefaultContext
        return SqlFragment.join("", [join.render(context) for join in self._joins])

    def build(self, context: Optional[RenderContext] = None) -> str:
        return self.render(context).text


class GroupByBuilder:
    """Collects the grouping columns of a ``SELECT`` statement."""

    def __init__(self) -> None:
        self._columns: list[str] = []

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    def group_by(self, *columns: str) -> GroupByBuilder:
        for column in columns:
            self._columns.append(require_identifier(column, "grouping column"))
        return self

    def is_empty(self) -> bool:
        return not self._columns

    def build(self) -> str:
        return f" GROUP BY {', '.join(self._columns)}" if self._columns else ""


@dataclass(frozen=True)
class OrderByExpression:
    """A single column of an ``ORDER BY`` clause.

    Attributes
    ----------
    column : str
        The column to sort by
    ascending : bool
        The sort direction. Ascending order is the default and is not rendered explicitly.
    nulls_first : Optional[bool]
        Where ``NULL`` values should be placed. If *None*, the database default is used.
    """
    column: str
    ascending: bool = True
    nulls_first: Optional[bool] = None

    def __str__(self) -> str:
        direction = "" if self.ascending else " DESC"
        nulls = "" if self.nulls_first is None else (" NULLS FIRST" if self.nulls_first else " NULLS LAST")
        return f"{self.column}{direction}{nulls}"


class OrderByBuilder:
    """Collects the sort columns of a ``SELECT`` statement."""

    def __init__(self) -> None:
        self._expressions: list[OrderByExpression] = []

    @property
    def expressions(self) -> list[OrderByExpression]:
        return list(self._expressions)

    def column(self, name: str, ascending: bool = True, nulls_first: Optional[bool] = None) -> OrderByBuilder:
        self._expressions.append(OrderByExpression(require_identifier(name, "sort column"), ascending, nulls_first))
        return self

    def asc(self, name: str) -> OrderByBuilder:
        return self.column(name)

    def desc(self, name: str) -> OrderByBuilder:
        return self.column(name, ascending=False)

    def is_empty(self) -> bool:
        return not self._expressions

    def build(self) -> str:
        return f" ORDER BY {', '.join(str(expression) for expression in self._expressions)}" if self._expressions else ""


class Selector:
    """The selector holds the parts that are shared by all ``SELECT``-shaped statements.

    This includes the output columns, the table source, the joins as well as the ``WHERE`` and ``HAVING`` clauses. Absent
    clauses are simply not rendered.

    Parameters
    ----------
    columns : Optional[ColumnManager | Iterable[Column]], optional
        The initial output columns
    """

    def __init__(self, columns: Optional[ColumnManager | Iterable[Column]] = None) -> None:
        self._columns = ColumnBuilder(columns)
        self._source: Optional[TableSource] = None
        self._joins = JoinBuilder()
        self._where = WhereBuilder()
        self._having = HavingBuilder()

    @property
    def source(self) -> Optional[TableSource]:
        return self._source

    @property
    def table(self) -> Optional[str]:
        """The name of the source table, or *None* if the source is a sub-query or has not been set."""
        if self._source is None or self._source.is_subquery():
            return None
        return self._source.table

    @property
    def column_builder(self) -> ColumnBuilder:
        return self._columns

    @property
    def where_builder(self) -> WhereBuilder:
        return self._where

    @property
    def having_builder(self) -> HavingBuilder:
        return self._having

    @property
    def join_builder(self) -> JoinBuilder:
        return self._joins

    def from_(self, table: str | QueryLike, alias: Optional[str] = None) -> Selector:
        """Sets the table source. Query builders are embedded as sub-queries, without their terminating semicolon."""
        if isinstance(table, str):
            require_identifier(table, "table name")
        self._source = TableSource(table, alias if alias else None)
        return self

    def where(self, condition: WhereBuilder | Callable[[WhereBuilder], Any]) -> Selector:
        """Installs the ``WHERE`` clause.

        The condition can either be a prepared `WhereBuilder`, or a callback that configures a fresh builder. In both
        cases, any previous ``WHERE`` clause is replaced.
        """
        if isinstance(condition, WhereBuilder):
            self._where = condition
        else:
            self._where = WhereBuilder()
            condition(self._where)
        return self

    def select(self, callback: Callable[[ColumnBuilder], Any]) -> Selector:
        callback(self._columns)
        return self

    def join(self, callback: Callable[[JoinBuilder], Any]) -> Selector:
        callback(self._joins)
        return self

    def having(self, callback: HavingBuilder | Callable[[HavingBuilder], Any]) -> Selector:
        if isinstance(callback, HavingBuilder):
            self._having = callback
        else:
            callback(self._having)
        return self

    def columns_set(self) -> int:
        return self._columns.output_count()

    def render_source(self, context: RenderContext) -> SqlFragment:
        if self._source is None:
            raise QueryConfigurationError("No table source has been specified for the SELECT statement")
        return self._source.render(context)


class QueryModifier(Selector, Statement):
    """The query modifier composes a complete ``SELECT`` statement.

    In addition to the shared parts of the `Selector`, this includes grouping, sorting, ``DISTINCT`` and ``LIMIT`` /
    ``OFFSET``. The clauses are always rendered in the standard SQL order, independent of the order in which they were
    configured::

        SELECT [DISTINCT] <columns or *> FROM <source> <joins> <WHERE> <GROUP BY> <HAVING> <ORDER BY> <LIMIT> <OFFSET>

    Instances are usually obtained via `QueryBuilder.select`.
    """

    def __init__(self, columns: Optional[ColumnManager | Iterable[Column]] = None) -> None:
        super().__init__(columns)
        self._group_by = GroupByBuilder()
        self._order_by = OrderByBuilder()
        self._limit = 0
        self._offset = 0
        self._distinct = False

    @property
    def group_by_builder(self) -> GroupByBuilder:
        return self._group_by

    @property
    def order_by_builder(self) -> OrderByBuilder:
        return self._order_by

    @property
    def kind(self) -> StatementKind:
        return StatementKind.Select

    @property
    def limit_value(self) -> int:
        return self._limit

    def from_(self, table: str | QueryLike, alias: Optional[str] = None) -> QueryModifier:
        super().from_(table, alias)
        return self

    def where(self, condition: WhereBuilder | Callable[[WhereBuilder], Any]) -> QueryModifier:
        super().where(condition)
        return self

    def select(self, callback: Callable[[ColumnBuilder], Any]) -> QueryModifier:
        super().select(callback)
        return self

    def join(self, callback: Callable[[JoinBuilder], Any]) -> QueryModifier:
        super().join(callback)
        return self

    def having(self, callback: HavingBuilder | Callable[[HavingBuilder], Any]) -> QueryModifier:
        super().having(callback)
        return self

    def group_by(self, *columns: str) -> QueryModifier:
        self._group_by.group_by(*columns)
        return self

    def order_by(self, callback: Callable[[OrderByBuilder], Any]) -> QueryModifier:
        callback(self._order_by)
        return self

    def limit(self, limit: int) -> QueryModifier:
        """Restricts the number of result rows. Limits smaller than 1 disable the ``LIMIT`` clause."""
        self._limit = limit
        return self

    def offset(self, offset: int) -> QueryModifier:
        """Skips the first result rows. Offsets smaller than 1 disable the ``OFFSET`` clause."""
        self._offset = offset
        return self

    def distinct(self, enabled: bool = True) -> QueryModifier:
        self._distinct = enabled
        return self

    def render(self, context: Optional[RenderContext] = None) -> SqlFragment:
        """Renders the ``SELECT`` statement without a terminating semicolon.

        Raises
        ------
        QueryConfigurationError
            If no table source has been set
        """
        context = context or DefaultContext
        columns = self._columns.build() or "*"
        distinct = "DISTINCT " if self._distinct else ""
        statement = f"SELECT {distinct}{columns} FROM " + self.render_source(context)
        statement += self._joins.render(context)
        statement += self._where.render(context)
        statement += self._group_by.build()
        statement += self._having.render(context)
        statement += self._order_by.build()
        if self._limit > 0:
            statement += f" LIMIT {self._limit}"
        if self._offset > 0:
            statement += f" OFFSET {self._offset}"
        return statement

    def __json__(self) -> jsonize.jsondict:
        return {"columns": self._columns, "source": self._source, "where": self._where, "having": self._having,
                "group_by": self._group_by.columns, "order_by": [str(expr) for expr in self._order_by.expressions],
                "limit": self._limit, "offset": self._offset, "distinct": self._distinct}

    def __str__(self) -> str:
        return self.build()
