"""The condition model builds the boolean expressions of ``WHERE`` and ``HAVING`` clauses.

Conditions are specified through method chaining on a condition builder:

>>> where = WhereBuilder()
>>> where.column("age").greater_than(18).and_().column("name").like("A%").or_().column("admin").equal(True)

Internally, the builder maintains a disjunction of conjunctions: each comparison is appended to the current conjunction
and `or_` starts a new one. This matches the SQL precedence rules where ``AND`` binds tighter than ``OR``. Explicit
nesting is available through `ConditionBuilder.group`.

Rendering produces the SQL text and the bound values in a single pass, such that the values are always numbered in the
same order as the placeholders appear in the text.
"""
from __future__ import annotations

import abc
import enum
from collections.abc import Callable, Sequence
from typing import Any, Optional

from ._core import DefaultContext, QueryLike, RenderContext, SqlFragment, number_parameters
from ._columns import Aggregation, Column
from .util import jsonize
from .util.collections import enlist


class ComparisonOperator(enum.Enum):
    """The operators that can be used in a single comparison."""
    Equal = "="
    NotEqual = "<>"
    Less = "<"
    LessEqual = "<="
    Greater = ">"
    GreaterEqual = ">="
    Like = "LIKE"
    NotLike = "NOT LIKE"
    In = "IN"
    NotIn = "NOT IN"
    Between = "BETWEEN"
    NotBetween = "NOT BETWEEN"
    IsNull = "IS NULL"
    IsNotNull = "IS NOT NULL"

    def __str__(self) -> str:
        return self.value


class CompoundOperator(enum.Enum):
    """The logical connectives to combine conditions."""
    And = "AND"
    Or = "OR"

    def __str__(self) -> str:
        return self.value


class Condition(abc.ABC):
    """Basic interface for all nodes of a condition tree."""

    @abc.abstractmethod
    def render(self, context: RenderContext) -> SqlFragment:
        """Provides the SQL text of the condition along with the values that are bound to its placeholders."""
        raise NotImplementedError

    def is_compound(self) -> bool:
        """Checks, whether the condition combines other conditions without delimiting them itself."""
        return False

    def __str__(self) -> str:
        return self.render(DefaultContext).text


class Comparison(Condition):
    """A leaf of the condition tree that compares a column expression with values or a sub-query.

    Parameters
    ----------
    column : str
        The rendered column expression on the left-hand side of the comparison
    operator : ComparisonOperator
        The comparison to perform
    values : Sequence[Any], optional
        The right-hand side values. Their number depends on the operator: ``BETWEEN`` requires two values, ``IN`` at least
        one and ``IS NULL`` none.
    subquery : Optional[QueryLike], optional
        A query builder whose statement is used as right-hand side instead of the `values`
    """

    def __init__(self, column: str, operator: ComparisonOperator, values: Sequence[Any] = (), *,
                 subquery: Optional[QueryLike] = None) -> None:
        self._column = column
        self._operator = operator
        self._values = tuple(values)
        self._subquery = subquery

    @property
    def column(self) -> str:
        return self._column

    @property
    def operator(self) -> ComparisonOperator:
        return self._operator

    @property
    def values(self) -> tuple[Any, ...]:
        return self._values

    @property
    def subquery(self) -> Optional[QueryLike]:
        return self._subquery

    def render(self, context: RenderContext) -> SqlFragment:
        prefix = f"{self._column} {self._operator.value}"
        if self._subquery is not None:
            return prefix + " " + self._subquery.render(context).wrap()

        match self._operator:
            case ComparisonOperator.IsNull | ComparisonOperator.IsNotNull:
                return SqlFragment(prefix)
            case ComparisonOperator.In | ComparisonOperator.NotIn:
                return prefix + " " + context.values(self._values).wrap()
            case ComparisonOperator.Between | ComparisonOperator.NotBetween:
                lower, upper = self._values
                return prefix + " " + SqlFragment.join(" AND ", [context.value(lower), context.value(upper)])
            case _:
                return prefix + " " + context.value(self._values[0])

    def __json__(self) -> jsonize.jsondict:
        return {"column": self._column, "operator": self._operator, "values": list(self._values),
                "subquery": self._subquery is not None}

    def __repr__(self) -> str:
        return f"Comparison({self._column!r}, {self._operator}, {self._values!r})"


class CompoundCondition(Condition):
    """A conjunction or disjunction of other conditions.

    Disjunctions are always put in parentheses and compound children of a disjunction are parenthesized as well. Hence,
    ``a AND b OR c`` is rendered as ``((a AND b) OR c)``.
    """

    def __init__(self, operator: CompoundOperator, children: Sequence[Condition]) -> None:
        if len(children) < 2:
            raise ValueError(f"{operator} conditions require at least two children, but {len(children)} were given")
        self._operator = operator
        self._children = tuple(children)

    @property
    def operator(self) -> CompoundOperator:
        return self._operator

    @property
    def children(self) -> tuple[Condition, ...]:
        return self._children

    def is_compound(self) -> bool:
        return True

    def render(self, context: RenderContext) -> SqlFragment:
        if self._operator == CompoundOperator.Or:
            children = [child.render(context).wrap() if child.is_compound() else child.render(context)
                        for child in self._children]
            return SqlFragment.join(" OR ", children).wrap()
        return SqlFragment.join(" AND ", [child.render(context) for child in self._children])

    def __json__(self) -> jsonize.jsondict:
        return {"operator": self._operator, "children": self._children}

    def __repr__(self) -> str:
        return f"CompoundCondition({self._operator}, {self._children!r})"


class ConditionGroup(Condition):
    """An explicitly nested condition, which is put in parentheses unless it is a single comparison."""

    def __init__(self, condition: Condition) -> None:
        self._condition = condition

    @property
    def condition(self) -> Condition:
        return self._condition

    def render(self, context: RenderContext) -> SqlFragment:
        rendered = self._condition.render(context)
        if isinstance(self._condition, CompoundCondition) and self._condition.operator == CompoundOperator.And:
            return rendered.wrap()
        return rendered

    def __json__(self) -> jsonize.jsondict:
        return {"group": self._condition}

    def __repr__(self) -> str:
        return f"ConditionGroup({self._condition!r})"


class LogicalOperator[B: ConditionBuilder]:
    """Connects a comparison with the next one.

    Logical operators are returned by every comparison of a `ComparisonHandler`. They only serve to continue the method
    chain, all state is kept in the condition builder.
    """

    def __init__(self, builder: B) -> None:
        self._builder = builder

    def and_(self) -> B:
        """Continues with a comparison that must hold in addition to the previous one."""
        return self._builder

    def or_(self) -> B:
        """Continues with a comparison that is an alternative to all comparisons since the last `or_`."""
        self._builder._start_disjunct()
        return self._builder

    def build(self) -> B:
        """Provides the condition builder."""
        return self._builder


class ComparisonHandler[B: ConditionBuilder]:
    """Specifies the comparison for a single column of a condition builder.

    Every comparison method completes the comparison, adds it to the builder and returns a `LogicalOperator` to continue
    the chain. Comparisons that accept a single value (as well as ``IN`` / ``NOT IN``) also accept a query builder as a
    sub-query.
    """

    def __init__(self, builder: B, column: str) -> None:
        self._builder = builder
        self._column = column

    def equal(self, value: Any) -> LogicalOperator[B]:
        return self._compare(ComparisonOperator.Equal, value)

    def not_equal(self, value: Any) -> LogicalOperator[B]:
        return self._compare(ComparisonOperator.NotEqual, value)

    def less_than(self, value: Any) -> LogicalOperator[B]:
        return self._compare(ComparisonOperator.Less, value)

    def less_equal(self, value: Any) -> LogicalOperator[B]:
        return self._compare(ComparisonOperator.LessEqual, value)

    def greater_than(self, value: Any) -> LogicalOperator[B]:
        return self._compare(ComparisonOperator.Greater, value)

    def greater_equal(self, value: Any) -> LogicalOperator[B]:
        return self._compare(ComparisonOperator.GreaterEqual, value)

    def like(self, pattern: Any) -> LogicalOperator[B]:
        return self._compare(ComparisonOperator.Like, pattern)

    def not_like(self, pattern: Any) -> LogicalOperator[B]:
        return self._compare(ComparisonOperator.NotLike, pattern)

    def is_in(self, *values: Any) -> LogicalOperator[B]:
        """Checks the column against a list of values, or against the result of a single sub-query.

        Raises
        ------
        ValueError
            If no values are given
        """
        return self._membership(ComparisonOperator.In, values)

    def not_in(self, *values: Any) -> LogicalOperator[B]:
        return self._membership(ComparisonOperator.NotIn, values)

    def between(self, lower: Any, upper: Any) -> LogicalOperator[B]:
        """Checks the column against a range of values, both bounds are inclusive.

        Raises
        ------
        ValueError
            If any of the bounds is *None*
        """
        return self._range(ComparisonOperator.Between, lower, upper)

    def not_between(self, lower: Any, upper: Any) -> LogicalOperator[B]:
        return self._range(ComparisonOperator.NotBetween, lower, upper)

    def is_null(self) -> LogicalOperator[B]:
        return self._add(Comparison(self._column, ComparisonOperator.IsNull))

    def is_not_null(self) -> LogicalOperator[B]:
        return self._add(Comparison(self._column, ComparisonOperator.IsNotNull))

    def _compare(self, operator: ComparisonOperator, value: Any) -> LogicalOperator[B]:
        if isinstance(value, QueryLike):
            return self._add(Comparison(self._column, operator, subquery=value))
        return self._add(Comparison(self._column, operator, (value,)))

    def _membership(self, operator: ComparisonOperator, values: Sequence[Any]) -> LogicalOperator[B]:
        if len(values) == 1:
            if isinstance(values[0], QueryLike):
                return self._add(Comparison(self._column, operator, subquery=values[0]))
            values = enlist(values[0])
        if not values:
            raise ValueError(f"{operator} comparison on column {self._column} requires at least one value")
        return self._add(Comparison(self._column, operator, values))

    def _range(self, operator: ComparisonOperator, lower: Any, upper: Any) -> LogicalOperator[B]:
        if lower is None or upper is None:
            raise ValueError(f"{operator} comparison on column {self._column} requires both bounds")
        return self._add(Comparison(self._column, operator, (lower, upper)))

    def _add(self, comparison: Comparison) -> LogicalOperator[B]:
        self._builder._add_condition(comparison)
        return LogicalOperator(self._builder)


class ConditionBuilder(abc.ABC):
    """Basic implementation of the condition builders for ``WHERE`` and ``HAVING`` clauses.

    Subclasses only determine the keyword that introduces the clause.
    """

    keyword: str = ""

    def __init__(self) -> None:
        self._disjuncts: list[list[Condition]] = [[]]

    def column(self, name: str,
               aggregation: Optional[Callable[[Aggregation], Any]] = None) -> ComparisonHandler:
        """Starts a new comparison on a column.

        Parameters
        ----------
        name : str
            The column to compare
        aggregation : Optional[Callable[[Aggregation], Any]], optional
            A callback to apply aggregate functions to the column, e.g. ``lambda agg: agg.with_aggregation("count")``.
            Its return value is ignored.

        Returns
        -------
        ComparisonHandler
            The handler to specify the actual comparison

        Raises
        ------
        ValueError
            If the aggregation splits the column into multiple aggregates
        """
        column = Column(name)
        if aggregation is not None:
            aggregation(column.aggregate())
        if column.output_count() > 1:
            raise ValueError(f"Column {name} is split into {column.output_count()} aggregates and cannot be compared. "
                             "Use a combining MathOperation instead.")
        return ComparisonHandler(self, column.expression())

    def group(self, callback: Callable[[ConditionBuilder], Any]) -> LogicalOperator:
        """Adds a nested condition, which is configured by `callback` on a fresh builder.

        Empty groups are skipped.
        """
        nested = type(self)()
        callback(nested)
        condition = nested.condition()
        if condition is not None:
            self._add_condition(ConditionGroup(condition))
        return LogicalOperator(self)

    def is_empty(self) -> bool:
        """Checks, whether no comparison has been added to the builder."""
        return not any(self._disjuncts)

    def condition(self) -> Optional[Condition]:
        """Provides the condition tree that was specified so far, or *None* if the builder is empty."""
        conjunctions = [self._conjunction(disjunct) for disjunct in self._disjuncts if disjunct]
        if not conjunctions:
            return None
        if len(conjunctions) == 1:
            return conjunctions[0]
        return CompoundCondition(CompoundOperator.Or, conjunctions)

    def render(self, context: Optional[RenderContext] = None) -> SqlFragment:
        """Renders the complete clause, including a leading space and the keyword.

        Empty builders render as an empty fragment.
        """
        condition = self.condition()
        if condition is None:
            return SqlFragment()
        return f" {self.keyword} " + condition.render(context or DefaultContext)

    def build(self, context: Optional[RenderContext] = None) -> str:
        return self.render(context).text

    def get_values(self, context: Optional[RenderContext] = None) -> dict[int, Any]:
        """Provides the values that are bound to the placeholders of the clause, numbered from 1."""
        context = context or DefaultContext
        if not context.placeholders:
            return {}
        return number_parameters(self.render(context).parameters)

    def _add_condition(self, condition: Condition) -> None:
        self._disjuncts[-1].append(condition)

    def _start_disjunct(self) -> None:
        if self._disjuncts[-1]:
            self._disjuncts.append([])

    @staticmethod
    def _conjunction(conditions: list[Condition]) -> Condition:
        return conditions[0] if len(conditions) == 1 else CompoundCondition(CompoundOperator.And, conditions)

    def __json__(self) -> jsonize.jsondict:
        return {"keyword": self.keyword, "condition": self.condition()}

    def __str__(self) -> str:
        return self.build()


class WhereBuilder(ConditionBuilder):
    """Builds the condition of a ``WHERE`` clause."""

    keyword = "WHERE"

    def where(self, name: str, aggregation: Optional[Callable[[Aggregation], Any]] = None) -> ComparisonHandler:
        """Alias for `column`."""
        return self.column(name, aggregation)


class HavingBuilder(ConditionBuilder):
    """Builds the condition of a ``HAVING`` clause, typically on aggregated columns."""

    keyword = "HAVING"

    def having(self, name: str, aggregation: Optional[Callable[[Aggregation], Any]] = None) -> ComparisonHandler:
        """Alias for `column`."""
        return self.column(name, aggregation)
