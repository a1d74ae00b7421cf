from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Optional

from ._core import QueryConfigurationError, require_identifier
from .util import jsonize
from .util.errors import StateError

if TYPE_CHECKING:
    from ._ddl import DataType, SQLConstraints


class AggregateFunction(enum.Enum):
    """The aggregate functions that are directly supported by the column model.

    Other functions can still be used by passing their name as a string.
    """
    Count = "COUNT"
    Avg = "AVG"
    Sum = "SUM"
    Min = "MIN"
    Max = "MAX"
    Round = "ROUND"

    def __str__(self) -> str:
        return self.value


class MathOperation(enum.Enum):
    """Describes how multiple aggregate functions on the same column are combined.

    All members except for `PerRound` are binary arithmetic operators and combine the functions into a single expression,
    such as ``SUM(x) + AVG(x)``. Rounding is applied to that combined expression. `PerRound` is the *split* operation: each
    function is kept as its own output expression and rounding is applied to each function individually.
    """
    Add = "+"
    Subtract = "-"
    Multiply = "*"
    Divide = "/"
    Modulus = "%"
    Exponentiate = "^"
    BitwiseAnd = "&"
    BitwiseOr = "|"
    ShiftLeft = "<<"
    ShiftRight = ">>"
    PerRound = ","

    def is_split(self) -> bool:
        """Checks, whether this operation rounds each aggregate function separately."""
        return self == MathOperation.PerRound

    def __str__(self) -> str:
        return self.value


def _function_name(function: AggregateFunction | str) -> str:
    if isinstance(function, AggregateFunction):
        return function.value
    require_identifier(function, "aggregate function")
    return function.strip().upper()


class Aggregation:
    """Aggregation describes the aggregate functions and the rounding that are applied to a single column.

    Aggregations are configured through method chaining. Each configuration method returns the aggregation itself, such
    that calls can be combined freely. Once the column is fully specified, `column` continues with the next column of the
    enclosing `ColumnManager` and `finish` hands control back to the manager.

    The rendering rules are as follows:

    - without any functions and without rounding, the plain column name is used
    - without any functions but with rounding, the column name is rounded: ``ROUND(x, 2)``
    - with a split operation (`MathOperation.PerRound`), each function is rounded on its own:
      ``ROUND(SUM(x), 2), ROUND(AVG(x), 2)``
    - with any other operation, the functions are combined first and rounded afterwards: ``ROUND(SUM(x) + AVG(x), 2)``

    Parameters
    ----------
    column : Column
        The column that is aggregated
    manager : Optional[ColumnManager], optional
        The manager that created the column. This is only required to continue the method chain via `column` and `finish`.
    """

    def __init__(self, column: Column, manager: Optional[ColumnManager] = None) -> None:
        self._column = column
        self._manager = manager
        self._functions: list[AggregateFunction | str] = []
        self._operation = MathOperation.PerRound
        self._precision: Optional[int] = None
        self._mode: Optional[str] = None

    @property
    def functions(self) -> list[AggregateFunction | str]:
        return list(self._functions)

    @property
    def operation(self) -> MathOperation:
        return self._operation

    @property
    def precision(self) -> Optional[int]:
        return self._precision

    @property
    def mode(self) -> Optional[str]:
        return self._mode

    def with_aggregation(self, function: AggregateFunction | str, *,
                         operation: Optional[MathOperation] = None) -> Aggregation:
        """Adds another aggregate function. If `operation` is given, it replaces the current combining operation."""
        return self.with_aggregations(function, operation=operation)

    def with_aggregations(self, *functions: AggregateFunction | str,
                          operation: Optional[MathOperation] = None) -> Aggregation:
        """Adds multiple aggregate functions at once, keeping their order."""
        for function in functions:
            _function_name(function)
            self._functions.append(function)
        if operation is not None:
            self._operation = operation
        return self

    def round(self, precision: int, mode: Optional[str] = None, *,
              operation: Optional[MathOperation] = None) -> Aggregation:
        """Rounds the column expression to `precision` digits.

        Parameters
        ----------
        precision : int
            The number of digits to keep
        mode : Optional[str], optional
            A rounding mode that is appended verbatim as third argument of ``ROUND``. Only rendered if set.
        operation : Optional[MathOperation], optional
            If given, replaces the operation that combines multiple functions. This determines whether the rounding applies
            to each function or to the combined expression.
        """
        if precision < 0:
            raise ValueError(f"Rounding precision must not be negative, but was {precision}")
        self._precision = precision
        self._mode = mode
        if operation is not None:
            self._operation = operation
        return self

    def column(self, name: str, alias: Optional[str] = None) -> Aggregation:
        """Adds the next column to the enclosing manager and provides its aggregation."""
        return self.finish().column(name, alias)

    def finish(self) -> ColumnManager:
        """Provides the column manager that this aggregation belongs to.

        Raises
        ------
        StateError
            If the aggregation was created for a standalone column
        """
        if self._manager is None:
            raise StateError(f"Aggregation of column {self._column.name} is not attached to a column manager")
        return self._manager

    def is_empty(self) -> bool:
        """Checks, whether the aggregation neither applies any functions nor rounds the column."""
        return not self._functions and self._precision is None

    def output_count(self) -> int:
        """Provides the number of output expressions, i.e. the number of functions for a split aggregation."""
        if self._operation.is_split() and len(self._functions) > 1:
            return len(self._functions)
        return 1

    def render(self, expression: str) -> str:
        """Applies the aggregation to a column expression."""
        applied = [f"{_function_name(function)}({expression})" for function in self._functions]
        if not applied:
            return self._round(expression)
        if self._operation.is_split():
            return ", ".join(self._round(function) for function in applied)
        combined = f" {self._operation.value} ".join(applied)
        return self._round(combined)

    def _round(self, expression: str) -> str:
        if self._precision is None:
            return expression
        arguments = [expression, str(self._precision)]
        if self._mode is not None:
            arguments.append(self._mode)
        return f"{AggregateFunction.Round.value}({', '.join(arguments)})"

    def __json__(self) -> jsonize.jsondict:
        return {"functions": [_function_name(function) for function in self._functions], "operation": self._operation,
                "precision": self._precision, "mode": self._mode}

    def __repr__(self) -> str:
        return (f"Aggregation(functions={self._functions}, operation={self._operation}, "
                f"precision={self._precision}, mode={self._mode})")

    def __str__(self) -> str:
        return self.render(self._column.name)


class Column:
    """A column that is part of a statement, e.g. as output of a ``SELECT`` or as source of a comparison.

    Parameters
    ----------
    name : str
        The column name. This can also be a qualified name such as ``u.name``.
    alias : Optional[str], optional
        The output name of the column
    """

    def __init__(self, name: str, alias: Optional[str] = None) -> None:
        self._name = require_identifier(name, "column name")
        self._alias = alias if alias else None
        self._aggregation: Optional[Aggregation] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def alias(self) -> Optional[str]:
        return self._alias

    @property
    def aggregation(self) -> Optional[Aggregation]:
        return self._aggregation

    def aggregate(self, manager: Optional[ColumnManager] = None) -> Aggregation:
        """Provides the aggregation of this column, creating a new one if necessary."""
        if self._aggregation is None:
            self._aggregation = Aggregation(self, manager)
        return self._aggregation

    def expression(self) -> str:
        """Renders the column without its alias."""
        if self._aggregation is None:
            return self._name
        return self._aggregation.render(self._name)

    def output_count(self) -> int:
        """Provides the number of output columns. A split aggregation produces one output per aggregate function."""
        return self._aggregation.output_count() if self._aggregation is not None else 1

    def render(self) -> str:
        """Renders the column including its alias, e.g. ``ROUND(SUM(price), 2) AS total``.

        Raises
        ------
        QueryConfigurationError
            If the column has an alias but produces multiple outputs due to a split aggregation
        """
        expression = self.expression()
        if not self._alias:
            return expression
        if self.output_count() > 1:
            raise QueryConfigurationError(f"Column {self._name} produces {self.output_count()} outputs and cannot be "
                                          f"aliased as {self._alias}")
        return f"{expression} AS {self._alias}"

    def __json__(self) -> jsonize.jsondict:
        return {"name": self._name, "alias": self._alias, "aggregation": self._aggregation}

    def __repr__(self) -> str:
        return f"Column(name={self._name!r}, alias={self._alias!r})"

    def __str__(self) -> str:
        return self.render()


class TableColumn(Column):
    """A column definition as it is used in ``CREATE TABLE`` and ``ALTER TABLE`` statements.

    Parameters
    ----------
    name : str
        The column name
    data_type : DataType
        The type of the column
    *constraints : SQLConstraints
        The constraints of the column, in the order in which they should be rendered
    """

    def __init__(self, name: str, data_type: DataType, *constraints: SQLConstraints) -> None:
        super().__init__(name)
        if data_type is None:
            raise ValueError(f"Column {name} requires a data type")
        self._data_type = data_type
        self._constraints = tuple(constraint for constraint in constraints if constraint is not None)

    @property
    def data_type(self) -> DataType:
        return self._data_type

    @property
    def constraints(self) -> tuple[SQLConstraints, ...]:
        return self._constraints

    def is_primary_key(self) -> bool:
        return any(constraint.is_primary() for constraint in self._constraints)

    def definition(self, *, include_primary_key: bool = True) -> str:
        """Renders the column definition ``name type constraints``.

        If `include_primary_key` is disabled, primary key constraints are skipped. This is used for tables with a
        composite key, which is declared as a separate table constraint.
        """
        parts = [self.name, str(self._data_type)]
        parts.extend(str(constraint) for constraint in self._constraints
                     if include_primary_key or not constraint.is_primary())
        return " ".join(parts)

    def __json__(self) -> jsonize.jsondict:
        return {"name": self.name, "data_type": str(self._data_type),
                "constraints": [str(constraint) for constraint in self._constraints]}

    def __repr__(self) -> str:
        return f"TableColumn(name={self.name!r}, data_type={self._data_type!r}, constraints={self._constraints!r})"

    def __str__(self) -> str:
        return self.definition()


class ColumnBuilder:
    """An ordered collection of columns, e.g. the output columns of a ``SELECT`` statement."""

    def __init__(self, columns: Optional[Iterable[Column]] = None) -> None:
        self._columns: list[Column] = list(columns) if columns else []

    @property
    def columns(self) -> list[Column]:
        return list(self._columns)

    def add(self, column: Column | str, alias: Optional[str] = None) -> ColumnBuilder:
        """Appends a column. Strings are turned into plain columns with the given alias."""
        self._columns.append(column if isinstance(column, Column) else Column(column, alias))
        return self

    def add_all(self, columns: Iterable[Column | str]) -> ColumnBuilder:
        for column in columns:
            self.add(column)
        return self

    def is_empty(self) -> bool:
        return not self._columns

    def build(self) -> str:
        """Renders all columns, separated by commas. An empty builder renders as an empty string."""
        return ", ".join(column.render() for column in self._columns)

    def output_count(self) -> int:
        """Provides the number of output columns, counting each output of a split aggregation."""
        return sum(column.output_count() for column in self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __iter__(self) -> Iterator[Column]:
        return iter(self._columns)

    def __json__(self) -> jsonize.jsondict:
        return {"columns": self._columns}

    def __str__(self) -> str:
        return self.build()


class ColumnManager:
    """The column manager is the entry point to specify columns through method chaining.

    It supports both output columns for ``SELECT`` statements (including their aggregations) and column definitions for
    ``CREATE TABLE`` statements:

    >>> manager = ColumnManager().column("price").with_aggregation("sum").round(2).column("name").finish()
    >>> table = ColumnManager().table_column("id", DataType.integer(), SQLConstraints.primary_key())
    """

    def __init__(self) -> None:
        self._columns: list[Column] = []

    @property
    def columns(self) -> list[Column]:
        return list(self._columns)

    def column(self, name: str, alias: Optional[str] = None) -> Aggregation:
        """Adds a new column and provides its aggregation for further configuration."""
        column = Column(name, alias)
        self._columns.append(column)
        return column.aggregate(self)

    def table_column(self, name: str, data_type: DataType, *constraints: SQLConstraints) -> ColumnManager:
        """Adds a new column definition for ``CREATE TABLE`` statements."""
        self._columns.append(TableColumn(name, data_type, *constraints))
        return self

    def add(self, column: Column) -> ColumnManager:
        self._columns.append(column)
        return self

    def add_all(self, columns: Iterable[Column]) -> ColumnManager:
        self._columns.extend(columns)
        return self

    def table_columns(self) -> list[TableColumn]:
        return [column for column in self._columns if isinstance(column, TableColumn)]

    def to_builder(self) -> ColumnBuilder:
        return ColumnBuilder(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __iter__(self) -> Iterator[Column]:
        return iter(self._columns)

    def __json__(self) -> jsonize.jsondict:
        return {"columns": self._columns}

    def __repr__(self) -> str:
        return f"ColumnManager({self._columns!r})"
