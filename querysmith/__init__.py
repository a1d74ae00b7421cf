"""querysmith - A fluent builder for SQL statements and their prepared-statement parameters.

The central entry point is the `QueryBuilder`. A builder holds exactly one statement at a time: selecting a statement kind
(`QueryBuilder.select`, `QueryBuilder.update`, `QueryBuilder.insert_into`, ...) provides a specialized builder that is
configured through method chaining and callbacks. Afterwards, `QueryBuilder.build` produces the SQL text and
`QueryBuilder.get_values` produces the values for the placeholders in that text, keyed by their 1-based position:

>>> query = QueryBuilder()
>>> _ = query.update("users", lambda update: update.put("name", "Bob")).where(lambda where: where.column("id").equal(3))
>>> query.build()
'UPDATE users SET name = ? WHERE id = ?;'
>>> query.get_values()
{1: 'Bob', 2: 3}

The text and the values are always computed by the same rendering pass. Hence, the number and order of the values always
match the placeholders in the text, no matter how deeply sub-queries are nested.

On a high level, querysmith is structured as follows:

- the `QueryBuilder` facade and the `QueryDefinition` wrapper for raw or built queries
- the select composition (`QueryModifier`, `JoinBuilder`, `OrderByBuilder`, ...) for ``SELECT`` statements, which can also
  be embedded into other statements as sub-queries
- the column model (`Column`, `Aggregation`, `ColumnManager`, ...) to describe output columns, including aggregate functions
  and rounding
- the condition model (`WhereBuilder`, `HavingBuilder`) to describe ``WHERE`` and ``HAVING`` clauses
- the mutation builders (`InsertHandler`, `UpdateBuilder`, `QueryRemover`) for ``INSERT``, ``UPDATE`` and ``DELETE``
- the DDL builders (`CreateTableHandler`, `AlterTable`, `DropTableHandler`) along with `DataType` and `SQLConstraints`
- the `WithManager` for statements with common table expressions
- the `util` package, which contains general utilities such as errors, logging and JSON export


Placeholders
------------

By default, all values are replaced by the placeholder marker ``?``. If placeholders are disabled (either in the constructor
or via `QueryBuilder.set_placeholders`), values are embedded as literals instead and `QueryBuilder.get_values` is empty. The
settings of a builder are captured in a `RenderContext` when the statement is rendered. This context is handed down to all
nested builders, including sub-queries. Therefore, an embedded builder always follows the settings of the statement that
embeds it.


Errors
------

Statements that cannot be rendered, e.g. because no statement kind has been selected or an ``UPDATE`` does not assign any
columns, raise a `QueryConfigurationError` when they are built. Invalid direct input, such as an empty ``IN`` list, raises a
`ValueError` immediately. Configurations that are accepted but only partially rendered issue a `QueryConstructionWarning`.
"""

from . import util
from ._builder import QueryBuilder, QueryDefinition
from ._columns import (
    AggregateFunction,
    Aggregation,
    Column,
    ColumnBuilder,
    ColumnManager,
    MathOperation,
    TableColumn,
)
from ._conditions import (
    Comparison,
    ComparisonHandler,
    ComparisonOperator,
    CompoundCondition,
    CompoundOperator,
    Condition,
    ConditionBuilder,
    ConditionGroup,
    HavingBuilder,
    LogicalOperator,
    WhereBuilder,
)
from ._core import (
    QueryConfigurationError,
    QueryConstructionWarning,
    QueryLike,
    RenderContext,
    SqlFragment,
    Statement,
    StatementKind,
    render_literal,
)
from ._ddl import (
    AlterTable,
    CreateTableHandler,
    DataType,
    DropTableHandler,
    ModifyConstraints,
    SQLConstraints,
)
from ._mutations import InsertHandler, QueryRemover, UpdateBuilder
from ._select import (
    GroupByBuilder,
    JoinBuilder,
    JoinClause,
    JoinType,
    OrderByBuilder,
    OrderByExpression,
    QueryModifier,
    Selector,
    TableSource,
)
from ._with import CommonTableExpression, WithManager

__version__ = "0.4.0"

__all__ = [
    "util",
    "QueryBuilder",
    "QueryDefinition",
    "AggregateFunction",
    "Aggregation",
    "Column",
    "ColumnBuilder",
    "ColumnManager",
    "MathOperation",
    "TableColumn",
    "Comparison",
    "ComparisonHandler",
    "ComparisonOperator",
    "CompoundCondition",
    "CompoundOperator",
    "Condition",
    "ConditionBuilder",
    "ConditionGroup",
    "HavingBuilder",
    "LogicalOperator",
    "WhereBuilder",
    "QueryConfigurationError",
    "QueryConstructionWarning",
    "QueryLike",
    "RenderContext",
    "SqlFragment",
    "Statement",
    "StatementKind",
    "render_literal",
    "AlterTable",
    "CreateTableHandler",
    "DataType",
    "DropTableHandler",
    "ModifyConstraints",
    "SQLConstraints",
    "InsertHandler",
    "QueryRemover",
    "UpdateBuilder",
    "GroupByBuilder",
    "JoinBuilder",
    "JoinClause",
    "JoinType",
    "OrderByBuilder",
    "OrderByExpression",
    "QueryModifier",
    "Selector",
    "TableSource",
    "CommonTableExpression",
    "WithManager",
]
