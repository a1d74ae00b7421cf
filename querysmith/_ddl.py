"""Builders for data definition statements, i.e. ``CREATE TABLE``, ``ALTER TABLE`` and ``DROP TABLE``.

Column definitions are described by `TableColumn` instances, which combine a column name with a `DataType` and an
arbitrary number of `SQLConstraints`. Both data types and constraints are small value objects that compare equal if they
render to the same SQL text.
"""
from __future__ import annotations

import warnings
from collections.abc import Callable, Iterable
from typing import Any, Optional

from ._core import (DefaultContext, QueryConfigurationError, QueryConstructionWarning, RenderContext, SqlFragment,
                    Statement, StatementKind, render_literal, require_identifier)
from ._columns import Column, ColumnManager, TableColumn
from ._select import QueryModifier
from .util import jsonize


class DataType:
    """The SQL type of a column, e.g. ``VARCHAR(255)`` or ``DECIMAL(10, 2)``.

    The class methods provide the commonly used types. Types that are not covered can be created directly:

    >>> DataType("GEOMETRY")

    Parameters
    ----------
    name : str
        The name of the type
    *arguments : Any
        Type arguments such as length or precision. They are rendered in parentheses after the type name.
    """

    def __init__(self, name: str, *arguments: Any) -> None:
        self._name = require_identifier(name, "type name").upper()
        self._arguments = tuple(str(argument) for argument in arguments)

    @property
    def name(self) -> str:
        return self._name

    @property
    def arguments(self) -> tuple[str, ...]:
        return self._arguments

    @classmethod
    def tinyint(cls) -> DataType:
        return cls("TINYINT")

    @classmethod
    def smallint(cls) -> DataType:
        return cls("SMALLINT")

    @classmethod
    def mediumint(cls) -> DataType:
        return cls("MEDIUMINT")

    @classmethod
    def integer(cls) -> DataType:
        return cls("INT")

    @classmethod
    def bigint(cls) -> DataType:
        return cls("BIGINT")

    @classmethod
    def float(cls) -> DataType:
        return cls("FLOAT")

    @classmethod
    def double(cls) -> DataType:
        return cls("DOUBLE")

    @classmethod
    def decimal(cls, precision: int, scale: int = 0) -> DataType:
        return cls("DECIMAL", precision, scale)

    @classmethod
    def numeric(cls, precision: int, scale: int = 0) -> DataType:
        return cls("NUMERIC", precision, scale)

    @classmethod
    def char(cls, length: int) -> DataType:
        return cls("CHAR", length)

    @classmethod
    def varchar(cls, length: int = 255) -> DataType:
        return cls("VARCHAR", length)

    @classmethod
    def text(cls) -> DataType:
        return cls("TEXT")

    @classmethod
    def tinytext(cls) -> DataType:
        return cls("TINYTEXT")

    @classmethod
    def mediumtext(cls) -> DataType:
        return cls("MEDIUMTEXT")

    @classmethod
    def longtext(cls) -> DataType:
        return cls("LONGTEXT")

    @classmethod
    def date(cls) -> DataType:
        return cls("DATE")

    @classmethod
    def datetime(cls) -> DataType:
        return cls("DATETIME")

    @classmethod
    def timestamp(cls) -> DataType:
        return cls("TIMESTAMP")

    @classmethod
    def time(cls) -> DataType:
        return cls("TIME")

    @classmethod
    def year(cls) -> DataType:
        return cls("YEAR")

    @classmethod
    def boolean(cls) -> DataType:
        return cls("BOOLEAN")

    @classmethod
    def blob(cls) -> DataType:
        return cls("BLOB")

    @classmethod
    def tinyblob(cls) -> DataType:
        return cls("TINYBLOB")

    @classmethod
    def mediumblob(cls) -> DataType:
        return cls("MEDIUMBLOB")

    @classmethod
    def longblob(cls) -> DataType:
        return cls("LONGBLOB")

    @classmethod
    def enum(cls, *values: str) -> DataType:
        """An enumeration type. The values are quoted, e.g. ``ENUM('small', 'large')``."""
        if not values:
            raise ValueError("ENUM types require at least one value")
        return cls("ENUM", *(render_literal(value, quote_strings=True) for value in values))

    @classmethod
    def set(cls, *values: str) -> DataType:
        if not values:
            raise ValueError("SET types require at least one value")
        return cls("SET", *(render_literal(value, quote_strings=True) for value in values))

    def __json__(self) -> str:
        return str(self)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, type(self)) and str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))

    def __repr__(self) -> str:
        return f"DataType({str(self)!r})"

    def __str__(self) -> str:
        if not self._arguments:
            return self._name
        return f"{self._name}({', '.join(self._arguments)})"


class SQLConstraints:
    """A constraint on a column or table, e.g. ``NOT NULL`` or ``FOREIGN KEY (user_id) REFERENCES users(id)``.

    Constraints are created through the class methods and are compared based on their SQL text.
    """

    def __init__(self, text: str) -> None:
        self._text = require_identifier(text, "constraint")

    @property
    def text(self) -> str:
        return self._text

    @classmethod
    def nullable(cls) -> SQLConstraints:
        return cls("NULL")

    @classmethod
    def not_null(cls) -> SQLConstraints:
        return cls("NOT NULL")

    @classmethod
    def primary_key(cls) -> SQLConstraints:
        return cls("PRIMARY KEY")

    @classmethod
    def primary_keys(cls, *columns: str) -> SQLConstraints:
        """A composite primary key, to be used as table constraint."""
        if not columns:
            raise ValueError("Composite primary keys require at least one column")
        return cls(f"PRIMARY KEY ({', '.join(columns)})")

    @classmethod
    def auto_increment(cls) -> SQLConstraints:
        return cls("AUTO_INCREMENT")

    @classmethod
    def unique(cls) -> SQLConstraints:
        return cls("UNIQUE")

    @classmethod
    def unique_key(cls, *columns: str) -> SQLConstraints:
        if not columns:
            raise ValueError("Unique keys require at least one column")
        return cls(f"UNIQUE ({', '.join(columns)})")

    @classmethod
    def default_value(cls, value: Any) -> SQLConstraints:
        """The default value of a column. Strings are quoted and booleans are rendered as ``TRUE`` or ``FALSE``."""
        return cls(f"DEFAULT {render_literal(value, quote_strings=True)}")

    @classmethod
    def check(cls, condition: str) -> SQLConstraints:
        return cls(f"CHECK ({require_identifier(condition, 'check condition')})")

    @classmethod
    def foreign_key(cls, column: str, referenced_table: str, referenced_column: str) -> SQLConstraints:
        return cls(f"FOREIGN KEY ({column}) REFERENCES {referenced_table}({referenced_column})")

    @classmethod
    def on_delete_cascade(cls) -> SQLConstraints:
        return cls("ON DELETE CASCADE")

    @classmethod
    def on_update_cascade(cls) -> SQLConstraints:
        return cls("ON UPDATE CASCADE")

    @classmethod
    def on_delete_set_null(cls) -> SQLConstraints:
        return cls("ON DELETE SET NULL")

    @classmethod
    def on_update_set_null(cls) -> SQLConstraints:
        return cls("ON UPDATE SET NULL")

    def is_primary(self) -> bool:
        """Checks, whether this constraint declares a (possibly composite) primary key."""
        return self._text.startswith("PRIMARY KEY")

    def is_foreign_key(self) -> bool:
        return self._text.startswith("FOREIGN KEY")

    def is_referential_action(self) -> bool:
        """Checks, whether this constraint is an ``ON DELETE`` or ``ON UPDATE`` clause of a foreign key."""
        return self._text.startswith(("ON DELETE", "ON UPDATE"))

    def __json__(self) -> str:
        return self._text

    def __eq__(self, other: object) -> bool:
        return isinstance(other, type(self)) and self._text == other._text

    def __hash__(self) -> int:
        return hash(self._text)

    def __repr__(self) -> str:
        return f"SQLConstraints({self._text!r})"

    def __str__(self) -> str:
        return self._text


def _table_columns(columns: ColumnManager | Iterable[Column]) -> list[TableColumn]:
    resolved = []
    for column in columns:
        if not isinstance(column, TableColumn):
            raise ValueError(f"Column {column.name} has no data type and cannot be part of a table definition")
        resolved.append(column)
    return resolved


class CreateTableHandler(Statement):
    """Builds ``CREATE TABLE`` statements.

    Tables can be created in three different ways, which are mutually exclusive:

    1. from column definitions: ``CREATE TABLE t (id INT PRIMARY KEY, name VARCHAR(255))``
    2. from a query: ``CREATE TABLE t AS SELECT ...``, see `as_select`
    3. as a copy of another table's structure: ``CREATE TABLE t LIKE other``, see `like`

    If more than one column is declared as primary key, the per-column ``PRIMARY KEY`` constraints are replaced by a
    single composite key ``PRIMARY KEY (a, b)`` at the end of the definition.

    Parameters
    ----------
    table : str
        The table to create
    if_not_exists : bool, optional
        Whether to add ``IF NOT EXISTS`` to the statement. Off by default.
    """

    def __init__(self, table: str, *, if_not_exists: bool = False) -> None:
        self._table = require_identifier(table, "table name")
        self._if_not_exists = if_not_exists
        self._columns: list[TableColumn] = []
        self._constraints: list[SQLConstraints] = []
        self._select: Optional[QueryModifier] = None
        self._like: Optional[str] = None

    @property
    def kind(self) -> StatementKind:
        return StatementKind.CreateIfNotExists if self._if_not_exists else StatementKind.Create

    @property
    def table(self) -> str:
        return self._table

    @property
    def columns(self) -> list[TableColumn]:
        return list(self._columns)

    def add_columns(self, columns: ColumnManager | Iterable[Column]) -> CreateTableHandler:
        """Adds column definitions.

        Raises
        ------
        ValueError
            If any of the columns is not a `TableColumn`
        """
        self._columns.extend(_table_columns(columns))
        return self

    def add_column(self, column: TableColumn | str, data_type: Optional[DataType] = None,
                   *constraints: SQLConstraints) -> CreateTableHandler:
        if isinstance(column, str):
            column = TableColumn(column, data_type, *constraints)
        return self.add_columns([column])

    def constraints(self, *constraints: SQLConstraints) -> CreateTableHandler:
        """Adds table-level constraints, e.g. foreign keys. They are rendered after all column definitions."""
        self._constraints.extend(constraints)
        return self

    def as_select(self, select: Optional[QueryModifier] = None) -> QueryModifier:
        """Creates the table from the result of a query.

        Parameters
        ----------
        select : Optional[QueryModifier], optional
            The query to use. If omitted, a new query is created.

        Returns
        -------
        QueryModifier
            The query that produces the table contents, for further configuration
        """
        self._select = select if select is not None else QueryModifier()
        return self._select

    def like(self, source: str) -> CreateTableHandler:
        """Copies the structure of an existing table."""
        self._like = require_identifier(source, "source table")
        return self

    def primary_key_columns(self) -> list[TableColumn]:
        return [column for column in self._columns if column.is_primary_key()]

    def render(self, context: Optional[RenderContext] = None) -> SqlFragment:
        context = context or DefaultContext
        modes = sum([bool(self._columns or self._constraints), self._select is not None, self._like is not None])
        if modes == 0:
            raise QueryConfigurationError(f"Table {self._table} is created without any columns")
        if modes > 1:
            raise QueryConfigurationError(f"Table {self._table} must be created from either columns, a query "
                                          "or another table")

        header = f"{self.kind.value} {self._table}"
        if self._like is not None:
            return SqlFragment(f"{header} LIKE {self._like}")
        if self._select is not None:
            return f"{header} AS " + self._select.render(context)
        return SqlFragment(f"{header} ({', '.join(self._definitions())})")

    def _definitions(self) -> list[str]:
        primary_columns = self.primary_key_columns()
        composite_key = len(primary_columns) > 1 and not any(c.is_primary() for c in self._constraints)
        definitions = [column.definition(include_primary_key=not composite_key) for column in self._columns]
        if composite_key:
            definitions.append(str(SQLConstraints.primary_keys(*(column.name for column in primary_columns))))
        definitions.extend(self._table_constraints())
        return definitions

    def _table_constraints(self) -> list[str]:
        # referential actions belong to the foreign key that precedes them
        rendered: list[str] = []
        current_foreign_key = False
        for constraint in self._constraints:
            if not constraint.is_referential_action():
                rendered.append(str(constraint))
                current_foreign_key = constraint.is_foreign_key()
                continue
            if not current_foreign_key:
                raise QueryConfigurationError(f"Table {self._table}: '{constraint}' must follow a foreign key")
            rendered[-1] += f" {constraint}"
        return rendered

    def __json__(self) -> jsonize.jsondict:
        return {"table": self._table, "if_not_exists": self._if_not_exists, "columns": self._columns,
                "constraints": self._constraints, "like": self._like, "select": self._select}


class DropTableHandler(Statement):
    """Builds ``DROP TABLE`` statements."""

    def __init__(self, table: str) -> None:
        self._table = require_identifier(table, "table name")
        self._if_exists = False

    @property
    def kind(self) -> StatementKind:
        return StatementKind.Drop

    @property
    def table(self) -> str:
        return self._table

    def if_exists(self, enabled: bool = True) -> DropTableHandler:
        self._if_exists = enabled
        return self

    def render(self, context: Optional[RenderContext] = None) -> SqlFragment:
        return SqlFragment(f"DROP TABLE {'IF EXISTS ' if self._if_exists else ''}{self._table}")

    def __json__(self) -> jsonize.jsondict:
        return {"table": self._table, "if_exists": self._if_exists}


class ModifyConstraints:
    """Collects the primary key and unique key changes of an ``ALTER TABLE`` statement.

    Each kind of change can be specified at most once; specifying it again replaces the previous change. The changes are
    rendered in a fixed order: dropping the primary key, adding a primary key, adding a unique key.
    """

    def __init__(self) -> None:
        self._drop_primary_key: Optional[str] = None
        self._add_primary_key: Optional[str] = None
        self._add_unique: Optional[str] = None

    def drop_primary_key(self) -> ModifyConstraints:
        self._drop_primary_key = "DROP PRIMARY KEY"
        return self

    def add_primary_key(self, *columns: str) -> ModifyConstraints:
        if not columns:
            raise ValueError("Primary keys require at least one column")
        self._add_primary_key = f"ADD PRIMARY KEY ({', '.join(columns)})"
        return self

    def add_unique(self, *columns: str) -> ModifyConstraints:
        if not columns:
            raise ValueError("Unique keys require at least one column")
        self._add_unique = f"ADD UNIQUE ({', '.join(columns)})"
        return self

    def fragments(self) -> list[str]:
        return [fragment for fragment in (self._drop_primary_key, self._add_primary_key, self._add_unique) if fragment]

    def is_empty(self) -> bool:
        return not self.fragments()

    def __str__(self) -> str:
        return ", ".join(self.fragments())


class AlterTable(Statement):
    """Builds ``ALTER TABLE`` statements.

    An alteration has three mutually exclusive modes, which are resolved when the statement is rendered:

    1. renaming the table (`rename_to`)
    2. changing the primary and unique keys (`modify_constraints`)
    3. adding and dropping columns (`add` and `drop`)

    If multiple modes are configured, only the first one in this order is rendered and a `QueryConstructionWarning` is
    issued. Only `TableColumn` instances can be added or dropped, all other column objects are ignored.

    Parameters
    ----------
    table : str
        The table to alter
    """

    def __init__(self, table: str) -> None:
        self._table = require_identifier(table, "table name")
        self._new_name: Optional[str] = None
        self._constraints = ModifyConstraints()
        self._column_changes: list[str] = []

    @property
    def kind(self) -> StatementKind:
        return StatementKind.AlterTable

    @property
    def table(self) -> str:
        return self._table

    def rename_to(self, name: str) -> AlterTable:
        """Renames the table. This is rendered as ``ALTER TABLE t RENAME TO name`` and takes priority over all other
        changes."""
        self._new_name = require_identifier(name, "table name")
        return self

    def modify_constraints(self, callback: Callable[[ModifyConstraints], Any]) -> AlterTable:
        callback(self._constraints)
        return self

    def add(self, column: Column | str, data_type: Optional[DataType] = None,
            *constraints: SQLConstraints) -> AlterTable:
        """Adds a new column. The column is either given directly, or by its name and data type."""
        if isinstance(column, str):
            column = TableColumn(column, data_type, *constraints)
        if not isinstance(column, TableColumn):
            return self
        self._column_changes.append(f"ADD COLUMN {column.definition()}")
        return self

    def drop(self, column: Column | str) -> AlterTable:
        if isinstance(column, str):
            self._column_changes.append(f"DROP COLUMN {require_identifier(column, 'column name')}")
        elif isinstance(column, TableColumn):
            self._column_changes.append(f"DROP COLUMN {column.name}")
        return self

    def render(self, context: Optional[RenderContext] = None) -> SqlFragment:
        header = f"ALTER TABLE {self._table} "
        if self._new_name is not None:
            self._warn_shadowed("rename", not self._constraints.is_empty() or bool(self._column_changes))
            return SqlFragment(f"{header}RENAME TO {self._new_name}")
        if not self._constraints.is_empty():
            self._warn_shadowed("key modification", bool(self._column_changes))
            return SqlFragment(header + str(self._constraints))
        if self._column_changes:
            return SqlFragment(header + ", ".join(self._column_changes))
        raise QueryConfigurationError(f"Alteration of table {self._table} does not specify any changes")

    def _warn_shadowed(self, mode: str, shadowed: bool) -> None:
        if shadowed:
            warnings.warn(f"Alteration of table {self._table} uses the {mode} mode, other changes are ignored",
                          category=QueryConstructionWarning)

    def __json__(self) -> jsonize.jsondict:
        return {"table": self._table, "rename_to": self._new_name, "constraints": self._constraints.fragments(),
                "columns": self._column_changes}
