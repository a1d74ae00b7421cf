from __future__ import annotations

import abc
import enum
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

from .util.errors import StateError


class QueryConfigurationError(StateError):
    """Indicates that a builder cannot render a statement because its configuration is incomplete or contradictory.

    Typical examples are building a query without ever selecting a statement kind, or an ``UPDATE`` without any
    assignments.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)


class QueryConstructionWarning(UserWarning):
    """Warning to indicate that a builder accepted a configuration but had to drop or ignore parts of it."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)


class StatementKind(enum.Enum):
    """Describes the different kinds of statements that can be constructed by a `QueryBuilder`.

    The values of the enum members correspond to the SQL keywords that introduce the statement. `None_` is the state of a
    fresh builder that has not been configured yet.
    """
    None_ = ""
    Select = "SELECT"
    Insert = "INSERT INTO"
    Update = "UPDATE"
    Delete = "DELETE FROM"
    Create = "CREATE TABLE"
    CreateIfNotExists = "CREATE TABLE IF NOT EXISTS"
    Drop = "DROP TABLE"
    AlterTable = "ALTER TABLE"
    MergeInto = "MERGE INTO"
    ReplaceInto = "REPLACE INTO"
    With = "WITH"

    @staticmethod
    def parse(text: str) -> StatementKind:
        """Determines the statement kind that is denoted by a keyword.

        Both the SQL keyword (e.g. ``"insert into"``) and the name of the enum member (e.g. ``"Insert"``) are accepted.
        Comparison ignores case and redundant whitespace.

        Parameters
        ----------
        text : str
            The keyword to parse

        Returns
        -------
        StatementKind
            The matching kind, or `None_` if the keyword is unknown.
        """
        normalized = _normalize_keyword(text)
        if not normalized:
            return StatementKind.None_
        for kind in StatementKind:
            if kind.value == normalized or kind.name.upper() == normalized:
                return kind
        return StatementKind.None_

    @staticmethod
    def parse_prefix(text: str) -> StatementKind:
        """Determines the statement kind of a raw SQL statement based on the keyword it starts with.

        If multiple keywords match (e.g. ``CREATE TABLE`` and ``CREATE TABLE IF NOT EXISTS``), the longest one wins.
        Returns `None_` if the statement does not start with a known keyword.
        """
        normalized = _normalize_keyword(text)
        candidates = sorted((kind for kind in StatementKind if kind.value), key=lambda kind: len(kind.value), reverse=True)
        for kind in candidates:
            if normalized == kind.value or normalized.startswith(kind.value + " "):
                return kind
        return StatementKind.None_

    def is_insert_like(self) -> bool:
        """Checks, whether this kind renders an ``INSERT``-shaped statement, i.e. ``INSERT``, ``MERGE`` or ``REPLACE``."""
        return self in {StatementKind.Insert, StatementKind.MergeInto, StatementKind.ReplaceInto}

    def is_create(self) -> bool:
        return self in {StatementKind.Create, StatementKind.CreateIfNotExists}

    def __str__(self) -> str:
        return self.value


def _normalize_keyword(text: str) -> str:
    return " ".join(text.split()).upper().rstrip(";") if text else ""


def render_literal(value: Any, *, quote_strings: bool = False) -> str:
    """Provides the SQL text for a value that is embedded directly into a statement.

    ``None`` is rendered as ``NULL`` and booleans as ``TRUE`` / ``FALSE``. All other values use their string
    representation. Strings are only put in single quotes (with embedded quotes escaped) if `quote_strings` is enabled.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, str) and quote_strings:
        escaped = value.replace("'", "''")
        return f"'{escaped}'"
    return str(value)


@dataclass(frozen=True)
class SqlFragment:
    """A piece of SQL text together with the values that are bound to the placeholders it contains.

    Fragments are the output of every rendering step. Since text and parameters are always produced by the same walk
    over the builder structures, the order of the parameters always matches the order of the placeholder markers in the
    text.

    Attributes
    ----------
    text : str
        The rendered SQL text
    parameters : tuple[Any, ...]
        The bound values, in the order of their markers in `text`
    """
    text: str = ""
    parameters: tuple[Any, ...] = ()

    @staticmethod
    def of(text: str, parameters: Iterable[Any] = ()) -> SqlFragment:
        return SqlFragment(text, tuple(parameters))

    @staticmethod
    def join(separator: str, fragments: Iterable[SqlFragment | str]) -> SqlFragment:
        """Concatenates a number of fragments, putting `separator` between each pair of fragments."""
        fragments = [SqlFragment.lift(fragment) for fragment in fragments]
        text = separator.join(fragment.text for fragment in fragments)
        parameters = tuple(param for fragment in fragments for param in fragment.parameters)
        return SqlFragment(text, parameters)

    @staticmethod
    def lift(fragment: SqlFragment | str) -> SqlFragment:
        return fragment if isinstance(fragment, SqlFragment) else SqlFragment(fragment)

    def wrap(self, prefix: str = "(", suffix: str = ")") -> SqlFragment:
        return SqlFragment(prefix + self.text + suffix, self.parameters)

    def is_empty(self) -> bool:
        return not self.text

    def __add__(self, other: SqlFragment | str) -> SqlFragment:
        other = SqlFragment.lift(other)
        return SqlFragment(self.text + other.text, self.parameters + other.parameters)

    def __radd__(self, other: str) -> SqlFragment:
        return SqlFragment(other + self.text, self.parameters)

    def __bool__(self) -> bool:
        return bool(self.text)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class RenderContext:
    """Captures all settings that influence how a statement is turned into SQL text.

    The context is created once by the `QueryBuilder` that renders a statement and handed down to every nested builder,
    including the builders of sub-queries. Therefore, a sub-query always follows the placeholder mode of the statement
    that embeds it.

    Attributes
    ----------
    placeholders : bool
        Whether values are replaced by `marker` and collected as parameters. If disabled, values are embedded as literals.
    marker : str
        The placeholder marker, ``?`` by default.
    quote_literals : bool
        Whether string literals should be put in single quotes when placeholders are disabled. Off by default, i.e.
        strings are embedded verbatim.
    """
    placeholders: bool = True
    marker: str = "?"
    quote_literals: bool = False

    def value(self, value: Any) -> SqlFragment:
        """Renders a single bound value, either as placeholder or as a literal."""
        if self.placeholders:
            return SqlFragment(self.marker, (value,))
        return SqlFragment(render_literal(value, quote_strings=self.quote_literals))

    def values(self, values: Sequence[Any], *, separator: str = ", ") -> SqlFragment:
        return SqlFragment.join(separator, [self.value(value) for value in values])


DefaultContext = RenderContext()
"""The context that is used if a builder is rendered on its own, i.e. with placeholders enabled."""


@runtime_checkable
class QueryLike(Protocol):
    """Protocol for objects that can be embedded as a sub-query, i.e. other query builders."""

    def render(self, context: Optional[RenderContext] = None) -> SqlFragment:
        ...

    def columns_set(self) -> Optional[int]:
        ...


def number_parameters(parameters: Iterable[Any]) -> dict[int, Any]:
    """Assigns the 1-based placeholder positions to a sequence of bound values."""
    return {position: value for position, value in enumerate(parameters, start=1)}


def require_identifier(name: str, description: str = "identifier") -> str:
    """Ensures that a table or column name is not empty.

    Raises
    ------
    ValueError
        If `name` is empty or only contains whitespace
    """
    if not name or not str(name).strip():
        raise ValueError(f"The {description} must not be empty")
    return name


class Statement(abc.ABC):
    """Basic interface of all statement variants that a `QueryBuilder` can hold.

    Each variant knows how to render itself. The query builder only adds the terminating semicolon and numbers the
    parameters.
    """

    @property
    @abc.abstractmethod
    def kind(self) -> StatementKind:
        """The kind of statement that is rendered by this variant."""
        raise NotImplementedError

    @abc.abstractmethod
    def render(self, context: Optional[RenderContext] = None) -> SqlFragment:
        """Renders the statement without the terminating semicolon.

        Raises
        ------
        QueryConfigurationError
            If the statement is not configured sufficiently to be rendered
        """
        raise NotImplementedError

    def columns_set(self) -> Optional[int]:
        """Provides the number of columns that the statement writes or reads, if that notion applies to it."""
        return None

    def build(self, context: Optional[RenderContext] = None) -> str:
        return self.render(context).text

    def get_values(self, context: Optional[RenderContext] = None) -> dict[int, Any]:
        """Provides the values of all placeholders in the statement, numbered from 1."""
        context = context or DefaultContext
        if not context.placeholders:
            return {}
        return number_parameters(self.render(context).parameters)

    def __str__(self) -> str:
        return self.build()
