from __future__ import annotations

import warnings
from typing import Optional

from ._core import (DefaultContext, QueryConfigurationError, QueryConstructionWarning, QueryLike, RenderContext,
                    SqlFragment, Statement, StatementKind, require_identifier)
from .util import jsonize


class CommonTableExpression:
    """A single named query of a ``WITH`` statement, e.g. ``adults (id, name) AS (SELECT ...)``.

    Parameters
    ----------
    manager : WithManager
        The statement that the CTE belongs to
    alias : str
        The name under which the query result can be referenced
    """

    def __init__(self, manager: WithManager, alias: str) -> None:
        self._manager = manager
        self._alias = require_identifier(alias, "CTE name")
        self._query: Optional[QueryLike] = None
        self._columns: list[str] = []
        self._select: list[str] = []

    @property
    def alias(self) -> str:
        return self._alias

    @property
    def query_builder(self) -> Optional[QueryLike]:
        return self._query

    @property
    def output_columns(self) -> list[str]:
        return list(self._columns)

    def query(self, query: QueryLike) -> CommonTableExpression:
        """Sets the query that computes the CTE."""
        self._query = query
        return self

    def columns(self, *names: str) -> CommonTableExpression:
        """Renames the output columns of the query.

        The number of names should match the number of columns that the query selects. Otherwise, the renaming is dropped
        when the statement is rendered.
        """
        self._columns = [require_identifier(name, "column name") for name in names]
        return self

    def select(self, *names: str) -> CommonTableExpression:
        """Sets the columns that the main query reads from this CTE, if the statement does not have an explicit body."""
        self._select = [require_identifier(name, "column name") for name in names]
        return self

    def as_(self, alias: str) -> CommonTableExpression:
        """Continues with the next CTE of the same statement."""
        return self._manager.as_(alias)

    def finish(self) -> WithManager:
        return self._manager

    def render(self, context: RenderContext) -> SqlFragment:
        if self._query is None:
            raise QueryConfigurationError(f"CTE {self._alias} does not specify a query")
        columns = self._rename_list()
        header = f"{self._alias} ({', '.join(columns)}) AS " if columns else f"{self._alias} AS "
        return header + self._query.render(context).wrap()

    def final_select(self) -> str:
        """Provides the ``SELECT`` that reads this CTE as part of the main query."""
        return f"SELECT {', '.join(self._select) if self._select else '*'} FROM {self._alias}"

    def _rename_list(self) -> list[str]:
        if not self._columns:
            return []
        selected = self._query.columns_set()
        if selected and selected != len(self._columns):
            warnings.warn(f"CTE {self._alias} renames {len(self._columns)} columns, but its query selects {selected} "
                          "columns. Renaming is ignored.", category=QueryConstructionWarning)
            return []
        return self._columns

    def __json__(self) -> jsonize.jsondict:
        return {"alias": self._alias, "columns": self._columns, "select": self._select,
                "query": self._query is not None}


class WithManager(Statement):
    """Builds statements that start with common table expressions, i.e. ``WITH ... SELECT ...``.

    The main part of the statement is either given explicitly through `body`, or derived from the CTEs: a single CTE is
    read completely (``SELECT * FROM cte``) and multiple CTEs are combined through ``UNION ALL`` if `union` is enabled.

    Values are collected in rendering order, i.e. first the values of all CTEs and afterwards the values of the body.
    """

    def __init__(self) -> None:
        self._ctes: list[CommonTableExpression] = []
        self._body: Optional[QueryLike] = None
        self._union = False
        self._recursive = False

    @property
    def kind(self) -> StatementKind:
        return StatementKind.With

    @property
    def ctes(self) -> list[CommonTableExpression]:
        return list(self._ctes)

    def as_(self, alias: str) -> CommonTableExpression:
        """Adds a new CTE with the given name.

        Raises
        ------
        ValueError
            If a CTE with the same name already exists
        """
        if any(cte.alias == alias for cte in self._ctes):
            raise ValueError(f"CTE {alias} is already defined")
        cte = CommonTableExpression(self, alias)
        self._ctes.append(cte)
        return cte

    def body(self, query: QueryLike) -> WithManager:
        """Sets the main query of the statement."""
        self._body = query
        return self

    def union(self, enabled: bool = True) -> WithManager:
        """Combines the CTEs through ``UNION ALL`` if the statement does not have an explicit body."""
        self._union = enabled
        return self

    def recursive(self, enabled: bool = True) -> WithManager:
        self._recursive = enabled
        return self

    def columns_set(self) -> Optional[int]:
        return self._body.columns_set() if self._body is not None else None

    def render(self, context: Optional[RenderContext] = None) -> SqlFragment:
        context = context or DefaultContext
        if not self._ctes:
            raise QueryConfigurationError("WITH statement does not define any common table expressions")
        keyword = "WITH RECURSIVE " if self._recursive else "WITH "
        statement = keyword + SqlFragment.join(", ", [cte.render(context) for cte in self._ctes])
        return statement + " " + self._render_main(context)

    def _render_main(self, context: RenderContext) -> SqlFragment:
        if self._body is not None:
            return self._body.render(context)
        if len(self._ctes) == 1:
            return SqlFragment(self._ctes[0].final_select())
        if not self._union:
            raise QueryConfigurationError("WITH statement with multiple CTEs requires either a body or a union")
        return SqlFragment(" UNION ALL ".join(cte.final_select() for cte in self._ctes))

    def __json__(self) -> jsonize.jsondict:
        return {"ctes": self._ctes, "union": self._union, "recursive": self._recursive,
                "body": self._body is not None}
