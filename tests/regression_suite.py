from __future__ import annotations

import abc
import json
import unittest
from typing import Any

import pglast

import querysmith as qs


def _normalize_query(query: object) -> str:
    return str(query).strip().removesuffix(";").lower()


class QueryTestCase(unittest.TestCase, abc.ABC):
    """Abstract test case that provides assertions on the text and the parameters of generated statements."""

    def assertQueriesEqual(self, first_query: object, second_query: object, message: str = "") -> None:
        """Assertion that fails if the two queries differ in a _significant_ way.

        This method is heavily heuristic and compares the two query strings according to the following rules:

        - leading/trailing whitespace is ignored
        - a trailing semicolon is ignored
        - upper/lowercase is ignored throughout the query

        Each other difference results in failure of the assertion. This includes optional parentheses as well as
        insignificant whitespace within the query.
        """
        return self.assertEqual(_normalize_query(first_query), _normalize_query(second_query), message)

    def assertStatement(self, query: qs.QueryBuilder, expected_sql: str, expected_values: dict[int, Any],
                        message: str = "") -> None:
        """Assertion that fails if the builder produces a different statement or different placeholder values.

        In addition, the number of values has to match the number of placeholder markers in the statement.
        """
        sql = query.build()
        values = query.get_values()
        self.assertEqual(sql, expected_sql, message)
        self.assertEqual(values, expected_values, message)
        self.assertPlaceholdersAligned(query)

    def assertPlaceholdersAligned(self, query: qs.QueryBuilder) -> None:
        """Assertion that fails if the positions of the values are not exactly ``1..k`` for ``k`` placeholder markers."""
        sql = query.build()
        values = query.get_values()
        marker = query.context().marker if query.placeholders else None
        expected_count = sql.count(marker) if marker else 0
        self.assertEqual(list(values.keys()), list(range(1, expected_count + 1)),
                         f"Values {values} do not match the placeholders of {sql}")

    def assertValidPostgres(self, sql: str) -> None:
        """Assertion that fails if the statement is not syntactically valid according to the Postgres parser."""
        try:
            parsed = json.loads(pglast.parser.parse_sql_json(sql))
        except pglast.parser.ParseError as e:
            raise AssertionError(f"Statement is not valid SQL: {sql} ({e})") from e
        self.assertTrue(parsed["stmts"], f"Statement {sql} was parsed as an empty statement")
