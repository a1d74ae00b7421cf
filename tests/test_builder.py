"""Tests for the query builder facade, the statement kinds and query definitions."""
from __future__ import annotations

import io
import json
import unittest

import querysmith as qs
from querysmith import StatementKind
from tests import regression_suite


class QueryBuilderTests(regression_suite.QueryTestCase):
    def test_unconfigured_builder(self) -> None:
        query = qs.QueryBuilder()
        self.assertFalse(query.is_query_set())
        self.assertEqual(query.kind, StatementKind.None_)
        self.assertIsNone(query.get_amount_columns_set())
        with self.assertRaises(qs.QueryConfigurationError):
            query.build()
        with self.assertRaises(qs.QueryConfigurationError):
            query.get_values()

    def test_configuration_error_is_state_error(self) -> None:
        self.assertTrue(issubclass(qs.QueryConfigurationError, qs.util.StateError))

    def test_switching_statements(self) -> None:
        query = qs.QueryBuilder()
        query.select().from_("users")
        query.delete_from("users")
        self.assertEqual(query.kind, StatementKind.Delete)
        self.assertEqual(query.table, "users")
        self.assertEqual(query.build(), "DELETE FROM users;")

    def test_table_tracking(self) -> None:
        query = qs.QueryBuilder()
        query.select().from_("users", "u")
        self.assertEqual(query.table, "users")
        query.update("orders").put("total", 1)
        self.assertEqual(query.table, "orders")
        query.with_()
        self.assertIsNone(query.table)

    def test_empty_table_name(self) -> None:
        with self.assertRaises(ValueError):
            qs.QueryBuilder().update("")

    def test_placeholder_toggle(self) -> None:
        query = qs.QueryBuilder()
        query.select().from_("users").where(lambda w: w.column("name").equal("Alice").and_().column("age").less_than(40))
        self.assertStatement(query, "SELECT * FROM users WHERE name = ? AND age < ?;", {1: "Alice", 2: 40})

        self.assertIs(query.set_placeholders(False), query)
        self.assertFalse(query.placeholders)
        self.assertStatement(query, "SELECT * FROM users WHERE name = Alice AND age < 40;", {})
        self.assertNotIn("?", query.build())

    def test_custom_marker(self) -> None:
        query = qs.QueryBuilder(marker="%s")
        query.update("users").put("name", "Bob").where(lambda w: w.column("id").equal(1))
        self.assertEqual(query.build(), "UPDATE users SET name = %s WHERE id = %s;")
        self.assertEqual(query.get_values(), {1: "Bob", 2: 1})

    def test_statement_is_terminated(self) -> None:
        query = qs.QueryBuilder()
        query.drop_table("t")
        self.assertTrue(query.build().endswith(";"))
        self.assertEqual(query.build().count(";"), 1)
        self.assertEqual(str(query), "DROP TABLE t;")

    def test_amount_columns_set(self) -> None:
        query = qs.QueryBuilder()
        query.select().from_("users").select(lambda cols: cols.add("a").add("b").add("c"))
        self.assertEqual(query.get_amount_columns_set(), 3)

        query.select().from_("users")
        self.assertEqual(query.get_amount_columns_set(), 0)

        query.alter_table("users").drop("a")
        self.assertIsNone(query.get_amount_columns_set())

    def test_debug_logging(self) -> None:
        output = io.StringIO()
        query = qs.QueryBuilder(debug=True, log_file=output)
        query.select().from_("users").where(lambda w: w.column("id").equal(1))
        query.build()
        self.assertIn(":: Built Select statement: SELECT * FROM users WHERE id = ? with 1 parameters", output.getvalue())

    def test_string_conversion_does_not_log(self) -> None:
        output = io.StringIO()
        query = qs.QueryBuilder(debug=True, log_file=output)
        query.delete_from("users").where(lambda w: w.column("id").equal(1))
        self.assertEqual(str(query), "DELETE FROM users WHERE id = ?;")
        self.assertEqual(output.getvalue(), "")

        query.build()
        self.assertEqual(output.getvalue().count(":: Built"), 1)

    def test_json_export(self) -> None:
        query = qs.QueryBuilder()
        query.insert_into("users").add("name", "Alice")
        exported = json.loads(qs.util.to_json(query))
        self.assertEqual(exported["kind"], "INSERT INTO")
        self.assertEqual(exported["table"], "users")
        self.assertEqual(exported["statement"]["row"], {"name": "Alice"})


class StatementKindTests(unittest.TestCase):
    def test_parse_keywords(self) -> None:
        keywords = {
            "select": StatementKind.Select,
            "INSERT  INTO": StatementKind.Insert,
            "create table if not exists": StatementKind.CreateIfNotExists,
            "ReplaceInto": StatementKind.ReplaceInto,
            "with": StatementKind.With,
            "explain": StatementKind.None_,
            "": StatementKind.None_,
        }
        for keyword, kind in keywords.items():
            with self.subTest(keyword=keyword):
                self.assertEqual(StatementKind.parse(keyword), kind)

    def test_parse_prefix(self) -> None:
        statements = {
            "SELECT * FROM users;": StatementKind.Select,
            "create table if not exists t (id int)": StatementKind.CreateIfNotExists,
            "CREATE TABLE t (id INT)": StatementKind.Create,
            "delete from t": StatementKind.Delete,
            "SELECTED": StatementKind.None_,
        }
        for statement, kind in statements.items():
            with self.subTest(statement=statement):
                self.assertEqual(StatementKind.parse_prefix(statement), kind)


class QueryDefinitionTests(unittest.TestCase):
    def test_raw_query(self) -> None:
        definition = qs.QueryDefinition.of("UPDATE users SET name = 'Bob'")
        self.assertTrue(definition.is_raw())
        self.assertEqual(definition.query, "UPDATE users SET name = 'Bob'")
        self.assertEqual(definition.values, {})
        self.assertEqual(definition.kind, StatementKind.Update)

    def test_builder_query(self) -> None:
        query = qs.QueryBuilder()
        query.delete_from("users").where(lambda w: w.column("id").equal(4))
        definition = qs.QueryDefinition.of(query)
        self.assertFalse(definition.is_raw())
        self.assertIs(definition.builder, query)
        self.assertEqual(definition.query, "DELETE FROM users WHERE id = ?;")
        self.assertEqual(definition.values, {1: 4})
        self.assertEqual(definition.kind, StatementKind.Delete)

    def test_empty_query(self) -> None:
        with self.assertRaises(ValueError):
            qs.QueryDefinition("  ")


class RenderingTests(unittest.TestCase):
    def test_literals(self) -> None:
        literals = {None: "NULL", True: "TRUE", False: "FALSE", 42: "42", 1.5: "1.5", "abc": "abc"}
        for value, expected in literals.items():
            with self.subTest(value=value):
                self.assertEqual(qs.render_literal(value), expected)
        self.assertEqual(qs.render_literal("it's", quote_strings=True), "'it''s'")

    def test_fragment_concatenation(self) -> None:
        fragment = "a = " + qs.SqlFragment("?", (1,)) + " AND b = " + qs.SqlFragment("?", (2,))
        self.assertEqual(fragment.text, "a = ? AND b = ?")
        self.assertEqual(fragment.parameters, (1, 2))
        self.assertEqual(qs.SqlFragment.join(", ", ["x", qs.SqlFragment("?", (3,))]).wrap().text, "(x, ?)")


if __name__ == "__main__":
    unittest.main()
