"""Tests for the composition of SELECT statements."""
from __future__ import annotations

import unittest

import querysmith as qs
from querysmith import JoinType
from tests import regression_suite


class SelectCompositionTests(regression_suite.QueryTestCase):
    def test_select_star(self) -> None:
        query = qs.QueryBuilder()
        query.select().from_("users")
        self.assertStatement(query, "SELECT * FROM users;", {})

    def test_basic_where(self) -> None:
        query = qs.QueryBuilder()
        query.select().from_("users").where(lambda w: w.column("age").greater_than(18))
        self.assertStatement(query, "SELECT * FROM users WHERE age > ?;", {1: 18})

    def test_table_alias(self) -> None:
        query = qs.QueryBuilder()
        query.select().from_("users", "u").select(lambda cols: cols.add("u.name"))
        self.assertEqual(query.build(), "SELECT u.name FROM users u;")

    def test_initial_columns(self) -> None:
        manager = qs.ColumnManager().column("name").column("id", "user_id").finish()
        query = qs.QueryBuilder()
        query.select(manager).from_("users")
        self.assertEqual(query.build(), "SELECT name, id AS user_id FROM users;")
        self.assertEqual(query.get_amount_columns_set(), 2)

    def test_split_aggregation_counts_each_output(self) -> None:
        manager = qs.ColumnManager().column("x").with_aggregations("sum", "avg").round(2).column("y").finish()
        query = qs.QueryBuilder()
        query.select(manager).from_("t")
        self.assertEqual(query.build(), "SELECT ROUND(SUM(x), 2), ROUND(AVG(x), 2), y FROM t;")
        self.assertEqual(query.get_amount_columns_set(), 3)

    def test_clause_order_is_fixed(self) -> None:
        query = qs.QueryBuilder()
        (query.select()
         .limit(10)
         .order_by(lambda order: order.desc("total"))
         .having(lambda h: h.column("id", lambda agg: agg.with_aggregation("count")).greater_than(1))
         .group_by("u.name")
         .where(lambda w: w.column("u.active").equal(True))
         .join(lambda joins: joins.inner_join("orders", "u.id = o.user_id", alias="o"))
         .select(lambda cols: cols.add("u.name").add(qs.Column("o.total", "total")))
         .from_("users", "u"))
        self.assertStatement(query,
                             "SELECT u.name, o.total AS total FROM users u INNER JOIN orders AS o ON u.id = o.user_id "
                             "WHERE u.active = ? GROUP BY u.name HAVING COUNT(id) > ? ORDER BY total DESC LIMIT 10;",
                             {1: True, 2: 1})

    def test_limit_requires_positive_value(self) -> None:
        for limit in (0, -5):
            with self.subTest(limit=limit):
                query = qs.QueryBuilder()
                query.select().from_("users").limit(limit)
                self.assertEqual(query.build(), "SELECT * FROM users;")

    def test_distinct_and_offset(self) -> None:
        query = qs.QueryBuilder()
        query.select().from_("users").select(lambda cols: cols.add("city")).distinct().limit(5).offset(10)
        self.assertEqual(query.build(), "SELECT DISTINCT city FROM users LIMIT 5 OFFSET 10;")

    def test_having_without_where(self) -> None:
        query = qs.QueryBuilder()
        (query.select()
         .from_("orders")
         .select(lambda cols: cols.add("customer"))
         .group_by("customer")
         .having(lambda h: h.column("total", lambda agg: agg.with_aggregation("sum")).greater_equal(1000)))
        self.assertStatement(query,
                             "SELECT customer FROM orders GROUP BY customer HAVING SUM(total) >= ?;",
                             {1: 1000})

    def test_where_and_having_values_are_numbered_in_order(self) -> None:
        query = qs.QueryBuilder()
        (query.select()
         .from_("orders")
         .having(lambda h: h.column("amount", lambda agg: agg.with_aggregation("avg")).less_than(50))
         .group_by("customer")
         .where(lambda w: w.column("year").equal(2024)))
        self.assertEqual(query.get_values(), {1: 2024, 2: 50})
        self.assertPlaceholdersAligned(query)

    def test_prepared_where_builder(self) -> None:
        where = qs.WhereBuilder()
        where.column("id").equal(7)
        query = qs.QueryBuilder()
        query.select().from_("users").where(where)
        self.assertStatement(query, "SELECT * FROM users WHERE id = ?;", {1: 7})

    def test_order_by_options(self) -> None:
        query = qs.QueryBuilder()
        (query.select()
         .from_("users")
         .order_by(lambda order: order.asc("name").column("age", ascending=False, nulls_first=False)))
        self.assertEqual(query.build(), "SELECT * FROM users ORDER BY name, age DESC NULLS LAST;")

    def test_missing_source(self) -> None:
        query = qs.QueryBuilder()
        query.select()
        with self.assertRaises(qs.QueryConfigurationError):
            query.build()

    def test_idempotent_build(self) -> None:
        query = qs.QueryBuilder()
        query.select().from_("users").where(lambda w: w.column("a").equal(1).or_().column("b").equal(2))
        self.assertEqual(query.build(), query.build())
        self.assertEqual(query.get_values(), query.get_values())

    def test_rebuild_reflects_mutation(self) -> None:
        query = qs.QueryBuilder()
        select = query.select().from_("users")
        self.assertEqual(query.build(), "SELECT * FROM users;")
        select.limit(3)
        self.assertEqual(query.build(), "SELECT * FROM users LIMIT 3;")


class JoinTests(unittest.TestCase):
    def test_join_types(self) -> None:
        for join_type in (JoinType.InnerJoin, JoinType.LeftJoin, JoinType.RightJoin, JoinType.FullJoin):
            with self.subTest(join_type=join_type):
                joins = qs.JoinBuilder().join(join_type, "orders", "u.id = o.user_id", alias="o")
                self.assertEqual(joins.build(), f" {join_type.value} orders AS o ON u.id = o.user_id")

    def test_cross_join_needs_no_condition(self) -> None:
        joins = qs.JoinBuilder().cross_join("colors")
        self.assertEqual(joins.build(), " CROSS JOIN colors")

    def test_missing_join_condition(self) -> None:
        with self.assertRaises(ValueError):
            qs.JoinBuilder().join(JoinType.LeftJoin, "orders")

    def test_implicit_join(self) -> None:
        joins = qs.JoinBuilder().implicit_join("orders", "o").implicit_join("items")
        self.assertTrue(joins.has_implicit_joins())
        self.assertEqual(joins.build(), ", orders AS o, items")


class SubqueryTests(regression_suite.QueryTestCase):
    def test_subquery_source(self) -> None:
        inner = qs.QueryBuilder()
        inner.select().from_("orders").where(lambda w: w.column("total").greater_than(100))

        outer = qs.QueryBuilder()
        outer.select().from_(inner, "big").where(lambda w: w.column("big.customer").equal("ACME"))
        self.assertStatement(outer,
                             "SELECT * FROM (SELECT * FROM orders WHERE total > ?) big WHERE big.customer = ?;",
                             {1: 100, 2: "ACME"})
        self.assertIsNone(outer.table)

    def test_subquery_follows_outer_placeholder_mode(self) -> None:
        inner = qs.QueryBuilder()
        inner.select().from_("orders").where(lambda w: w.column("total").greater_than(100))

        outer = qs.QueryBuilder(placeholders=False)
        outer.select().from_(inner, "big")
        self.assertEqual(outer.build(), "SELECT * FROM (SELECT * FROM orders WHERE total > 100) big;")
        self.assertEqual(outer.get_values(), {})
        self.assertEqual(inner.build(), "SELECT * FROM orders WHERE total > ?;")

    def test_subquery_join(self) -> None:
        inner = qs.QueryBuilder()
        inner.select().from_("orders").where(lambda w: w.column("status").equal("open"))

        outer = qs.QueryBuilder()
        (outer.select()
         .from_("users", "u")
         .join(lambda joins: joins.left_join(inner, "u.id = o.user_id", alias="o"))
         .where(lambda w: w.column("u.id").less_than(10)))
        self.assertStatement(outer,
                             "SELECT * FROM users u LEFT JOIN (SELECT * FROM orders WHERE status = ?) AS o "
                             "ON u.id = o.user_id WHERE u.id < ?;",
                             {1: "open", 2: 10})

    def test_generated_sql_is_valid(self) -> None:
        inner = qs.QueryBuilder()
        inner.select().from_("orders").select(lambda cols: cols.add("user_id")).where(
            lambda w: w.column("total").between(10, 20))

        query = qs.QueryBuilder(placeholders=False, quote_literals=True)
        (query.select()
         .from_("users", "u")
         .select(lambda cols: cols.add("u.name"))
         .where(lambda w: w.column("u.id").is_in(inner).and_().column("u.name").like("A%"))
         .order_by(lambda order: order.desc("u.name"))
         .limit(5))
        self.assertValidPostgres(query.build())


if __name__ == "__main__":
    unittest.main()
