"""Tests for the column model, specifically for the rendering of aggregations and rounding."""
from __future__ import annotations

import unittest

import querysmith as qs
from querysmith import AggregateFunction, MathOperation


class ColumnRenderingTests(unittest.TestCase):
    def test_plain_column(self) -> None:
        self.assertEqual(qs.Column("name").render(), "name")
        self.assertEqual(qs.Column("u.name", "username").render(), "u.name AS username")

    def test_empty_name_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            qs.Column("")

    def test_single_aggregate(self) -> None:
        column = qs.Column("price", "total")
        column.aggregate().with_aggregation(AggregateFunction.Sum)
        self.assertEqual(column.render(), "SUM(price) AS total")

    def test_string_functions_are_upper_cased(self) -> None:
        column = qs.Column("id")
        column.aggregate().with_aggregation("count")
        self.assertEqual(column.render(), "COUNT(id)")

    def test_split_rounding(self) -> None:
        column = qs.Column("x")
        column.aggregate().with_aggregations(AggregateFunction.Sum, AggregateFunction.Avg).round(2)
        self.assertEqual(column.render(), "ROUND(SUM(x), 2), ROUND(AVG(x), 2)")

    def test_combined_rounding(self) -> None:
        column = qs.Column("x")
        (column.aggregate()
         .with_aggregations(AggregateFunction.Sum, AggregateFunction.Avg)
         .round(2, operation=MathOperation.Add))
        self.assertEqual(column.render(), "ROUND(SUM(x) + AVG(x), 2)")

    def test_combined_without_rounding(self) -> None:
        operators = {MathOperation.Subtract: "-", MathOperation.Divide: "/", MathOperation.ShiftLeft: "<<",
                     MathOperation.BitwiseOr: "|"}
        for operation, symbol in operators.items():
            with self.subTest(operation=operation):
                column = qs.Column("x")
                column.aggregate().with_aggregations("max", "min", operation=operation)
                self.assertEqual(column.render(), f"MAX(x) {symbol} MIN(x)")

    def test_split_without_rounding(self) -> None:
        column = qs.Column("x")
        column.aggregate().with_aggregations("min", "max")
        self.assertEqual(column.render(), "MIN(x), MAX(x)")

    def test_rounding_without_functions(self) -> None:
        column = qs.Column("price")
        column.aggregate().round(1)
        self.assertEqual(column.render(), "ROUND(price, 1)")

    def test_rounding_mode_is_passed_through(self) -> None:
        column = qs.Column("price")
        column.aggregate().with_aggregation("avg").round(2, "HALF_EVEN")
        self.assertEqual(column.render(), "ROUND(AVG(price), 2, HALF_EVEN)")

    def test_alias_follows_expression(self) -> None:
        column = qs.Column("x", "total")
        column.aggregate().with_aggregations("sum", "avg", operation=MathOperation.Multiply).round(3)
        self.assertEqual(column.render(), "ROUND(SUM(x) * AVG(x), 3) AS total")

    def test_negative_precision_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            qs.Column("x").aggregate().round(-1)

    def test_split_operation(self) -> None:
        self.assertTrue(MathOperation.PerRound.is_split())
        self.assertFalse(MathOperation.Add.is_split())

    def test_split_outputs(self) -> None:
        split = qs.Column("x")
        split.aggregate().with_aggregations("sum", "avg").round(2)
        combined = qs.Column("x")
        combined.aggregate().with_aggregations("sum", "avg", operation=MathOperation.Add)
        single = qs.Column("x")
        single.aggregate().with_aggregation("sum")

        self.assertEqual(split.output_count(), 2)
        self.assertEqual(combined.output_count(), 1)
        self.assertEqual(single.output_count(), 1)
        self.assertEqual(qs.ColumnBuilder([split, qs.Column("y")]).output_count(), 3)

    def test_split_columns_cannot_be_aliased(self) -> None:
        column = qs.Column("x", "total")
        column.aggregate().with_aggregations("sum", "avg").round(2)
        with self.assertRaises(qs.QueryConfigurationError):
            column.render()


class ColumnManagerTests(unittest.TestCase):
    def test_chaining(self) -> None:
        manager = (qs.ColumnManager()
                   .column("price", "total").with_aggregation("sum").round(2)
                   .column("name")
                   .finish())
        self.assertEqual(len(manager), 2)
        self.assertEqual(manager.to_builder().build(), "ROUND(SUM(price), 2) AS total, name")

    def test_table_columns(self) -> None:
        manager = (qs.ColumnManager()
                   .table_column("id", qs.DataType.integer(), qs.SQLConstraints.primary_key())
                   .table_column("name", qs.DataType.varchar(100), qs.SQLConstraints.not_null()))
        definitions = [column.definition() for column in manager.table_columns()]
        self.assertEqual(definitions, ["id INT PRIMARY KEY", "name VARCHAR(100) NOT NULL"])

    def test_standalone_aggregation_cannot_finish(self) -> None:
        aggregation = qs.Column("x").aggregate()
        with self.assertRaises(qs.util.StateError):
            aggregation.finish()

    def test_column_builder(self) -> None:
        builder = qs.ColumnBuilder()
        self.assertTrue(builder.is_empty())
        self.assertEqual(builder.build(), "")

        builder.add("id").add("name", "n").add_all([qs.Column("age")])
        self.assertEqual(builder.build(), "id, name AS n, age")
        self.assertEqual([column.name for column in builder], ["id", "name", "age"])


if __name__ == "__main__":
    unittest.main()
