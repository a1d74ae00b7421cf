"""Tests for the general utilities."""
from __future__ import annotations

import enum
import io
import json
import unittest

from querysmith import util


class _Color(enum.Enum):
    Red = "red"


class _Point:
    def __init__(self, x: int, y: int) -> None:
        self.x = x
        self.y = y

    def __json__(self) -> dict:
        return {"x": self.x, "y": self.y}


class CollectionsTests(unittest.TestCase):
    def test_enlist(self) -> None:
        self.assertEqual(util.enlist(1), [1])
        self.assertEqual(util.enlist("abc"), ["abc"])
        self.assertEqual(util.enlist((1, 2)), [1, 2])
        self.assertEqual(util.enlist([1, 2]), [1, 2])

    def test_pairwise_items(self) -> None:
        self.assertEqual(util.pairwise_items({"a": 1, "b": 2}), [("a", 1), ("b", 2)])
        self.assertEqual(util.pairwise_items([("a", 1)]), [("a", 1)])


class LoggingTests(unittest.TestCase):
    def test_enabled_logger(self) -> None:
        output = io.StringIO()
        log = util.make_logger(True, file=output, prefix="[test]")
        log("hello", 42)
        self.assertEqual(output.getvalue(), "[test] hello 42\n")

    def test_disabled_logger(self) -> None:
        output = io.StringIO()
        log = util.make_logger(False, file=output)
        log("hello")
        self.assertEqual(output.getvalue(), "")

    def test_dynamic_prefix(self) -> None:
        output = io.StringIO()
        log = util.make_logger(True, file=output, prefix=lambda: "now")
        log("msg")
        self.assertEqual(output.getvalue(), "now msg\n")

    def test_timestamp(self) -> None:
        self.assertRegex(util.timestamp(), r"^\d{2}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")


class JsonizeTests(unittest.TestCase):
    def test_custom_objects(self) -> None:
        exported = json.loads(util.to_json({"point": _Point(1, 2), "color": _Color.Red, "tags": {"a"}}))
        self.assertEqual(exported, {"point": {"x": 1, "y": 2}, "color": "red", "tags": ["a"]})

    def test_none(self) -> None:
        self.assertIsNone(util.to_json(None))


class ErrorTests(unittest.TestCase):
    def test_hierarchy(self) -> None:
        self.assertTrue(issubclass(util.StateError, RuntimeError))


if __name__ == "__main__":
    unittest.main()
