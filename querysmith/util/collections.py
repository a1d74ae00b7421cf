"""Provides utilities to work with arbitrary collections like lists, sets and tuples."""
from __future__ import annotations

from collections.abc import Iterable


def enlist[T](obj: Iterable[T] | T) -> list[T]:
    """Transforms any object into a singular list of that object, if it is not a container already.

    Lists, tuples, sets and frozensets are treated as containers and turned into lists of their elements. Strings are
    never treated as containers. All other arguments are wrapped in a list.
    """
    if isinstance(obj, (list, tuple, set, frozenset)):
        return list(obj)
    return [obj]


def pairwise_items[K, V](items: dict[K, V] | Iterable[tuple[K, V]]) -> list[tuple[K, V]]:
    """Normalizes a mapping or an iterable of key-value pairs into a list of pairs, keeping the original order."""
    if isinstance(items, dict):
        return list(items.items())
    return [(key, value) for key, value in items]
