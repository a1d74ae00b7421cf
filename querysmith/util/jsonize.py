"""Contains utilities to export builder state to JSON.

Any class can take part in the export by providing a `__json__` method. This method does not take any (required)
parameters and returns a JSON-izeable representation of the current instance, e.g. a `dict` or a `list`. The export is
meant for diagnostics (e.g. dumping the state of a half-configured query builder), there is no inverse conversion.
"""
from __future__ import annotations

import abc
import enum
import json
from typing import Any, Protocol, runtime_checkable

jsondict = dict
"""Type alias for a JSON-izeable dictionary."""


@runtime_checkable
class Jsonizable(Protocol):
    """Protocol to indicate that a certain class provides the `__json__` method."""

    @abc.abstractmethod
    def __json__(self) -> jsondict:
        raise NotImplementedError


class JsonizeEncoder(json.JSONEncoder):
    """The JsonizeEncoder transforms enums, sets and instances of classes with a `__json__` method to JSON."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, enum.Enum):
            return obj.value
        elif isinstance(obj, (set, frozenset)):
            return list(obj)
        elif isinstance(obj, Jsonizable):
            return obj.__json__()
        return json.JSONEncoder.default(self, obj)


def to_json(obj: Any, *args, **kwargs) -> str | None:
    """Utility to transform any object to a JSON object, while making use of the `JsonizeEncoder`.

    All arguments other than the object itself are passed to the default Python `json.dumps` function.
    """
    if obj is None:
        return None
    kwargs.pop("cls", None)
    return json.dumps(obj, *args, cls=JsonizeEncoder, **kwargs)
