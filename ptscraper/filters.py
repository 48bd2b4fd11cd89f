"""Closed registry of named, pure filter functions.

Field queries never carry executable code. Their ``filters`` list holds
references that are looked up here:

    - ``"parse_size"``: a registered filter taking only the value
    - ``["split", " (", 0]``: a registered filter plus extra arguments
    - a plain Python callable, for configurations built in code

Every filter receives the current value (``str``, ``int`` or ``float``) and
returns the next one. Registered filters are total over the empty string.
"""

import re
from collections.abc import Callable, Sequence
from typing import Any
from urllib.parse import parse_qs, urlparse

from ptscraper.exceptions import ConfigError
from ptscraper.normalizers import (
    cf_decode_email,
    find_then_parse_number,
    find_then_parse_size,
    parse_relative_duration,
    parse_size,
    parse_zoned_time,
)

Value = str | int | float
Filter = Callable[[Value], Value]
FilterRef = str | Sequence[Any] | Filter

_FLOAT_PREFIX = re.compile(r"^\s*[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_INT_PREFIX = re.compile(r"^\s*[-+]?\d+")


class FilterRegistry:
    """Maps filter names to pure functions.

    Example:
        >>> registry = FilterRegistry()
        >>> @registry.register("double")
        ... def double(value, times=2):
        ...     return float(value or 0) * times
        >>> registry.resolve(["double", 3])("2")
        6.0
    """

    def __init__(self) -> None:
        self._filters: dict[str, Callable[..., Value]] = {}
        self._zoned: set[str] = set()

    def register(
        self, name: str, *, zoned: bool = False
    ) -> Callable[[Callable[..., Value]], Callable[..., Value]]:
        """Decorator registering ``fn(value, *args)`` under ``name``.

        A ``zoned`` filter takes the service's UTC offset as its first extra
        argument when the reference supplies none.
        """

        def decorator(fn: Callable[..., Value]) -> Callable[..., Value]:
            self._filters[name] = fn
            if zoned:
                self._zoned.add(name)
            return fn

        return decorator

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    def names(self) -> list[str]:
        return sorted(self._filters)

    def resolve(self, ref: FilterRef, timezone_offset: str | None = None) -> Filter:
        """Turn a filter reference into a one-argument callable.

        Zoned filters referenced without arguments are bound to
        ``timezone_offset``; explicit arguments always win.

        Raises:
            ConfigError: If the reference names no registered filter.
        """
        if callable(ref):
            return ref

        if isinstance(ref, str):
            name, args = ref, ()
        elif isinstance(ref, Sequence) and ref and isinstance(ref[0], str):
            name, args = ref[0], tuple(ref[1:])
        else:
            raise ConfigError(field="filters", reason="malformed filter reference", value=ref)

        fn = self._filters.get(name)
        if fn is None:
            raise ConfigError(field="filters", reason=f"unknown filter '{name}'", value=name)

        if args:
            return lambda value: fn(value, *args)
        if timezone_offset and name in self._zoned:
            return lambda value: fn(value, timezone_offset)
        return fn


FILTERS = FilterRegistry()

FILTERS.register("parse_size")(parse_size)
FILTERS.register("find_then_parse_size")(find_then_parse_size)
FILTERS.register("find_then_parse_number")(find_then_parse_number)
FILTERS.register("parse_zoned_time", zoned=True)(parse_zoned_time)
FILTERS.register("cf_decode_email")(cf_decode_email)


@FILTERS.register("parse_relative_duration")
def _parse_relative_duration(value: Value) -> int:
    if value == "":
        return 0
    return parse_relative_duration(value)


@FILTERS.register("parse_float")
def parse_float(value: Value) -> float:
    """Leading float of the text (``"1.23 ratio"`` -> 1.23), else 0.0."""
    matched = _FLOAT_PREFIX.match(str(value))
    return float(matched.group(0)) if matched else 0.0


@FILTERS.register("parse_int")
def parse_int(value: Value) -> int:
    matched = _INT_PREFIX.match(str(value))
    return int(matched.group(0)) if matched else 0


@FILTERS.register("parse_datetime", zoned=True)
def parse_datetime(value: Value, offset: str | None = None) -> Value:
    """Epoch milliseconds when the text is a date, otherwise unchanged."""
    parsed = parse_zoned_time(value, offset)
    return parsed if parsed else value


@FILTERS.register("query_param")
def query_param(value: Value, name: str) -> str:
    """First value of query parameter ``name`` in a URL."""
    values = parse_qs(urlparse(str(value)).query).get(name)
    return values[0] if values else ""


@FILTERS.register("split")
def split(value: Value, separator: str, index: int = 0) -> str:
    parts = str(value).split(separator)
    if -len(parts) <= index < len(parts):
        return parts[index].strip()
    return ""


@FILTERS.register("regex")
def regex(value: Value, pattern: str, group: int = 0) -> str:
    """Group ``group`` of the first match of ``pattern``, else ``""``."""
    matched = re.search(pattern, str(value))
    return matched.group(group) if matched else ""


@FILTERS.register("replace")
def replace(value: Value, old: str, new: str = "") -> str:
    return str(value).replace(old, new)
