"""Field extraction: selector fallback chains and filter pipelines.

extract_field() is the interpreter at the heart of the engine. Given a
value source and a FieldQuery it walks the selector chain in order and
returns the first value that survives the filter pipeline non-empty.

Two kinds of source are supported:

    - parsed HTML (any BeautifulSoup ``Tag``): selectors are CSS, read
      through soupsieve. jQuery's ``:contains()`` is rewritten to
      ``:-soup-contains()``, and a trailing ``:first``, ``:last`` or
      ``:eq(n)`` picks one element of the matched set
    - decoded JSON (dicts and lists): selectors are dotted paths such as
      ``data.items[0].size``

A field that matches nothing is not an error. It resolves to ``""``, or to
``0`` when the filter chain is numeric, because optional fields are
routinely absent on many services.

A query with ``aggregate`` set reads every match instead of the first one
and returns their count or the sum of their filtered values.
"""

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from ptscraper.filters import FILTERS, Filter, Value
from ptscraper.logger import get_logger
from ptscraper.models import FieldQuery

log = get_logger(__name__)

_CONTAINS_PSEUDO = re.compile(r":contains\(")
_POSITIONAL_PSEUDO = re.compile(r":(first|last|eq\((-?\d+)\))\s*$")
_PATH_TOKEN = re.compile(r"[^.\[\]]+")
_CAMEL_HUMP = re.compile(r"([A-Z])")

# Exceptions a misbehaving filter may raise; they turn into a miss.
FILTER_ERRORS = (ValueError, TypeError, LookupError, AttributeError)


def parse_document(text: str) -> BeautifulSoup:
    return BeautifulSoup(text, "html.parser")


def soup_selector(selector: str) -> str:
    """Translate jQuery-style ``:contains(`` into soupsieve syntax."""
    return _CONTAINS_PSEUDO.sub(":-soup-contains(", selector)


def split_position(selector: str) -> tuple[str, int | None]:
    """Split a trailing positional pseudo-class off ``selector``.

    ``"a.user:first"`` -> ``("a.user", 0)``, ``"td:eq(2)"`` -> ``("td", 2)``,
    ``"td:last"`` -> ``("td", -1)``. Selectors without one get ``None``.
    Positional pseudos anywhere but the end are left to soupsieve, which
    rejects them.
    """
    matched = _POSITIONAL_PSEUDO.search(selector)
    if matched is None:
        return selector, None
    kind = matched.group(1)
    if kind == "first":
        index = 0
    elif kind == "last":
        index = -1
    else:
        index = int(matched.group(2))
    return selector[: matched.start()], index


def select_all(element: Tag, selector: str) -> list[Tag]:
    base, index = split_position(selector)
    matches = list(element.select(soup_selector(base)))
    if index is None:
        return matches
    return [matches[index]] if -len(matches) <= index < len(matches) else []


def select_one(element: Tag, selector: str) -> Tag | None:
    base, index = split_position(selector)
    if index is None:
        return element.select_one(soup_selector(base))
    matches = select_all(element, selector)
    return matches[0] if matches else None

def dataset_attribute(key: str) -> str:
    """``"torrentId"`` -> ``"data-torrent-id"``, as ``element.dataset`` does."""
    return "data-" + _CAMEL_HUMP.sub(lambda m: f"-{m.group(1).lower()}", key)


def get_path(source: Any, path: str) -> Any:
    """Look up ``a.b[0].c`` (or ``a.b.0.c``) in nested dicts and lists.

    Returns None as soon as any step is missing.
    """
    current = source
    for token in _PATH_TOKEN.findall(path):
        if isinstance(current, Mapping):
            current = current.get(token)
        elif (
            isinstance(current, Sequence)
            and not isinstance(current, str)
            and token.lstrip("-").isdigit()
        ):
            index = int(token)
            current = current[index] if -len(current) <= index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, ensure_ascii=False)


def read_element(element: Tag, query: FieldQuery) -> str:
    """Read the dataset key, the attribute, or the text of an element."""
    if query.data:
        value = element.get(dataset_attribute(query.data))
    elif query.attribute:
        value = element.get(query.attribute)
    else:
        return element.get_text()

    # bs4 returns multi-valued attributes such as class as lists.
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def _select_tags(source: Tag, selector: str, *, every: bool) -> list[Tag]:
    try:
        if every:
            return select_all(source, selector)
        element = select_one(source, selector)
    except SelectorSyntaxError as exc:
        log.warning("Invalid selector skipped", selector=selector, error=str(exc))
        return []
    return [element] if element is not None else []


def _read_raw(source: Any, selector: str, query: FieldQuery) -> str:
    if isinstance(source, Tag):
        elements = _select_tags(source, selector, every=False)
        return read_element(elements[0], query) if elements else ""
    return _stringify(get_path(source, selector))


def _read_all(source: Any, selector: str, query: FieldQuery) -> list[str]:
    if isinstance(source, Tag):
        return [read_element(e, query).strip() for e in _select_tags(source, selector, every=True)]
    found = get_path(source, selector)
    if not isinstance(found, list):
        return []
    return [_stringify(item).strip() for item in found]


def _apply_filters(raw: str, filters: Sequence[Filter], selector: str) -> Value:
    value: Value = raw
    try:
        for fn in filters:
            value = fn(value)
    except FILTER_ERRORS as exc:
        log.debug(
            "Filter raised, treating selector as a miss",
            selector=selector,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return ""
    return "" if value is None else value


def _is_number(value: Value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _zero_value(value: Value) -> Value:
    return 0 if _is_number(value) else ""


def _aggregate(source: Any, query: FieldQuery, filters: Sequence[Filter]) -> Value:
    for selector in query.selector:
        raws = _read_all(source, selector, query)
        if not raws:
            continue
        if query.aggregate == "count":
            return len(raws)
        values = (_apply_filters(raw, filters, selector) for raw in raws)
        return sum(value for value in values if _is_number(value))
    return 0


def extract_field(
    source: Tag | Any,
    query: FieldQuery,
    *,
    timezone_offset: str | None = None,
) -> Value:
    """Resolve one scalar value from ``source``.

    Each selector is read, trimmed and passed through every filter in
    order. The first selector whose raw value is non-empty and whose
    filtered value is non-empty wins; later selectors are never evaluated.

    Args:
        source: Parsed HTML element or decoded JSON structure.
        query: Field query describing selectors, read mode and filters.
        timezone_offset: Service UTC offset bound to zoned filters such as
            ``parse_zoned_time``.

    Returns:
        The extracted value, or the zero value when every selector misses.
        Aggregating queries return the count or sum of the first selector
        with any match, else 0.
    """
    filters = [FILTERS.resolve(ref, timezone_offset) for ref in query.filters]

    if query.aggregate:
        return _aggregate(source, query, filters)

    value: Value = ""
    for selector in query.selector:
        raw = _read_raw(source, selector, query).strip()
        value = _apply_filters(raw, filters, selector)
        if raw and value != "":
            return value

    return _zero_value(value)
