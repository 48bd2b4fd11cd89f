"""Row transformation: one field-query group applied to one row or section."""

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from ptscraper.extractor import extract_field
from ptscraper.links import fix_link
from ptscraper.models import LINK_FIELDS, FieldQuery

LinkNormalizer = Callable[[str, str], str]


def transform_row(
    row: Any,
    group: Mapping[str, FieldQuery],
    active_url: str,
    normalize: LinkNormalizer = fix_link,
    *,
    timezone_offset: str | None = None,
) -> dict[str, Any]:
    """Extract every field of ``group`` from ``row``.

    Fields that miss keep their zero value rather than being dropped, so
    callers must read ``""``/``0`` as "unknown". ``url`` and ``link`` fields
    are made absolute against ``active_url``.

    Args:
        row: A listing row or profile section (HTML element or JSON object).
        group: Field name to FieldQuery mapping.
        active_url: Base for resolving relative links.
        normalize: Link normalizer, replaceable for testing.
        timezone_offset: Service UTC offset for time filters.

    Returns:
        A new partial entity.
    """
    entity: dict[str, Any] = {}
    for field, query in group.items():
        value = extract_field(row, query, timezone_offset=timezone_offset)
        if field in LINK_FIELDS:
            value = normalize(str(value), active_url)
        entity[field] = value
    return entity


def transform_rows(
    rows: Iterable[Any],
    group: Mapping[str, FieldQuery],
    active_url: str,
    normalize: LinkNormalizer = fix_link,
    *,
    timezone_offset: str | None = None,
) -> list[dict[str, Any]]:
    return [
        transform_row(row, group, active_url, normalize, timezone_offset=timezone_offset)
        for row in rows
    ]
