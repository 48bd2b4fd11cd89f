"""Effective configuration: service defaults deep-merged with user overrides.

Defaults and overrides are both treated as immutable. deep_merge() builds a
new mapping and resolve_config() validates it into a frozen ServiceConfig,
so the shared per-service defaults are never modified in place.
"""

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ValidationError

from ptscraper.exceptions import ConfigError
from ptscraper.logger import get_logger
from ptscraper.models import ServiceConfig

log = get_logger(__name__)


def _as_data(value: Any, *, only_set: bool = False) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_unset=only_set)
    return value


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``override`` onto ``base`` without mutating either.

    Nested mappings merge key by key, so overriding one field of a
    field-query group keeps its siblings. Any other value (lists included)
    in ``override`` replaces the default; ``None`` keeps the default. Model
    instances on either side (a FieldQuery built in code, say) merge as
    their field mappings; an overriding model contributes only the fields
    it was given.

    Example:
        >>> deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}})
        {'a': {'x': 1, 'y': 3}}
    """
    merged = dict(_as_data(base))
    for key, value in _as_data(override, only_set=True).items():
        if value is None:
            continue
        current = _as_data(merged.get(key))
        value = _as_data(value, only_set=True)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def resolve_config(
    defaults: ServiceConfig | Mapping[str, Any],
    overrides: Mapping[str, Any] | None = None,
) -> ServiceConfig:
    """Build the effective configuration of one service.

    Args:
        defaults: The service's declarative metadata, raw or already resolved.
        overrides: Caller-supplied partial configuration.

    Returns:
        Frozen ServiceConfig with ``host`` derived from ``url`` when absent.
        Resolving a resolved config again with the same overrides returns an
        equal value.

    Raises:
        ConfigError: If no base URL is given or the data fails validation.
    """
    base = defaults.model_dump() if isinstance(defaults, ServiceConfig) else defaults
    merged = deep_merge(base, overrides or {})

    url = merged.get("url")
    if not url:
        raise ConfigError(field="url", reason="base URL is required", value=url)

    if not merged.get("host"):
        merged["host"] = urlparse(str(url)).netloc

    try:
        config = ServiceConfig.model_validate(merged)
    except ValidationError as exc:
        error = exc.errors()[0]
        raise ConfigError(
            field=".".join(str(part) for part in error["loc"]) or "config",
            reason=error["msg"],
            value=error.get("input"),
        ) from exc

    log.debug(
        "Service configuration resolved",
        site=config.name,
        host=config.host,
        groups=sorted(config.selector),
    )
    return config
