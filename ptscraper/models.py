"""Pydantic schemas for the declarative service data.

A service is described entirely by data: where its pages live, how to build
a search request, and one field-query group per extraction context. These
models validate that data once, when the effective configuration is
resolved, and are frozen afterwards.

Entities produced by the engine are deliberately not modelled here. A
torrent or user profile is a flat ``dict`` of whatever fields the service's
group configures, with zero values standing in for fields the page did not
provide.
"""

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from ptscraper.filters import FILTERS
from ptscraper.normalizers import parse_utc_offset

Torrent = dict[str, Any]
UserInfo = dict[str, Any]

LINK_FIELDS = frozenset({"url", "link"})

# Field-query group names.
SEARCH_GROUP = "search"
USER_INFO_GROUP = "userInfo"


class SiteAccess(str, Enum):
    """Capability tag selecting the authentication check for a service."""

    PUBLIC = "public"
    AUTHENTICATED = "authenticated"


class FieldQuery(BaseModel):
    """Where and how to extract one scalar value.

    Attributes:
        selector: Ordered fallback chain of CSS selectors (documents) or
            dotted paths (decoded JSON). A single string is accepted.
        attribute: Read this attribute of the matched element.
        data: Read this dataset key (``data-*`` attribute, camelCase key).
        filters: Filter references applied in order after trimming.
        aggregate: Read every match instead of the first: ``"count"``
            returns the number of matches, ``"sum"`` the total of their
            numeric filtered values.
    """

    model_config = ConfigDict(frozen=True)

    selector: tuple[str, ...] = Field(..., min_length=1)
    attribute: str | None = None
    data: str | None = None
    filters: tuple[Any, ...] = ()
    aggregate: Literal["count", "sum"] | None = None

    @field_validator("selector", mode="before")
    @classmethod
    def wrap_single_selector(cls, value: Any) -> Any:
        return (value,) if isinstance(value, str) else value

    @field_validator("filters", mode="before")
    @classmethod
    def check_filters(cls, value: Any) -> tuple[Any, ...]:
        """Reject unknown filter names up front (raises ConfigError)."""
        refs = []
        for ref in value or ():
            if not callable(ref) and not isinstance(ref, str):
                ref = tuple(ref)
            FILTERS.resolve(ref)
            refs.append(ref)
        return tuple(refs)


class RequestSpec(BaseModel):
    """One HTTP request, relative to the service's active URL by default."""

    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    url: str = "/"
    params: dict[str, Any] = Field(default_factory=dict)
    data: dict[str, Any] | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    base_url: str | None = None
    response_type: Literal["document", "json", "text"] | None = None


class SearchCategoryOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str | int
    name: str


class SearchCategory(BaseModel):
    """A category vocabulary entry: request param ``key`` and its options."""

    model_config = ConfigDict(frozen=True)

    name: str
    key: str
    options: list[SearchCategoryOption] = Field(default_factory=list)


class SearchConfig(BaseModel):
    """How to build a search request and where its result rows live.

    Attributes:
        keywords_param: Query parameter carrying the search keywords.
        request_config: Base request (path, method, fixed params).
        categories: Category vocabulary offered by the service.
        type: Parse the response as an HTML document or as JSON.
        rows: CSS selector (document) or path (JSON) locating result rows.
    """

    model_config = ConfigDict(frozen=True)

    keywords_param: str = "search"
    request_config: RequestSpec = Field(default_factory=RequestSpec)
    categories: list[SearchCategory] = Field(default_factory=list)
    type: Literal["document", "json"] = "document"
    rows: str | None = None


class UserInfoStep(BaseModel):
    """One page visited while collecting user information.

    ``assertion`` maps a request parameter to a field extracted by an
    earlier step, e.g. ``{"id": "id"}`` requests ``?id=<user id>``.
    """

    model_config = ConfigDict(frozen=True)

    request_config: RequestSpec = Field(default_factory=RequestSpec)
    assertion: dict[str, str] = Field(default_factory=dict)
    fields: list[str] = Field(default_factory=list)


class UserInfoConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    process: list[UserInfoStep] = Field(default_factory=list)


class ServiceConfig(BaseModel):
    """Effective configuration of one service.

    Built by ``resolve_config``; ``host`` is always populated there. The
    field-query groups in ``selector`` are read-only mappings.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    aka: list[str] = Field(default_factory=list)
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    collaborator: str | list[str] | None = None
    url: str
    activate_url: str | None = None
    host: str = Field(..., min_length=1)
    timezone_offset: str | None = None
    access: SiteAccess = SiteAccess.PUBLIC
    search: SearchConfig = Field(default_factory=SearchConfig)
    user_info: UserInfoConfig = Field(default_factory=UserInfoConfig)
    selector: Mapping[str, Mapping[str, FieldQuery]] = Field(
        default_factory=dict, validate_default=True
    )
    detail_page_template: str = "/details.php?id={id}"

    @field_validator("url", "activate_url")
    @classmethod
    def require_absolute_url(cls, value: str | None) -> str | None:
        if value is not None and not urlparse(value).netloc:
            raise ValueError(f"not an absolute URL: {value!r}")
        return value

    @field_validator("timezone_offset")
    @classmethod
    def check_timezone_offset(cls, value: str | None) -> str | None:
        if value:
            parse_utc_offset(value)
        return value

    @field_validator("selector")
    @classmethod
    def freeze_selector(
        cls, value: Mapping[str, Mapping[str, FieldQuery]]
    ) -> Mapping[str, Mapping[str, FieldQuery]]:
        return MappingProxyType(
            {group: MappingProxyType(dict(fields)) for group, fields in value.items()}
        )

    @field_serializer("selector")
    def dump_selector(
        self, value: Mapping[str, Mapping[str, FieldQuery]]
    ) -> dict[str, dict[str, Any]]:
        return {
            group: {name: query.model_dump() for name, query in fields.items()}
            for group, fields in value.items()
        }


class SearchFilter(BaseModel):
    """Keywords plus category constraints for one search.

    Attributes:
        keywords: Free-text search terms.
        categories: Category key to selected value (or list of values).
        extra_params: Additional raw query parameters.
    """

    model_config = ConfigDict(frozen=True)

    keywords: str = ""
    categories: dict[str, Any] = Field(default_factory=dict)
    extra_params: dict[str, Any] = Field(default_factory=dict)
