"""Data-driven service scraper: request orchestration and page transformation.

SiteScraper is the single interpreter behind every service. It never holds
service-specific code; everything it knows about a service comes from the
declarative metadata it was constructed with, merged with user overrides on
first access.

Flow for one operation:
    effective config -> request() -> auth gate -> transform rows -> entities
"""

import threading
from collections.abc import Mapping
from typing import Any

import httpx
from bs4 import Tag
from soupsieve import SelectorSyntaxError

from config.settings import GlobalConfig, get_config
from ptscraper.auth import is_authenticated
from ptscraper.client import HttpClient
from ptscraper.exceptions import AuthenticationError, ConfigError, NetworkError
from ptscraper.extractor import get_path, parse_document, select_all
from ptscraper.links import fix_link
from ptscraper.logger import get_logger
from ptscraper.models import (
    SEARCH_GROUP,
    USER_INFO_GROUP,
    RequestSpec,
    SearchFilter,
    ServiceConfig,
    SiteAccess,
    Torrent,
    UserInfo,
    UserInfoStep,
)
from ptscraper.resolver import resolve_config
from ptscraper.transformer import transform_row, transform_rows

log = get_logger(__name__)


class SiteScraper:
    """Search and account-statistics scraper for one service.

    Attributes:
        metadata: The service's default declarative configuration.
        user_config: Caller overrides merged on top of ``metadata``.
        settings: GlobalConfig for transport and heuristic settings.
        client: Shared HttpClient; when None each request opens its own.

    Example:
        scraper = SiteScraper(SDBITS, {"url": "https://mirror.example/"})
        async with HttpClient.create(cookies=session_cookies) as client:
            scraper.client = client
            stats = await scraper.get_user_info()
    """

    def __init__(
        self,
        metadata: ServiceConfig | Mapping[str, Any],
        user_config: Mapping[str, Any] | None = None,
        *,
        client: HttpClient | None = None,
        settings: GlobalConfig | None = None,
    ) -> None:
        self.metadata = metadata
        self.user_config = user_config or {}
        self.settings = settings or get_config()
        self.client = client
        self._config: ServiceConfig | None = None
        self._config_lock = threading.Lock()

    @property
    def config(self) -> ServiceConfig:
        """Effective configuration, resolved once on first access.

        Raises:
            ConfigError: If the metadata and overrides cannot be resolved.
        """
        if self._config is None:
            with self._config_lock:
                if self._config is None:
                    self._config = resolve_config(self.metadata, self.user_config)
        return self._config

    @property
    def name(self) -> str:
        return self.config.name or self.config.host

    @property
    def active_url(self) -> str:
        """The URL requests and links resolve against."""
        return self.config.activate_url or self.config.url

    async def request(self, spec: RequestSpec) -> httpx.Response:
        """Issue one request and gate it through the authentication check.

        The base URL is ``spec.base_url`` if given, else the active URL.

        Raises:
            NetworkError: Transport failure or status above 400.
            AuthenticationError: The response looks like a login page.
        """
        base_url = spec.base_url or self.active_url

        if self.client is not None:
            response = await self.client.send(spec, base_url)
        else:
            async with HttpClient.create(self.settings) as client:
                response = await client.send(spec, base_url)

        if not is_authenticated(
            response,
            self.config.access,
            short_content_threshold=self.settings.short_content_threshold,
        ):
            log.warning("Session not authenticated", site=self.name, url=str(response.url))
            raise AuthenticationError(url=str(response.url), site=self.name)

        return response

    def _parse_response(self, response: httpx.Response, response_type: str | None) -> Any:
        if response_type == "json":
            try:
                return response.json()
            except ValueError as exc:
                log.warning(
                    "Response is not valid JSON",
                    site=self.name,
                    url=str(response.url),
                    error=str(exc),
                )
                return None
        if response_type == "text":
            return response.text
        return parse_document(response.text)

    def transform_search_filter(self, search_filter: SearchFilter) -> RequestSpec:
        """Build the search request for ``search_filter``.

        Keywords go to ``search.keywords_param``; categories unknown to the
        service's vocabulary are dropped.
        """
        search = self.config.search
        params = dict(search.request_config.params)

        if search_filter.keywords:
            params[search.keywords_param] = search_filter.keywords

        known = {category.key for category in search.categories}
        for key, value in search_filter.categories.items():
            if key not in known:
                log.warning("Unknown search category ignored", site=self.name, category=key)
                continue
            params[key] = value

        params.update(search_filter.extra_params)
        return search.request_config.model_copy(
            update={"params": params, "response_type": search.type}
        )

    def transform_search_page(self, page: Any) -> list[Torrent]:
        """Turn a parsed search page into torrents.

        ``search.rows`` locates the rows: a CSS selector for documents, a
        path for JSON (``"."`` for a top-level list).

        Raises:
            ConfigError: If no row selector is configured or it is invalid.
        """
        rows_selector = self.config.search.rows
        if not rows_selector:
            raise ConfigError(field="search.rows", reason="no row selector configured")

        if isinstance(page, Tag):
            try:
                rows = select_all(page, rows_selector)
            except SelectorSyntaxError as exc:
                raise ConfigError(
                    field="search.rows", reason=str(exc), value=rows_selector
                ) from exc
        else:
            rows = get_path(page, rows_selector)
            if not isinstance(rows, list):
                rows = []

        group = self.config.selector.get(SEARCH_GROUP, {})
        return transform_rows(
            rows, group, self.active_url, timezone_offset=self.config.timezone_offset
        )

    async def search_torrents(self, search_filter: SearchFilter | None = None) -> list[Torrent]:
        """Search the service and return partial torrents in page order."""
        search_filter = search_filter or SearchFilter()
        spec = self.transform_search_filter(search_filter)

        response = await self.request(spec)
        torrents = self.transform_search_page(self._parse_response(response, spec.response_type))

        log.info(
            "Search complete",
            site=self.name,
            keywords=search_filter.keywords,
            results=len(torrents),
        )
        return torrents

    def _user_info_steps(self) -> list[UserInfoStep]:
        group = self.config.selector.get(USER_INFO_GROUP, {})
        steps = self.config.user_info.process or [UserInfoStep(fields=list(group))]

        for step in steps:
            for field in step.fields:
                if field not in group:
                    raise ConfigError(
                        field=f"selector.{USER_INFO_GROUP}.{field}",
                        reason="no field query configured",
                    )
        return steps

    async def get_user_info(self) -> UserInfo:
        """Collect account statistics by running the user-info process.

        Steps run in order. A step's ``assertion`` copies fields extracted
        by earlier steps into its request params; a step whose asserted
        field is still unknown is skipped.

        Raises:
            ConfigError: For public services or undefined fields.
            NetworkError: Transport failure on any step.
            AuthenticationError: Any step landed on a login page.
        """
        if self.config.access is not SiteAccess.AUTHENTICATED:
            raise ConfigError(
                field="access",
                reason="user info requires an authenticated service",
                value=self.config.access.value,
            )

        group = self.config.selector.get(USER_INFO_GROUP, {})
        user_info: UserInfo = {}

        for index, step in enumerate(self._user_info_steps()):
            missing = [f for f in step.assertion.values() if user_info.get(f) in (None, "", 0)]
            if missing:
                log.warning(
                    "User info step skipped, asserted fields unknown",
                    site=self.name,
                    step=index,
                    missing=missing,
                )
                continue

            params = dict(step.request_config.params)
            for param, field in step.assertion.items():
                params[param] = user_info[field]
            spec = step.request_config.model_copy(update={"params": params})

            response = await self.request(spec)
            page = self._parse_response(response, spec.response_type or "document")
            fields = {field: group[field] for field in step.fields}
            user_info.update(
                transform_row(
                    page, fields, self.active_url, timezone_offset=self.config.timezone_offset
                )
            )

        log.info("User info collected", site=self.name, fields=sorted(user_info))
        return user_info

    async def ping(self) -> bool:
        """True when the service answers and the session is valid."""
        try:
            await self.request(RequestSpec(url="/"))
        except (NetworkError, AuthenticationError) as exc:
            log.info("Ping failed", site=self.name, error_type=type(exc).__name__)
            return False
        return True

    def generate_detail_page_link(self, torrent_id: Any) -> str:
        """Absolute detail page URL for a torrent id."""
        return fix_link(self.config.detail_page_template.format(id=torrent_id), self.active_url)
