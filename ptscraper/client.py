"""HTTP transport built on httpx.

HttpClient owns one ``httpx.AsyncClient`` for its lifetime and turns
transport failures into NetworkError. It performs exactly one request per
send() call: no retries and no backoff, since retry policy belongs to the
caller.

Redirects are followed by default so that the final response URL is
available to the authentication check.
"""

import random
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Self

import httpx

from config.settings import GlobalConfig, get_config
from ptscraper.exceptions import NetworkError
from ptscraper.links import fix_link
from ptscraper.logger import get_logger
from ptscraper.models import RequestSpec

log = get_logger(__name__)


class HttpClient:
    """Manages an httpx client with a pooled user agent and error mapping.

    Attributes:
        config: GlobalConfig instance for timeouts and headers.
        user_agent: Drawn once from the configured pool; a session keeps
            one user agent for its lifetime.
        _client: Underlying AsyncClient (created on context entry).

    Example:
        async with HttpClient.create() as client:
            response = await client.send(RequestSpec(url="/index.php"), "https://example.org/")
    """

    def __init__(
        self,
        config: GlobalConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        cookies: httpx.Cookies | dict[str, str] | None = None,
    ) -> None:
        """Prefer the ``create()`` context manager over direct use."""
        self.config = config
        self._transport = transport
        self._cookies = cookies
        self._client: httpx.AsyncClient | None = None
        self.user_agent: str = random.choice(config.user_agents)

    @classmethod
    @asynccontextmanager
    async def create(
        cls,
        config: GlobalConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        cookies: httpx.Cookies | dict[str, str] | None = None,
    ) -> AsyncGenerator[Self, None]:
        """Yield an initialized client and close it on exit.

        Args:
            config: Optional GlobalConfig. Uses singleton if not provided.
            transport: Custom httpx transport (tests use MockTransport).
            cookies: Session cookies for authenticated services.
        """
        if config is None:
            config = get_config()

        instance = cls(config, transport=transport, cookies=cookies)
        try:
            instance._initialize()
            yield instance
        finally:
            await instance._cleanup()

    def _initialize(self) -> None:
        self._client = httpx.AsyncClient(
            timeout=self.config.request_timeout_sec,
            follow_redirects=self.config.follow_redirects,
            headers={
                "User-Agent": self.user_agent,
                "Accept": "text/html,application/xhtml+xml,application/json",
            },
            cookies=self._cookies,
            transport=self._transport,
        )
        log.debug("HTTP client initialized", timeout=self.config.request_timeout_sec)

    async def send(self, spec: RequestSpec, base_url: str) -> httpx.Response:
        """Issue one request relative to ``base_url``.

        Args:
            spec: Request description; ``spec.url`` may be relative.
            base_url: Base URL the relative path is appended to.

        Returns:
            The response, with its body read.

        Raises:
            NetworkError: On transport failure or a status above 400.
        """
        url = fix_link(spec.url, base_url)

        if self._client is None:
            raise NetworkError(url=url, reason="HTTP client not initialized")

        request = self._client.build_request(
            spec.method,
            url,
            params=spec.params or None,
            data=spec.data,
            headers=spec.headers or None,
        )
        log.debug("Sending request", method=spec.method, url=str(request.url))

        try:
            response = await self._client.send(request)
        except httpx.TimeoutException as exc:
            raise NetworkError(
                url=url,
                reason=f"Timeout after {self.config.request_timeout_sec}s",
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(url=url, reason=str(exc) or type(exc).__name__) from exc

        if response.status_code > 400:
            raise NetworkError(
                url=url,
                reason=f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        log.debug(
            "Response received",
            url=str(response.url),
            status_code=response.status_code,
            length=len(response.content),
        )
        return response

    async def _cleanup(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_initialized(self) -> bool:
        return self._client is not None
