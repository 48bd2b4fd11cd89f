"""Authentication-state detection for HTTP responses.

Private services rarely answer an expired session with 401. They redirect
to a login page, send a ``Refresh`` header, or serve a tiny page asking the
visitor to log in. The heuristics below catch those shapes without any
per-service code. They can be wrong; that trade-off is accepted.

The check is chosen by the service's SiteAccess tag: public services have no
session and always pass.
"""

import re
from collections.abc import Callable

import httpx

from config.settings import get_config
from ptscraper.logger import get_logger
from ptscraper.models import SiteAccess

log = get_logger(__name__)

LOGIN_URL_PATTERN = re.compile(r"login|verify|checkpoint|returnto", re.IGNORECASE)
REFRESH_HEADER_PATTERN = re.compile(r"^\s*\d+\s*;\s*url\s*=\s*(.+)$", re.IGNORECASE)
LOGIN_BODY_PATTERN = re.compile(r"login|not authorized", re.IGNORECASE)


def response_body(response: httpx.Response) -> str | None:
    """Body text, or None when the body is unread or empty."""
    try:
        content = response.content
    except httpx.ResponseNotRead:
        return None
    if not content:
        return None
    return response.text


def _public_check(response: httpx.Response, short_content_threshold: int) -> bool:
    return True


def _session_check(response: httpx.Response, short_content_threshold: int) -> bool:
    final_url = str(response.url)
    if LOGIN_URL_PATTERN.search(final_url):
        log.debug("Redirected to login page", url=final_url)
        return False

    refresh = response.headers.get("refresh")
    if refresh:
        matched = REFRESH_HEADER_PATTERN.match(refresh)
        if matched and LOGIN_URL_PATTERN.search(matched.group(1)):
            log.debug("Refresh header points to login page", url=final_url, refresh=refresh)
            return False

    body = response_body(response)
    if body is None:
        log.debug("Response has no body", url=final_url)
        return False

    if len(body) < short_content_threshold and LOGIN_BODY_PATTERN.search(body):
        log.debug("Short body asks for login", url=final_url, length=len(body))
        return False

    return True


_CHECKS: dict[SiteAccess, Callable[[httpx.Response, int], bool]] = {
    SiteAccess.PUBLIC: _public_check,
    SiteAccess.AUTHENTICATED: _session_check,
}


def is_authenticated(
    response: httpx.Response,
    access: SiteAccess,
    *,
    short_content_threshold: int | None = None,
) -> bool:
    """Classify a response as belonging to a logged-in session.

    For authenticated services, in order: a login-like final URL, a
    ``Refresh`` header targeting a login-like URL, a missing body, or a body
    shorter than the threshold mentioning login each mean "not logged in".

    Args:
        response: Response after redirects.
        access: The service's capability tag.
        short_content_threshold: Override of the settings value (800).

    Returns:
        True when the session looks authenticated.
    """
    if short_content_threshold is None:
        short_content_threshold = get_config().short_content_threshold
    return _CHECKS[access](response, short_content_threshold)
