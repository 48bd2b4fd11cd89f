"""Link normalization against a site's active URL.

Listing pages link to details and downloads with every flavour of href:
magnet URIs, absolute URLs, protocol-relative ``//cdn/...`` paths and bare
relative paths. fix_link() turns all of them into absolute URLs.

It needs the active URL, which filters never see, so it is applied by the
row transformer after extraction and never from inside a filter pipeline.
"""

from urllib.parse import urlparse


def fix_link(uri: str, active_url: str) -> str:
    """Resolve a raw href to an absolute URL.

    Rules, first match wins:
        1. ``magnet:`` URIs are returned unchanged.
        2. ``//host/path`` gets the scheme of ``active_url``.
        3. ``http``/``https`` URLs are returned unchanged.
        4. Anything else is appended to ``active_url`` as a relative path.

    An empty link stays empty so that a missing field keeps its zero value.

    Example:
        >>> fix_link("foo.php?id=1", "https://site.org/base/")
        'https://site.org/base/foo.php?id=1'
    """
    if not uri:
        return uri

    if uri.startswith("magnet:"):
        return uri

    if uri.startswith("//"):
        return f"{urlparse(active_url).scheme or 'https'}:{uri}"

    if uri.lower().startswith(("http://", "https://")):
        return uri

    return f"{active_url.rstrip('/')}/{uri.lstrip('/')}"
