"""Pytest configuration and shared fixtures for the PtScraper test suite.

All HTTP traffic goes through ``httpx.MockTransport``; no test touches the
network. Service configurations are built from a factory so each test can
override just the parts it exercises.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from config.settings import GlobalConfig
from ptscraper.resolver import deep_merge

SITE_URL = "https://tracker.example.org/"


@pytest.fixture
def mock_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> GlobalConfig:
    """Provide isolated GlobalConfig with safe test defaults.

    Clears the lru_cache singleton before and after the test so environment
    overrides cannot leak between tests.
    """
    from config.settings import get_config

    get_config.cache_clear()

    log_dir = tmp_path / "logs"
    log_dir.mkdir()

    test_env = {
        "APP_NAME": "PtScraper-Test",
        "ENVIRONMENT": "test",
        "DEBUG": "false",
        "LOG_LEVEL": "DEBUG",
        "LOG_DIR": str(log_dir),
        "LOG_ROTATION": "1 day",
        "LOG_RETENTION": "1 day",
        "REQUEST_TIMEOUT_SEC": "5",
        "SHORT_CONTENT_THRESHOLD": "800",
    }
    for key, value in test_env.items():
        monkeypatch.setenv(key, value)

    config = get_config()

    yield config

    get_config.cache_clear()


@pytest.fixture
def site_metadata_factory() -> Callable[..., dict[str, Any]]:
    """Factory for SDBits-style authenticated service metadata.

    Keyword overrides are deep-merged onto the defaults.
    """

    def _build(**overrides: Any) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "name": "Example Tracker",
            "url": SITE_URL,
            "timezone_offset": "+0000",
            "access": "authenticated",
            "search": {
                "keywords_param": "search",
                "request_config": {"url": "/browse.php"},
                "rows": "table.torrents > tr.row",
                "categories": [
                    {
                        "name": "Category",
                        "key": "cat",
                        "options": [
                            {"value": 1, "name": "Movie"},
                            {"value": 2, "name": "TV"},
                        ],
                    }
                ],
            },
            "user_info": {
                "process": [
                    {"request_config": {"url": "/index.php"}, "fields": ["id", "name"]},
                    {
                        "request_config": {"url": "/userdetails.php"},
                        "assertion": {"id": "id"},
                        "fields": ["uploaded", "downloaded", "ratio", "levelName"],
                    },
                ]
            },
            "selector": {
                "search": {
                    "id": {
                        "selector": "a.title",
                        "attribute": "href",
                        "filters": [["query_param", "id"]],
                    },
                    "title": {"selector": ["a.title"]},
                    "url": {"selector": "a.title", "attribute": "href"},
                    "link": {"selector": "a.download", "attribute": "href"},
                    "size": {"selector": "td.size", "filters": ["parse_size"]},
                    "seeders": {"selector": "td.seeders", "filters": ["parse_int"]},
                },
                "userInfo": {
                    "id": {
                        "selector": "a[href*='userdetails.php']",
                        "attribute": "href",
                        "filters": [["query_param", "id"]],
                    },
                    "name": {"selector": "a[href*='userdetails.php']"},
                    "uploaded": {
                        "selector": "td.rowhead:contains('Uploaded') + td",
                        "filters": ["find_then_parse_size"],
                    },
                    "downloaded": {
                        "selector": "td.rowhead:contains('Downloaded') + td",
                        "filters": ["find_then_parse_size"],
                    },
                    "ratio": {
                        "selector": ["td.rowhead:contains('Ratio') + td"],
                        "filters": ["parse_float"],
                    },
                    "levelName": {"selector": ["td.rowhead:contains('Class') + td"]},
                },
            },
        }
        return deep_merge(metadata, overrides)

    return _build


@pytest.fixture
def search_html_factory() -> Callable[..., str]:
    """Factory generating a search result table.

    Each row dict may set ``id``, ``title``, ``size``, ``seeders`` and
    ``link``; a value of None drops that cell to simulate missing markup.
    """

    def _generate(rows: list[dict[str, Any]] | None = None) -> str:
        rows = rows if rows is not None else [{"id": 1}, {"id": 2}]
        rendered = []
        for row in rows:
            torrent_id = row.get("id", 1)
            title = row.get("title", f"Release {torrent_id}")
            size = row.get("size", "1.5 GiB")
            seeders = row.get("seeders", "12")
            link = row.get("link", f"download.php?id={torrent_id}")

            cells = [f'<td><a class="title" href="details.php?id={torrent_id}">{title}</a></td>']
            if link is not None:
                cells.append(f'<td><a class="download" href="{link}">DL</a></td>')
            if size is not None:
                cells.append(f'<td class="size">{size}</td>')
            if seeders is not None:
                cells.append(f'<td class="seeders">{seeders}</td>')
            rendered.append(f'<tr class="row">{"".join(cells)}</tr>')

        return f"""
        <!DOCTYPE html>
        <html>
        <head><title>Browse</title></head>
        <body>
            <table class="torrents">
                <tr class="header"><td>Name</td></tr>
                {"".join(rendered)}
            </table>
        </body>
        </html>
        """

    return _generate


@pytest.fixture
def index_html() -> str:
    body = "<p>Welcome back to the tracker, enjoy your stay.</p>" * 30
    return f"""
    <html><body>
        <div id="nav"><a href="userdetails.php?id=4242">alice</a></div>
        {body}
    </body></html>
    """


@pytest.fixture
def userdetails_html() -> str:
    filler = "<p>Profile statistics and history for this account.</p>" * 30
    return f"""
    <html><body>
        <table>
            <tr><td class="rowhead">Uploaded</td><td>12.3 GiB (13,207,024,435 bytes)</td></tr>
            <tr><td class="rowhead">Downloaded</td><td>512.00 MiB</td></tr>
            <tr><td class="rowhead">Ratio</td><td>24.6</td></tr>
            <tr><td class="rowhead">Class</td><td> Power User </td></tr>
        </table>
        {filler}
    </body></html>
    """


def make_transport(
    routes: dict[str, httpx.Response | Callable[[httpx.Request], httpx.Response]],
    seen: list[httpx.Request] | None = None,
) -> httpx.MockTransport:
    """MockTransport answering by URL path; unknown paths return 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        route = routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, text="not found")
        return route(request) if callable(route) else route

    return httpx.MockTransport(handler)


def pytest_configure(config: Any) -> None:
    config.addinivalue_line(
        "markers",
        "integration: marks tests exercising the full request-to-entity flow",
    )
