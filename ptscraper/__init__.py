"""PtScraper: declarative account and listing extraction for torrent sites.

One interpreter serves every site; a site is described purely as data.

- models: pydantic schemas for service configuration and field queries
- resolver: deep-merge of service defaults with user overrides
- normalizers: size, relative-duration and zoned-time converters
- filters: the closed registry of named filter functions
- extractor: selector fallback chains and filter pipelines
- transformer: field-query groups applied to rows and sections
- links: link normalization against the active URL
- auth: login-page heuristics for HTTP responses
- client: httpx transport with error mapping
- scraper: request orchestration for search and user info
- logger: loguru configuration
- exceptions: custom exception hierarchy
"""

from ptscraper.exceptions import (
    AuthenticationError,
    ConfigError,
    NetworkError,
    PtScraperError,
)
from ptscraper.models import FieldQuery, SearchFilter, ServiceConfig, SiteAccess
from ptscraper.resolver import resolve_config
from ptscraper.scraper import SiteScraper

__version__ = "1.0.0"

__all__ = [
    "AuthenticationError",
    "ConfigError",
    "FieldQuery",
    "NetworkError",
    "PtScraperError",
    "SearchFilter",
    "ServiceConfig",
    "SiteAccess",
    "SiteScraper",
    "resolve_config",
]
