"""
Utilities package for Constituant.

This package contains reusable helpers for:
- HTTP fetching and request throttling
- Payload parsing (JSON, CSV, RSS)
- Text cleaning and field picking
- Retry logic and deduplication
"""

from .rate_limiter import RequestThrottle
from .retry import RetryError, RetryPolicy, is_transient, retry_async
from .dedupe import dedupe_by_key
from .http_client import FetchResult, HttpFetchClient
from .parsers import ParseError, parse_csv, parse_json, parse_rss

__all__ = [
    "RequestThrottle",
    "RetryError",
    "RetryPolicy",
    "is_transient",
    "retry_async",
    "dedupe_by_key",
    "FetchResult",
    "HttpFetchClient",
    "ParseError",
    "parse_csv",
    "parse_json",
    "parse_rss",
]
