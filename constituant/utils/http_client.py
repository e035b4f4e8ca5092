"""
HTTP fetch client used by source adapters and the full-text fetcher.

Wraps httpx.AsyncClient with the platform's headers, timeouts and redirect
limit. Calls never raise for network or HTTP errors; they return a
FetchResult the caller inspects.

Responsibility: Outbound GET/POST with uniform failure reporting
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "Constituant/1.0 (Civic Platform; +https://constituant.fr)"

DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json",
    "Accept-Language": "fr-FR,fr;q=0.9,en;q=0.8",
}


@dataclass(slots=True)
class FetchResult:
    """Outcome of one HTTP request."""

    ok: bool
    url: str
    status_code: Optional[int] = None
    content: bytes = b""
    error: Optional[str] = None
    elapsed_seconds: float = 0.0
    content_type: Optional[str] = None

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


class HttpFetchClient:
    """
    Thin async HTTP client with failure-as-value semantics.

    Example:
        async with HttpFetchClient() as client:
            result = await client.get("https://www.nosdeputes.fr/dossiers/date/json")
            if result.ok:
                data = parse_json(result.content)
    """

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        max_redirects: int = 3,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize HTTP client.

        Args:
            timeout_seconds: Default per-request timeout
            max_redirects: Redirects followed before failing
            headers: Extra default headers
            transport: Optional httpx transport (MockTransport in tests)
            sleep: Awaitable sleep used for pre-request delays
        """
        self.timeout_seconds = timeout_seconds
        self._sleep = sleep or asyncio.sleep
        self.client = httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={**DEFAULT_HEADERS, **(headers or {})},
            follow_redirects=True,
            max_redirects=max_redirects,
            transport=transport,
        )

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        delay_seconds: float = 0.0,
        timeout_seconds: Optional[float] = None,
    ) -> FetchResult:
        """
        Issue a GET request.

        Args:
            url: Absolute URL
            params: Query parameters
            headers: Per-request header overrides
            delay_seconds: Blocking wait before the request
            timeout_seconds: Per-request timeout override

        Returns:
            FetchResult (ok is False for transport errors and status >= 400)
        """
        return await self._request(
            "GET", url,
            params=params,
            headers=headers,
            delay_seconds=delay_seconds,
            timeout_seconds=timeout_seconds,
        )

    async def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        delay_seconds: float = 0.0,
        timeout_seconds: Optional[float] = None,
    ) -> FetchResult:
        """Issue a POST request with a JSON body."""
        return await self._request(
            "POST", url,
            headers={"Content-Type": "application/json", **(headers or {})},
            content=json.dumps(payload).encode("utf-8"),
            delay_seconds=delay_seconds,
            timeout_seconds=timeout_seconds,
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        content: Optional[bytes] = None,
        delay_seconds: float = 0.0,
        timeout_seconds: Optional[float] = None,
    ) -> FetchResult:
        if delay_seconds > 0:
            await self._sleep(delay_seconds)

        start = time.monotonic()
        try:
            response = await self.client.request(
                method,
                url,
                params=params,
                headers=headers,
                content=content,
                timeout=timeout_seconds or self.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            elapsed = time.monotonic() - start
            logger.warning(f"{method} {url} failed after {elapsed:.2f}s: {type(exc).__name__}: {exc}")
            return FetchResult(
                ok=False,
                url=url,
                error=f"{type(exc).__name__}: {exc}",
                elapsed_seconds=elapsed,
            )

        elapsed = time.monotonic() - start
        result = FetchResult(
            ok=response.status_code < 400,
            url=str(response.url),
            status_code=response.status_code,
            content=response.content,
            elapsed_seconds=elapsed,
            content_type=response.headers.get("content-type"),
        )
        if not result.ok:
            result.error = f"HTTP {response.status_code}"
            logger.warning(f"{method} {url} returned HTTP {response.status_code} in {elapsed:.2f}s")
        else:
            logger.debug(f"{method} {url} -> {response.status_code} ({elapsed:.2f}s)")
        return result

    async def close(self) -> None:
        """Close the underlying HTTP client"""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
