"""
Async HTTP fetching for source adapters.

fetch_url never raises for network-level problems; it reports them in a
FetchResult. get_json and get_text sit on top of it and turn any failure
(timeout, transport error, non-2xx status, undecodable body) into an
AdapterFetchError carrying the adapter name.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import time
from typing import Any, Mapping

import httpx

from ..core.errors import AdapterFetchError


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched, without query parameters
        status_code: HTTP status code, or None if request failed before getting response
        text: The response body text, or None on error
        error: Error message if fetch failed, None on success
        duration_ms: Wall time spent on the request
    """

    url: str
    status_code: int | None
    text: str | None
    error: str | None
    duration_ms: int = 0


async def fetch_url(
    url: str,
    params: Mapping[str, Any] | None = None,
    timeout: float = 10.0,
    user_agent: str = "FeedAggregator/1.0",
    client: httpx.AsyncClient | None = None,
) -> FetchResult:
    """Fetch a URL with a fixed timeout.

    Uses the shared ``client`` when given (tests inject one backed by
    ``httpx.MockTransport``), otherwise a short-lived client per call.
    """
    headers = {"User-Agent": user_agent}
    start = time.perf_counter()
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout, headers=headers, follow_redirects=True) as own:
                resp = await own.get(url, params=params)
        else:
            resp = await client.get(url, params=params, headers=headers, timeout=timeout)
    except httpx.TimeoutException:
        return FetchResult(url, None, None, f"timed out after {timeout}s", _elapsed_ms(start))
    except httpx.HTTPError as exc:
        return FetchResult(url, None, None, f"{type(exc).__name__}: {exc}", _elapsed_ms(start))

    if not resp.is_success:
        return FetchResult(url, resp.status_code, None, f"HTTP {resp.status_code}", _elapsed_ms(start))
    return FetchResult(url, resp.status_code, resp.text, None, _elapsed_ms(start))


async def get_text(source: str, url: str, **kwargs: Any) -> str:
    result = await fetch_url(url, **kwargs)
    if result.error:
        raise AdapterFetchError(source, result.error, result.status_code)
    return result.text or ""


async def get_json(source: str, url: str, **kwargs: Any) -> Any:
    """Fetch a URL and decode its JSON body, raising AdapterFetchError on failure."""
    result = await fetch_url(url, **kwargs)
    if result.error:
        raise AdapterFetchError(source, result.error, result.status_code)
    try:
        return json.loads(result.text or "")
    except ValueError as exc:
        raise AdapterFetchError(source, f"malformed JSON payload: {exc}", result.status_code) from exc


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
