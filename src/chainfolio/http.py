"""Shared HTTP plumbing for upstream calls.

One ``httpx.AsyncClient`` is created by the caller (API lifespan, tests)
and passed into every fetcher. The helpers here translate transport and
status failures into the AggregationError taxonomy.
"""

import logging
from typing import Any, Optional

import httpx

from chainfolio.config import Settings
from chainfolio.errors import (
    InvalidEndpointError,
    MalformedResponseError,
    RateLimitedError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)

USER_AGENT = "chainfolio/0.1"


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the shared HTTP client with the default timeout applied."""
    return httpx.AsyncClient(
        timeout=settings.http_timeout,
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
    )


def ensure_success(
    response: httpx.Response,
    *,
    upstream: str,
    chain: Optional[str] = None,
) -> None:
    """Raise the matching AggregationError for a non-2xx response."""
    if response.status_code == 429:
        raise RateLimitedError("Too many requests", chain=chain, upstream=upstream)
    if not response.is_success:
        raise UpstreamUnavailableError(
            f"HTTP {response.status_code}",
            status_code=response.status_code,
            chain=chain,
            upstream=upstream,
        )


def decode_json(
    response: httpx.Response,
    *,
    upstream: str,
    chain: Optional[str] = None,
    expect: type = dict,
) -> Any:
    """Decode a JSON body and check its top-level type."""
    try:
        data = response.json()
    except ValueError as e:
        raise MalformedResponseError(f"Invalid JSON: {e}", chain=chain, upstream=upstream)

    if not isinstance(data, expect):
        raise MalformedResponseError(
            f"Expected JSON {expect.__name__}, got {type(data).__name__}",
            chain=chain,
            upstream=upstream,
        )
    return data


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    upstream: str,
    chain: Optional[str] = None,
    expect: type = dict,
    **kwargs: Any,
) -> Any:
    """Send a request and return its decoded JSON body.

    Extra keyword arguments (``params``, ``json``, ``timeout``, ``headers``)
    are passed to ``httpx.AsyncClient.request``.
    """
    try:
        response = await client.request(method, url, **kwargs)
    except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
        raise InvalidEndpointError(f"Invalid URL {url!r}: {e}", chain=chain, upstream=upstream)
    except httpx.HTTPError as e:
        logger.debug(f"{upstream} request to {url} failed: {e}")
        raise UpstreamUnavailableError(
            f"{type(e).__name__}: {e}", chain=chain, upstream=upstream
        )

    ensure_success(response, upstream=upstream, chain=chain)
    return decode_json(response, upstream=upstream, chain=chain, expect=expect)
