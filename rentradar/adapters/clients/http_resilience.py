# rentradar/adapters/clients/http_resilience.py
from __future__ import annotations

import asyncio
import logging
import random
import ssl
from typing import Any

import certifi
import httpx

from ...config import settings
from ...domain.errors import NetworkError

log = logging.getLogger(__name__)

RETRYABLE_STATUS = (429, 500, 502, 503, 504)


def random_user_agent() -> str:
    return random.choice(settings.HTTP_USER_AGENTS)


def browser_headers(referer: str | None = None) -> dict[str, str]:
    headers = {
        "User-Agent": random_user_agent(),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": settings.HTTP_ACCEPT_LANGUAGE,
        "Cache-Control": "no-cache",
        "Upgrade-Insecure-Requests": "1",
    }
    if referer:
        headers["Referer"] = referer
    return headers


def http_verify() -> bool | ssl.SSLContext:
    """
    httpx 'verify' is either False or an SSL context built from:
      - HTTP_CA_BUNDLE when set (corporate proxies)
      - certifi's bundle otherwise
    """
    if not settings.HTTP_VERIFY_SSL:
        return False
    return ssl.create_default_context(cafile=settings.HTTP_CA_BUNDLE or certifi.where())


def new_client(
    *,
    referer: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """One client per scrape invocation; closed when the source's loop ends."""
    limits = httpx.Limits(max_keepalive_connections=5, max_connections=10)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(float(settings.HTTP_TIMEOUT_S)),
        headers=browser_headers(referer),
        follow_redirects=True,
        limits=limits,
        verify=http_verify(),
        transport=transport,
    )


async def fetch_document(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    max_retries: int | None = None,
    backoff_base_s: float | None = None,
) -> str:
    """
    GET a page and return its text. Retries timeouts, transport errors and
    429/5xx with exponential backoff; anything else non-2xx fails immediately.
    Raises NetworkError.
    """
    retries = int(settings.HTTP_MAX_RETRIES if max_retries is None else max_retries)
    backoff = float(settings.HTTP_BACKOFF_BASE_S if backoff_base_s is None else backoff_base_s)

    last_exc: Exception | None = None
    status: int | None = None
    for attempt in range(retries + 1):
        try:
            resp = await client.get(url, params=params, headers={"User-Agent": random_user_agent()})
            status = resp.status_code

            if resp.status_code in RETRYABLE_STATUS:
                raise httpx.HTTPStatusError("retryable_status", request=resp.request, response=resp)

            if resp.status_code >= 400:
                raise NetworkError(f"HTTP {resp.status_code} for {url}", url=url, status_code=resp.status_code)

            return resp.text
        except (httpx.TimeoutException, httpx.TransportError, httpx.HTTPStatusError) as e:
            last_exc = e
            if attempt >= retries:
                break
            delay = min(5.0, backoff * (2**attempt))
            log.debug("retrying %s in %.2fs (attempt %d): %s", url, delay, attempt + 1, e)
            await asyncio.sleep(delay)

    assert last_exc is not None
    raise NetworkError(f"fetch failed for {url}: {last_exc}", url=url, status_code=status) from last_exc
