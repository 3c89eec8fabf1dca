# rentradar/connectors/scraper.py
from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass
from typing import AsyncContextManager, Awaitable, Callable

import httpx

from ..adapters.clients.browser import BrowserSession, PageRenderer
from ..adapters.clients.http_resilience import fetch_document, new_client
from ..adapters.clients.rate_limiter import RateLimiter
from ..adapters.location_resolver import TableLocationResolver
from ..config import settings
from ..domain.criteria import SearchCriteria
from ..domain.errors import SCRAPER_ERRORS
from ..domain.locations import LocationResolver, real_terms
from ..domain.types import PaginationStyle, RawRecord, ResolvedLocation, ScrapingSource
from .extraction import ExtractionPipeline, PageExtraction
from .urls import build_search_url, page_url

log = logging.getLogger(__name__)

BrowserFactory = Callable[[], AsyncContextManager[PageRenderer]]


@dataclass
class ScrapeHealth:
    pages_kept: int = 0
    records: int = 0
    escalated: bool = False
    errors: int = 0
    last_error: str | None = None


def _default_browser_factory() -> BrowserFactory | None:
    if not settings.BROWSER_ENABLED:
        return None
    return BrowserSession


class Scraper:
    """
    One generic scraper, parameterized by a ScrapingSource record.

    scrape() never raises (cancellation aside): fetch/render errors stop this
    source's pagination and whatever was already collected is returned. Pass
    `collected` to keep partial results visible to a caller that may time us out.
    """

    def __init__(
        self,
        source: ScrapingSource,
        limiter: RateLimiter,
        *,
        resolver: LocationResolver | None = None,
        pipeline: ExtractionPipeline | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        browser_factory: BrowserFactory | None = None,
        use_browser: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        page_delay_s: float | None = None,
        max_retries: int | None = None,
        backoff_base_s: float | None = None,
    ) -> None:
        self.source = source
        self.limiter = limiter
        self.resolver = resolver or TableLocationResolver()
        self.pipeline = pipeline or ExtractionPipeline(source)
        self._transport = transport
        self._browser_factory = browser_factory or (_default_browser_factory() if use_browser else None)
        self._sleep = sleep
        self.page_delay_s = float(settings.SCRAPER_PAGE_DELAY_S if page_delay_s is None else page_delay_s)
        self._max_retries = max_retries
        self._backoff_base_s = backoff_base_s
        self.health = ScrapeHealth()

    async def scrape(
        self,
        criteria: SearchCriteria,
        max_pages: int,
        *,
        collected: list[RawRecord] | None = None,
    ) -> list[RawRecord]:
        records = collected if collected is not None else []
        self.health = ScrapeHealth()
        try:
            async with AsyncExitStack() as stack:
                await self._paginate(criteria, max_pages, records, stack)
        except Exception as e:
            self.health.errors += 1
            self.health.last_error = f"{type(e).__name__}: {e}"
            log.exception("source=%s scrape aborted after %d records", self.source.id, len(records))
        return records

    def resolve_where(self, criteria: SearchCriteria) -> ResolvedLocation:
        loc = criteria.hard_requirements.location
        city = loc.city or settings.DEFAULT_CITY
        terms = real_terms(loc.neighborhoods)
        text = f"{terms[0]}, {city}" if terms else city
        where = self.resolver.resolve(text)
        if loc.city and where.confidence < 0.5:
            # resolver only guessed; trust what the caller typed
            where = ResolvedLocation(city=loc.city, neighborhood=where.neighborhood, confidence=where.confidence)
        return where

    def page_budget(self, max_pages: int) -> int:
        budget = max(1, int(max_pages))
        if self.source.max_pages:
            budget = min(budget, int(self.source.max_pages))
        if self.source.pagination.style == PaginationStyle.none:
            budget = 1
        return budget

    async def _paginate(
        self,
        criteria: SearchCriteria,
        max_pages: int,
        records: list[RawRecord],
        stack: AsyncExitStack,
    ) -> None:
        search_url = build_search_url(self.source, criteria, self.resolve_where(criteria))
        client = await stack.enter_async_context(new_client(referer=self.source.base_url, transport=self._transport))
        renderer: PageRenderer | None = None

        for page in range(1, self.page_budget(max_pages) + 1):
            if page > 1 and self.page_delay_s > 0:
                await self._sleep(self.page_delay_s)

            url = page_url(self.source, search_url, page)
            try:
                if renderer is None:
                    extracted = await self._static(client, url)
                    if not extracted.records and page == 1:
                        renderer = await self._open_renderer(stack)
                        if renderer is None:
                            break
                        self.health.escalated = True
                        extracted = await self._rendered(renderer, url)
                else:
                    extracted = await self._rendered(renderer, url)
            except SCRAPER_ERRORS as e:
                self.health.errors += 1
                self.health.last_error = str(e)
                log.warning("source=%s page=%d stopping: %s", self.source.id, page, e)
                break

            if not extracted.records:
                break

            records.extend(extracted.records)
            self.health.pages_kept += 1
            self.health.records += len(extracted.records)

            if not extracted.has_next:
                break

        log.info(
            "source=%s pages=%d records=%d escalated=%s errors=%d",
            self.source.id,
            self.health.pages_kept,
            self.health.records,
            self.health.escalated,
            self.health.errors,
        )

    async def _static(self, client: httpx.AsyncClient, url: str) -> PageExtraction:
        async with self.limiter.slot():
            html = await fetch_document(
                client,
                url,
                max_retries=self._max_retries,
                backoff_base_s=self._backoff_base_s,
            )
        return self.pipeline.extract(html, url)

    async def _rendered(self, renderer: PageRenderer, url: str) -> PageExtraction:
        async with self.limiter.slot():
            html = await renderer.render(url, wait_selector=self.source.extraction.wait_selector)
        return self.pipeline.extract(html, url)

    async def _open_renderer(self, stack: AsyncExitStack) -> PageRenderer | None:
        if self._browser_factory is None:
            log.info("source=%s static page empty and browser escalation disabled", self.source.id)
            return None
        return await stack.enter_async_context(self._browser_factory())
