# rentradar/service_layer/use_cases/search.py
from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Protocol

from ...adapters.clients.rate_limiter import RateLimiter
from ...adapters.location_resolver import TableLocationResolver
from ...config import settings
from ...connectors.registry import SourceRegistry
from ...connectors.scraper import ScrapeHealth, Scraper
from ...domain.criteria import SearchCriteria, validate_criteria
from ...domain.errors import ParseError
from ...domain.filters import apply_filters
from ...domain.locations import LocationResolver
from ...domain.parsing import fold
from ...domain.policies import validation_errors
from ...domain.types import Property, RawRecord, ScrapingSource, SearchResult, SearchSummary, SourceRun
from ...scoring.ranker import rank
from ...services.entity_resolution import deduplicate
from ...services.metrics import summarize
from ...services.normalize import normalize

log = logging.getLogger(__name__)


class SourceScraper(Protocol):
    async def scrape(
        self,
        criteria: SearchCriteria,
        max_pages: int,
        *,
        collected: list[RawRecord] | None = None,
    ) -> list[RawRecord]:
        ...


ScraperFactory = Callable[[ScrapingSource, RateLimiter], SourceScraper]


def empty_result(page: int, limit: int, started: float, *, drop_reasons: dict[str, int] | None = None) -> SearchResult:
    return SearchResult(
        properties=[],
        total=0,
        page=page,
        limit=limit,
        execution_time=int((time.perf_counter() - started) * 1000),
        summary=SearchSummary(),
        drop_reasons=dict(drop_reasons or {}),
    )


class SearchService:
    """
    One search = fan out one scrape task per source, join with per-source timeouts,
    then normalize -> dedup -> validate -> filter -> score -> paginate -> summarize.

    search() never raises. A source that times out keeps the pages it finished; a
    source that blows up contributes nothing. Siblings are never affected either way.
    """

    def __init__(
        self,
        registry: SourceRegistry | None = None,
        *,
        scraper_factory: ScraperFactory | None = None,
        resolver: LocationResolver | None = None,
        max_pages: int | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self.registry = registry if registry is not None else SourceRegistry.load()
        self.resolver = resolver or TableLocationResolver()
        self.max_pages = int(max_pages or settings.SCRAPER_MAX_PAGES)
        self.timeout_s = float(timeout_s or settings.SCRAPER_TIMEOUT_S)
        self._scraper_factory = scraper_factory or self._default_scraper
        self._limiters: dict[str, RateLimiter] = {}

    def _default_scraper(self, source: ScrapingSource, limiter: RateLimiter) -> SourceScraper:
        return Scraper(source, limiter, resolver=self.resolver)

    def limiter_for(self, source: ScrapingSource) -> RateLimiter:
        limiter = self._limiters.get(source.id)
        if limiter is None:
            limiter = RateLimiter(source.rate_limit)
            self._limiters[source.id] = limiter
        return limiter

    def limiter_stats(self) -> dict[str, dict[str, float | int]]:
        return {s.id: self.limiter_for(s).stats() for s in self.registry.active()}

    def resolve_sources(self, criteria: SearchCriteria) -> list[ScrapingSource]:
        active = self.registry.active()
        wanted = [fold(s) for s in criteria.optional_filters.sources if s and s.strip()]
        if not wanted:
            return active
        out: list[ScrapingSource] = []
        for s in active:
            names = (fold(s.id), fold(s.name))
            if any(w == n or w in n or n in w for w in wanted for n in names):
                out.append(s)
        return out

    async def search(self, criteria: SearchCriteria, page: int = 1, limit: int | None = None) -> SearchResult:
        started = time.perf_counter()
        page = max(1, int(page or 1))
        limit = int(limit or settings.SEARCH_DEFAULT_LIMIT)
        limit = max(1, min(limit, int(settings.SEARCH_MAX_LIMIT)))

        try:
            problems = validate_criteria(criteria)
            if problems:
                log.warning("rejecting unsatisfiable criteria: %s", "; ".join(problems))
                return empty_result(page, limit, started, drop_reasons={"invalid_criteria": len(problems)})
            return await self._run(criteria, page, limit, started)
        except Exception:
            log.exception("search failed; returning empty result")
            return empty_result(page, limit, started)

    async def recommend(self, criteria: SearchCriteria, limit: int = 10) -> list[Property]:
        limit = max(1, int(limit))
        result = await self.search(criteria, page=1, limit=limit * 2)
        return result.properties[:limit]

    async def _run(self, criteria: SearchCriteria, page: int, limit: int, started: float) -> SearchResult:
        sources = self.resolve_sources(criteria)
        if not sources:
            log.info("no active sources match the request")
            return empty_result(page, limit, started)

        outcomes = await asyncio.gather(*(self._run_source(s, criteria) for s in sources))

        drops: dict[str, int] = defaultdict(int)
        runs: list[SourceRun] = []
        normalized: list[Property] = []
        now = datetime.now(timezone.utc)

        for source, raws, run in outcomes:
            runs.append(run)
            if run.status in ("timeout", "error"):
                drops[f"source_{run.status}::{source.id}"] += 1
            for raw in raws:
                res = normalize(raw, source, scraped_at=now)
                if isinstance(res, ParseError):
                    drops["parse_error"] += 1
                    continue
                normalized.append(res)
                run.normalized += 1

        deduped = deduplicate(normalized)
        if deduped.duplicates:
            drops["duplicate"] += deduped.duplicates

        valid: list[Property] = []
        for p in deduped.properties:
            reasons = validation_errors(p)
            if reasons:
                drops[f"invalid::{reasons[0]}"] += 1
                continue
            valid.append(p)

        filtered = apply_filters(valid, criteria)
        for k, v in filtered.drop_reasons.items():
            drops[k] += v

        priorities = {sid: self.registry.priority_of(sid) for sid in {p.source_id for p in filtered.kept}}
        ranked = rank(filtered.kept, criteria, priorities)

        start = (page - 1) * limit
        page_items = ranked[start : start + limit]

        summary = summarize(ranked, total_found=len(deduped.properties), hard_matches=len(filtered.hard_matches))

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        log.info(
            "search sources=%d raw=%d normalized=%d unique=%d valid=%d kept=%d elapsed_ms=%d",
            len(sources),
            sum(r.raw for r in runs),
            len(normalized),
            len(deduped.properties),
            len(valid),
            len(ranked),
            elapsed_ms,
        )

        return SearchResult(
            properties=page_items,
            total=len(ranked),
            page=page,
            limit=limit,
            execution_time=elapsed_ms,
            summary=summary,
            sources=runs,
            drop_reasons=dict(drops),
        )

    async def _run_source(
        self,
        source: ScrapingSource,
        criteria: SearchCriteria,
    ) -> tuple[ScrapingSource, list[RawRecord], SourceRun]:
        run = SourceRun(source_id=source.id)
        collected: list[RawRecord] = []
        started = time.perf_counter()
        timeout = float(source.timeout_s or self.timeout_s)
        scraper: SourceScraper | None = None

        try:
            scraper = self._scraper_factory(source, self.limiter_for(source))
            await asyncio.wait_for(scraper.scrape(criteria, self.max_pages, collected=collected), timeout=timeout)
            run.status = "ok" if collected else "empty"
        except asyncio.TimeoutError:
            # completed pages stay; only the in-flight one is lost
            run.status = "timeout"
            log.warning("source=%s timed out after %.1fs with %d records", source.id, timeout, len(collected))
        except Exception as e:
            run.status = "error"
            run.error = f"{type(e).__name__}: {e}"
            collected = []
            log.exception("source=%s failed", source.id)

        health = getattr(scraper, "health", None)
        if isinstance(health, ScrapeHealth):
            run.pages = health.pages_kept
            run.escalated = health.escalated
            run.last_error = health.last_error
        run.raw = len(collected)
        run.elapsed_s = round(time.perf_counter() - started, 3)
        return source, list(collected), run
