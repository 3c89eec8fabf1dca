# tests/test_scraper.py
from contextlib import asynccontextmanager

import httpx
import pytest

from rentradar.adapters.clients.rate_limiter import RateLimiter
from rentradar.connectors.scraper import Scraper
from rentradar.connectors.urls import build_search_url
from rentradar.domain.criteria import HardRequirements, LocationQuery, SearchCriteria
from rentradar.domain.errors import RenderError
from rentradar.domain.types import RateLimit

SEARCH_URL = "https://www.demo.example/arriendo/apartamento/bogota"


def _page(n, *, count=2, has_next=True):
    cards = "".join(
        f'<div class="card"><h3>Apartamento {n}-{i} en Cedritos</h3>'
        f'<span class="price">$2.{n}{i}0.000</span><span class="area">7{i} m2</span>'
        f'<a href="/inmueble/{n}-{i}">ver</a></div>'
        for i in range(count)
    )
    nxt = f'<a class="next" href="?page={n + 1}">Siguiente</a>' if has_next else ""
    return f"<html><body>{cards}{nxt}</body></html>"


class FakeSite:
    def __init__(self, pages, *, statuses=None):
        self.pages = pages
        self.statuses = statuses or {}
        self.requested = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        page = int(request.url.params.get("page", "1"))
        self.requested.append(page)
        queued = self.statuses.get(page)
        if queued:
            return httpx.Response(queued.pop(0), text="")
        return httpx.Response(200, text=self.pages.get(page, ""))

    def transport(self):
        return httpx.MockTransport(self.handler)


class FakeRenderer:
    def __init__(self, pages, *, fail_on=None):
        self.pages = pages
        self.fail_on = fail_on
        self.rendered = []

    async def render(self, url, *, wait_selector=None):
        page = int(httpx.URL(url).params.get("page", "1"))
        self.rendered.append(page)
        if page == self.fail_on:
            raise RenderError("navigation timeout", url=url)
        return self.pages.get(page, "")


def _browser(renderer, events):
    @asynccontextmanager
    async def factory():
        events.append("open")
        try:
            yield renderer
        finally:
            events.append("close")

    return factory


@pytest.fixture
def limiter():
    return RateLimiter(RateLimit(requests_per_minute=600, delay_between_requests_s=0.0, max_concurrent_requests=4))


def _scraper(source, limiter, site=None, **kw):
    kw.setdefault("use_browser", False)
    return Scraper(
        source,
        limiter,
        transport=site.transport() if site else None,
        page_delay_s=0,
        max_retries=0,
        backoff_base_s=0,
        **kw,
    )


async def test_follows_next_page_until_it_disappears(make_source, limiter):
    site = FakeSite({1: _page(1), 2: _page(2, has_next=False), 3: _page(3)})
    scraper = _scraper(make_source(), limiter, site)

    records = await scraper.scrape(SearchCriteria(), max_pages=5)

    assert site.requested == [1, 2]
    assert len(records) == 4
    assert records[0].url == "https://www.demo.example/inmueble/1-0"
    assert scraper.health.pages_kept == 2
    assert limiter.stats()["requests_in_last_minute"] == 2
    assert limiter.stats()["active_requests"] == 0


async def test_page_budget_caps_requests(make_source, limiter):
    site = FakeSite({n: _page(n) for n in range(1, 10)})
    records = await _scraper(make_source(), limiter, site).scrape(SearchCriteria(), max_pages=3)

    assert site.requested == [1, 2, 3]
    assert len(records) == 6


async def test_single_page_source_ignores_next_links(make_source, limiter):
    site = FakeSite({1: _page(1), 2: _page(2)})
    source = make_source(pagination={"style": "none"})
    records = await _scraper(source, limiter, site).scrape(SearchCriteria(), max_pages=5)

    assert site.requested == [1]
    assert len(records) == 2


async def test_fetch_error_keeps_earlier_pages(make_source, limiter):
    site = FakeSite({1: _page(1), 2: _page(2)}, statuses={2: [404]})
    scraper = _scraper(make_source(), limiter, site)
    collected = []

    records = await scraper.scrape(SearchCriteria(), max_pages=5, collected=collected)

    assert records is collected
    assert len(records) == 2
    assert scraper.health.errors == 1
    assert "404" in (scraper.health.last_error or "")


async def test_retryable_status_is_retried(make_source, limiter):
    site = FakeSite({1: _page(1, has_next=False)}, statuses={1: [503]})
    source = make_source()
    scraper = Scraper(source, limiter, transport=site.transport(), use_browser=False, page_delay_s=0, max_retries=2, backoff_base_s=0)

    records = await scraper.scrape(SearchCriteria(), max_pages=5)

    assert site.requested == [1, 1]
    assert len(records) == 2


async def test_empty_static_page_escalates_to_browser(make_source, limiter):
    site = FakeSite({1: "<html><body><div id='app'></div></body></html>"})
    renderer = FakeRenderer({1: _page(1), 2: _page(2, has_next=False)})
    events = []
    scraper = _scraper(make_source(), limiter, site, browser_factory=_browser(renderer, events))

    records = await scraper.scrape(SearchCriteria(), max_pages=5)

    assert site.requested == [1]
    assert renderer.rendered == [1, 2]
    assert len(records) == 4
    assert scraper.health.escalated is True
    assert events == ["open", "close"]


async def test_render_failure_stops_but_keeps_results(make_source, limiter):
    site = FakeSite({1: ""})
    renderer = FakeRenderer({1: _page(1), 2: _page(2)}, fail_on=2)
    events = []
    scraper = _scraper(make_source(), limiter, site, browser_factory=_browser(renderer, events))

    records = await scraper.scrape(SearchCriteria(), max_pages=5)

    assert len(records) == 2
    assert scraper.health.errors == 1
    assert events == ["open", "close"]


async def test_no_browser_means_empty_not_error(make_source, limiter):
    site = FakeSite({1: "<html></html>"})
    scraper = _scraper(make_source(), limiter, site)

    records = await scraper.scrape(SearchCriteria(), max_pages=5)

    assert records == []
    assert scraper.health.errors == 0


def test_search_url_uses_criteria_city(make_source, limiter):
    source = make_source()
    scraper = _scraper(source, limiter)
    criteria = SearchCriteria(hard_requirements=HardRequirements(location=LocationQuery(city="Medellín", neighborhoods=("El Poblado",))))

    where = scraper.resolve_where(criteria)

    assert where.city == "Medellín"
    assert where.neighborhood == "El Poblado"
    assert build_search_url(source, criteria, where) == "https://www.demo.example/arriendo/apartamento/medellin"
    assert build_search_url(source, SearchCriteria(), scraper.resolve_where(SearchCriteria())) == SEARCH_URL
