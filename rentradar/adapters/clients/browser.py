# rentradar/adapters/clients/browser.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from ...config import settings
from ...domain.errors import RenderError
from .http_resilience import random_user_agent

log = logging.getLogger(__name__)


class PageRenderer(Protocol):
    async def render(self, url: str, *, wait_selector: str | None = None) -> str:
        ...


class BrowserSession:
    """
    Headless Chromium for the escalation path.

    Launched on __aenter__ and closed on __aexit__, even on error. Never pooled:
    a scrape invocation opens at most one and tears it down before it returns.
    """

    def __init__(
        self,
        *,
        user_agent: str | None = None,
        timeout_s: float | None = None,
        scroll_steps: int | None = None,
        scroll_px: int | None = None,
        scroll_pause_s: float | None = None,
    ) -> None:
        self.user_agent = user_agent or random_user_agent()
        self.timeout_ms = int(float(timeout_s or settings.BROWSER_TIMEOUT_S) * 1000)
        self.scroll_steps = int(scroll_steps if scroll_steps is not None else settings.BROWSER_SCROLL_STEPS)
        self.scroll_px = int(scroll_px if scroll_px is not None else settings.BROWSER_SCROLL_PX)
        self.scroll_pause_s = float(scroll_pause_s if scroll_pause_s is not None else settings.BROWSER_SCROLL_PAUSE_S)
        self._pw: Any = None
        self._browser: Any = None
        self._context: Any = None

    async def __aenter__(self) -> "BrowserSession":
        try:
            self._pw = await async_playwright().start()
            self._browser = await self._pw.chromium.launch(
                headless=True,
                args=["--no-sandbox", "--disable-dev-shm-usage", "--disable-blink-features=AutomationControlled"],
            )
            self._context = await self._browser.new_context(
                user_agent=self.user_agent,
                locale="es-CO",
                viewport={"width": 1366, "height": 900},
                extra_http_headers={"Accept-Language": settings.HTTP_ACCEPT_LANGUAGE},
            )
        except PlaywrightError as e:
            await self.close()
            raise RenderError(f"browser launch failed: {e}") from e
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        for closer in (self._context, self._browser):
            if closer is None:
                continue
            try:
                await closer.close()
            except PlaywrightError as e:
                log.debug("browser close: %s", e)
        if self._pw is not None:
            await self._pw.stop()
        self._pw = self._browser = self._context = None

    async def render(self, url: str, *, wait_selector: str | None = None) -> str:
        if self._context is None:
            raise RenderError("browser session is not open", url=url)

        page = await self._context.new_page()
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)
            await self._scroll(page)
            if wait_selector:
                try:
                    await page.wait_for_selector(wait_selector, timeout=5000)
                except PlaywrightTimeoutError:
                    log.debug("wait selector %r never appeared on %s", wait_selector, url)
            return await page.content()
        except PlaywrightError as e:
            raise RenderError(f"render failed for {url}: {e}", url=url) from e
        finally:
            await page.close()

    async def _scroll(self, page: Any) -> None:
        # lazy-loaded grids only fill in as the viewport moves
        for _ in range(self.scroll_steps):
            await page.evaluate(f"window.scrollBy(0, {self.scroll_px})")
            await asyncio.sleep(self.scroll_pause_s)
