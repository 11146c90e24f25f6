"""
Browser-based content source using Playwright for JavaScript-rendered maps pages.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional
from urllib.parse import quote

import structlog
from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from ..config.config import SourceConfig
from ..errors import ResourceCreationFailure
from ..protocols import RenderSurface

logger = structlog.get_logger(__name__)


class BrowserSurface:
    """One page in its own browser context. Never reused across jobs."""

    def __init__(self, target: str, context: BrowserContext, page: Page) -> None:
        self.target = target
        self.context = context
        self.page = page
        self.released = False

    async def snapshot(self) -> str:
        """Serialized DOM as currently rendered."""
        return await self.page.content()


class PlaywrightContentSource:
    """
    Content source that renders queries in headless Chromium.

    Use as an async context manager; one browser is shared by all surfaces,
    but every surface gets a fresh browser context.
    """

    def __init__(self, config: Optional[SourceConfig] = None) -> None:
        self.config = config or SourceConfig()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self.logger = logger.bind(component="PlaywrightContentSource")

    async def __aenter__(self) -> PlaywrightContentSource:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def start(self) -> None:
        if self._browser is not None:
            return
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.config.headless)
        self.logger.info("Browser started", headless=self.config.headless)

    async def close(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                self.logger.debug("Browser close failed", error=str(e))
            self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                self.logger.debug("Playwright stop failed", error=str(e))
            self._playwright = None

    def build_target(self, query: str) -> str:
        return self.config.search_url + quote(query, safe="")

    async def create_surface(self, target: str) -> RenderSurface:
        if self._browser is None:
            raise ResourceCreationFailure("content source is not started")

        context: Optional[BrowserContext] = None
        try:
            context = await self._browser.new_context(
                locale=self.config.locale,
                user_agent=self.config.user_agent,
            )
            page = await context.new_page()
            await page.goto(target, wait_until="load", timeout=self.config.navigation_timeout * 1000)

            # Let the maps client render after the load event
            if self.config.settle_delay > 0:
                await asyncio.sleep(self.config.settle_delay)

        except BaseException as e:
            if context is not None:
                try:
                    await context.close()
                except Exception as close_error:
                    self.logger.debug("Context close failed", error=str(close_error))
            if isinstance(e, Exception):
                raise ResourceCreationFailure(f"could not open {target}: {e}", cause=e) from e
            raise

        return BrowserSurface(target, context, page)

    async def release_surface(self, surface: RenderSurface) -> None:
        if not isinstance(surface, BrowserSurface) or surface.released:
            return
        surface.released = True
        try:
            await surface.context.close()
        except Exception as e:
            self.logger.debug("Surface release failed", target=surface.target, error=str(e))
