"""
Browser lifecycle for test runs.

One Playwright browser per factory; every session gets its own context and
page, so concurrent batches never share page state.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import async_playwright, Browser

from ..config import EngineConfig
from .session import PlaywrightPageSession

logger = logging.getLogger(__name__)

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")


class BrowserSessionFactory:
    """Launches a browser and hands out isolated page sessions."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self._playwright = None
        self.browser: Optional[Browser] = None

    async def initialize(self):
        """Start Playwright and launch the configured browser."""
        browser_type = self.config.browser_type
        if browser_type not in SUPPORTED_BROWSERS:
            raise ValueError(f"Unsupported browser '{browser_type}', expected one of {SUPPORTED_BROWSERS}")

        logger.info(f"Launching {browser_type} (headless={self.config.headless})")
        try:
            self._playwright = await async_playwright().start()
        except Exception as e:
            logger.error(f"Failed to start Playwright: {e}")
            raise

        try:
            launcher = getattr(self._playwright, browser_type)
            self.browser = await launcher.launch(headless=self.config.headless)
        except Exception as e:
            logger.error(f"Failed to launch browser: {e}")
            await self._playwright.stop()
            self._playwright = None
            raise

    async def cleanup(self):
        """Close the browser and stop Playwright."""
        try:
            if self.browser:
                await self.browser.close()
            if self._playwright:
                await self._playwright.stop()
            logger.info("Browser closed")
        except Exception as e:
            logger.warning(f"Error during cleanup: {e}")
        finally:
            self.browser = None
            self._playwright = None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[PlaywrightPageSession]:
        """A fresh context and page, closed when the block exits."""
        if self.browser is None:
            await self.initialize()

        context = await self.browser.new_context(viewport={"width": 1920, "height": 1080})
        page = await context.new_page()
        page.set_default_timeout(self.config.action_timeout_ms)
        try:
            yield PlaywrightPageSession(page, default_timeout=self.config.action_timeout_ms)
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"Error closing browser context: {e}")

    async def __aenter__(self) -> "BrowserSessionFactory":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.cleanup()
