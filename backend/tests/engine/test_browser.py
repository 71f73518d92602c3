"""
Unit tests for BrowserSessionFactory with Playwright mocked out.
"""

import pytest
from unittest.mock import AsyncMock, Mock, patch

from promptqa.config import EngineConfig
from promptqa.engine.browser import BrowserSessionFactory
from promptqa.engine.session import PlaywrightPageSession


@pytest.fixture
def mock_playwright(mock_browser, mock_page):
    mock_page.set_default_timeout = Mock()
    playwright = AsyncMock()
    playwright.chromium.launch = AsyncMock(return_value=mock_browser)
    playwright.stop = AsyncMock()
    starter = Mock()
    starter.start = AsyncMock(return_value=playwright)
    with patch("promptqa.engine.browser.async_playwright", Mock(return_value=starter)):
        yield playwright


@pytest.fixture
def mock_browser(mock_page):
    browser = AsyncMock()
    context = AsyncMock()
    context.new_page = AsyncMock(return_value=mock_page)
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()
    return browser


class TestBrowserSessionFactory:
    @pytest.mark.asyncio
    async def test_session_gets_own_context(self, mock_playwright, mock_browser):
        factory = BrowserSessionFactory(EngineConfig(headless=True))

        async with factory:
            async with factory.session() as session:
                assert isinstance(session, PlaywrightPageSession)

        mock_playwright.chromium.launch.assert_awaited_once_with(headless=True)
        mock_browser.new_context.return_value.close.assert_awaited_once()
        mock_browser.close.assert_awaited_once()
        mock_playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_session_launches_lazily(self, mock_playwright):
        factory = BrowserSessionFactory()

        async with factory.session():
            pass

        assert factory.browser is not None
        await factory.cleanup()
        assert factory.browser is None

    @pytest.mark.asyncio
    async def test_unsupported_browser(self):
        factory = BrowserSessionFactory(EngineConfig(browser_type="netscape"))

        with pytest.raises(ValueError):
            await factory.initialize()
