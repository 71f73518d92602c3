"""
Unit tests for the Playwright page session adapter.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from playwright.async_api import Error as PlaywrightError

from promptqa.config import EngineConfig
from promptqa.engine.click_resolution import ClickResolver
from promptqa.engine.session import PageSession, PlaywrightPageSession, SNAPSHOT_SCRIPT
from promptqa.exceptions import SessionUnavailable
from promptqa.models import Action


class TestLocatorMapping:
    """Locator strings to Playwright locators."""

    @pytest.mark.asyncio
    async def test_css_goes_to_page_locator(self, mock_page):
        session = PlaywrightPageSession(mock_page)

        await session.click("#submit")

        mock_page.locator.assert_called_with("#submit")
        mock_page.locator.return_value.click.assert_awaited_once_with(timeout=10000)

    @pytest.mark.asyncio
    async def test_label_prefix(self, mock_page):
        session = PlaywrightPageSession(mock_page)

        await session.fill("label=Email", "a@b.c", timeout=3000)

        mock_page.get_by_label.assert_called_with("Email")
        mock_page.get_by_label.return_value.fill.assert_awaited_once_with("a@b.c", timeout=3000)

    @pytest.mark.asyncio
    async def test_placeholder_prefix(self, mock_page):
        session = PlaywrightPageSession(mock_page)

        assert await session.count("placeholder=Search") == 1
        mock_page.get_by_placeholder.assert_called_with("Search")

    @pytest.mark.asyncio
    async def test_select_by_label(self, mock_page):
        session = PlaywrightPageSession(mock_page)

        await session.select_option("#bank", label="Nagad", timeout=2000)

        mock_page.locator.return_value.select_option.assert_awaited_once_with(label="Nagad", timeout=2000)

    @pytest.mark.asyncio
    async def test_snapshot_passes_text_and_limit(self, mock_page):
        mock_page.evaluate = AsyncMock(return_value=[{"tag": "button", "text": "Log in"}])
        session = PlaywrightPageSession(mock_page)

        result = await session.snapshot_matches("Log in", limit=5)

        assert result == [{"tag": "button", "text": "Log in"}]
        mock_page.evaluate.assert_awaited_once_with(SNAPSHOT_SCRIPT, {"text": "Log in", "limit": 5})

    @pytest.mark.asyncio
    async def test_scroll_page_top(self, mock_page):
        session = PlaywrightPageSession(mock_page)

        await session.scroll(None, position="top")

        mock_page.evaluate.assert_awaited_once_with("window.scrollTo(0, 0)")

    def test_current_url(self, mock_page):
        assert PlaywrightPageSession(mock_page).current_url() == "https://example.com/test"

    def test_satisfies_protocol(self, mock_page):
        assert isinstance(PlaywrightPageSession(mock_page), PageSession)


class TestClosedSessions:
    """Lost pages surface as SessionUnavailable."""

    @pytest.mark.asyncio
    async def test_closed_page(self, mock_page):
        mock_page.is_closed = Mock(return_value=True)
        session = PlaywrightPageSession(mock_page)

        with pytest.raises(SessionUnavailable):
            await session.click("#a")

        mock_page.locator.return_value.click.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_target_closed_error_translated(self, mock_page):
        mock_page.locator.return_value.click = AsyncMock(
            side_effect=PlaywrightError("Target page, context or browser has been closed")
        )
        session = PlaywrightPageSession(mock_page)

        with pytest.raises(SessionUnavailable):
            await session.click("#a")

    @pytest.mark.asyncio
    async def test_other_driver_errors_propagate(self, mock_page):
        mock_page.locator.return_value.click = AsyncMock(side_effect=PlaywrightError("Timeout 10000ms exceeded"))
        session = PlaywrightPageSession(mock_page)

        with pytest.raises(PlaywrightError):
            await session.click("#a")


def _node(visible: bool):
    node = AsyncMock()
    node.is_visible = AsyncMock(return_value=visible)
    node.is_enabled = AsyncMock(return_value=True)
    node.click = AsyncMock()
    node.wait_for = AsyncMock()
    return node


@pytest.fixture
def duplicated_button_page(mock_page):
    """A page where the selector matches a hidden copy first and a visible button second."""
    hidden, visible = _node(False), _node(True)

    visible_matches = Mock()
    visible_matches.first = visible

    matches = Mock()
    matches.first = hidden
    matches.count = AsyncMock(return_value=2)
    matches.filter = Mock(return_value=visible_matches)

    mock_page.locator = Mock(return_value=matches)
    mock_page.hidden, mock_page.visible, mock_page.matches = hidden, visible, matches
    return mock_page


class TestVisibleMatch:
    """Interactions skip hidden duplicates of the same selector."""

    @pytest.mark.asyncio
    async def test_probe_and_click_use_visible_node(self, duplicated_button_page):
        session = PlaywrightPageSession(duplicated_button_page)

        assert await session.count('button:has-text("Log in")') == 2
        assert await session.is_visible('button:has-text("Log in")') is True
        await session.click('button:has-text("Log in")')

        duplicated_button_page.matches.filter.assert_called_with(visible=True)
        duplicated_button_page.visible.click.assert_awaited_once_with(timeout=10000)
        duplicated_button_page.hidden.click.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_click_cascade_reaches_visible_button(self, duplicated_button_page):
        session = PlaywrightPageSession(duplicated_button_page)
        resolver = ClickResolver(config=EngineConfig(), sleep=AsyncMock())
        action = Action(type="click", locator="text=Log in", elementType="button")

        used = await resolver.click(action, session)

        assert used
        duplicated_button_page.visible.click.assert_awaited()
        duplicated_button_page.hidden.click.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_visible_wait_uses_first_match(self, duplicated_button_page):
        session = PlaywrightPageSession(duplicated_button_page)

        await session.wait_for("#spinner", state="hidden", timeout=500)

        duplicated_button_page.hidden.wait_for.assert_awaited_once_with(state="hidden", timeout=500)
