"""
Pytest configuration and shared fixtures for PromptQA tests.
"""

import pytest
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from unittest.mock import Mock, AsyncMock
from typing import Dict, List, Optional

# Add backend to path so promptqa imports without an install
sys.path.insert(0, str(Path(__file__).parent.parent))

from promptqa.config import EngineConfig


# ==================== Fake DOM ====================

@dataclass
class FakeElement:
    """One element of the fake page, addressed by an exact selector string."""
    tag: str = "div"
    text: str = ""
    id: str = ""
    css_class: str = ""
    value: str = ""
    visible: bool = True
    enabled: bool = True
    options: List[Dict[str, str]] = field(default_factory=list)
    selected: Optional[str] = None
    checked: bool = False


class FakePageSession:
    """
    In-memory PageSession.

    Elements are keyed by the exact locator string the engine will ask for,
    so tests state precisely which candidate shapes exist on the page.
    Every call is recorded in `calls` as (method, locator).
    """

    def __init__(self, elements: Optional[Dict[str, FakeElement]] = None, url: str = "https://example.com/"):
        self.elements = elements or {}
        self.url = url
        self.closed = False
        self.calls = []
        self.filled = []
        self.clicked = []
        self.visited = []
        self.scrolled = []
        # URL the page moves to after a click, keyed by locator
        self.click_navigations: Dict[str, str] = {}

    def _get(self, locator: str) -> FakeElement:
        element = self.elements.get(locator)
        if element is None:
            raise TimeoutError(f"Timeout waiting for {locator}")
        return element

    def is_closed(self) -> bool:
        return self.closed

    def current_url(self) -> str:
        return self.url

    async def goto(self, url, timeout=None):
        self.calls.append(("goto", url))
        self.visited.append(url)
        self.url = url

    async def count(self, locator):
        self.calls.append(("count", locator))
        return 1 if locator in self.elements else 0

    async def wait_for(self, locator, state="visible", timeout=None):
        self.calls.append(("wait_for", locator))
        element = self._get(locator)
        if state == "visible" and not element.visible:
            raise TimeoutError(f"Timeout waiting for {locator} to be visible")

    async def is_visible(self, locator):
        self.calls.append(("is_visible", locator))
        return locator in self.elements and self.elements[locator].visible

    async def is_enabled(self, locator):
        self.calls.append(("is_enabled", locator))
        return locator in self.elements and self.elements[locator].enabled

    async def click(self, locator, timeout=None):
        self.calls.append(("click", locator))
        self._get(locator)
        self.clicked.append(locator)
        if locator in self.click_navigations:
            self.url = self.click_navigations[locator]

    async def fill(self, locator, value, timeout=None):
        self.calls.append(("fill", locator))
        self._get(locator).value = value
        self.filled.append((locator, value))

    async def select_option(self, locator, value=None, label=None, timeout=None):
        self.calls.append(("select_option", locator))
        element = self._get(locator)
        for option in element.options:
            if label is not None and option["text"] == label:
                element.selected = option["value"]
                return
            if label is None and option["value"] == value:
                element.selected = option["value"]
                return
        raise TimeoutError(f"did not find some options: value={value!r} label={label!r}")

    async def list_options(self, locator):
        self.calls.append(("list_options", locator))
        return [dict(option) for option in self._get(locator).options]

    async def check(self, locator, timeout=None):
        self.calls.append(("check", locator))
        self._get(locator).checked = True

    async def uncheck(self, locator, timeout=None):
        self.calls.append(("uncheck", locator))
        self._get(locator).checked = False

    async def hover(self, locator, timeout=None):
        self.calls.append(("hover", locator))
        self._get(locator)

    async def scroll(self, locator=None, position="bottom"):
        self.calls.append(("scroll", locator))
        self.scrolled.append(locator or position)

    async def text_content(self, locator, timeout=None):
        self.calls.append(("text_content", locator))
        if locator == "body" and locator not in self.elements:
            return " ".join(e.text for e in self.elements.values())
        return self._get(locator).text

    async def snapshot_matches(self, text, limit=5):
        needle = text.lower()
        found = []
        for element in self.elements.values():
            if needle in element.text.lower() or needle in element.value.lower() or needle in element.id.lower():
                found.append({
                    "tag": element.tag,
                    "id": element.id,
                    "class": element.css_class,
                    "text": element.text[:50],
                    "value": element.value,
                })
            if len(found) >= limit:
                break
        return found

    def calls_for(self, locator: str) -> List[str]:
        """Methods invoked with locator, in order."""
        return [method for method, target in self.calls if target == locator]


# ==================== Fixtures ====================

@pytest.fixture
def fake_session():
    """Factory for FakePageSession instances."""
    def _make(elements=None, url="https://example.com/"):
        return FakePageSession(elements, url=url)
    return _make


@pytest.fixture
def no_sleep():
    """Stands in for asyncio.sleep so retry delays cost nothing."""
    return AsyncMock(return_value=None)


@pytest.fixture
def engine_config():
    """Engine config with the production defaults."""
    return EngineConfig()


@pytest.fixture
def session_provider():
    """Builds an async-context session provider that records each session it opens."""
    def _make(elements=None):
        opened = []

        @asynccontextmanager
        async def provider():
            session = FakePageSession(dict(elements or {}))
            opened.append(session)
            yield session

        provider.opened = opened
        return provider
    return _make


# ==================== Mock Page Fixture ====================

@pytest.fixture
def mock_page():
    """Create a mock Playwright page object."""
    page = AsyncMock()

    page.url = "https://example.com/test"
    page.is_closed = Mock(return_value=False)

    page.goto = AsyncMock(return_value=None)
    page.wait_for_load_state = AsyncMock()
    page.evaluate = AsyncMock(return_value=[])

    mock_locator = AsyncMock()
    mock_locator.first = mock_locator
    mock_locator.filter = Mock(return_value=mock_locator)
    mock_locator.count = AsyncMock(return_value=1)
    mock_locator.click = AsyncMock()
    mock_locator.fill = AsyncMock()
    mock_locator.check = AsyncMock()
    mock_locator.uncheck = AsyncMock()
    mock_locator.hover = AsyncMock()
    mock_locator.wait_for = AsyncMock()
    mock_locator.is_visible = AsyncMock(return_value=True)
    mock_locator.is_enabled = AsyncMock(return_value=True)
    mock_locator.inner_text = AsyncMock(return_value="Test Content")
    mock_locator.select_option = AsyncMock()
    mock_locator.scroll_into_view_if_needed = AsyncMock()
    mock_locator.evaluate = AsyncMock(return_value=[])

    page.locator = Mock(return_value=mock_locator)
    page.get_by_label = Mock(return_value=mock_locator)
    page.get_by_placeholder = Mock(return_value=mock_locator)

    return page


# ==================== Sample Test Data ====================

@pytest.fixture
def sample_instructions() -> str:
    """A login scenario in plain language."""
    return "\n".join([
        "Test: Login flow",
        "Go to https://example.com/login",
        'Enter "standard_user" in the Username field',
        'Type "secret_sauce" into the Password field',
        "Click Login Button",
        'Verify URL contains "/inventory"',
    ])
