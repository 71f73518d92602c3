"""
Page Session

The narrow browser surface the engine needs, and its Playwright adapter.
The caller owns the session lifecycle; the engine only borrows it per call.

Locator strings are Playwright selectors, plus two prefixes the compiler
emits: "label=<text>" (form control by its label) and "placeholder=<text>".
Interactions target the first visible match; count() sees every match.
"""

import logging
from contextlib import contextmanager
from typing import Dict, List, Optional, Protocol, runtime_checkable

from playwright.async_api import Error as PlaywrightError

from ..exceptions import SessionUnavailable

logger = logging.getLogger(__name__)


# Collects the deepest nodes whose own text, value or id contains the search text
SNAPSHOT_SCRIPT = """
(args) => {
    const {text, limit} = args;
    const needle = text.toLowerCase();
    const found = [];
    const matches = (el) => {
        const content = (el.textContent || '').trim().toLowerCase();
        const value = (el.value !== undefined && el.value !== null ? String(el.value) : '').toLowerCase();
        const id = (el.id || '').toLowerCase();
        return content.includes(needle) || value.includes(needle) || (id && id.includes(needle));
    };
    for (const el of document.querySelectorAll('body *')) {
        if (['SCRIPT', 'STYLE', 'NOSCRIPT'].includes(el.tagName)) continue;
        if (!matches(el)) continue;
        const childMatches = Array.from(el.children).some(child => matches(child));
        if (childMatches) continue;
        const content = (el.textContent || '').trim();
        found.push({
            tag: el.tagName.toLowerCase(),
            id: el.id || '',
            class: typeof el.className === 'string' ? el.className : '',
            text: content.substring(0, 50),
            value: el.value !== undefined && el.value !== null ? String(el.value) : ''
        });
        if (found.length >= limit) break;
    }
    return found;
}
"""

OPTIONS_SCRIPT = """
(el) => Array.from(el.options || []).map(o => ({value: o.value, text: (o.text || '').trim()}))
"""


def _is_closed_error(error: Exception) -> bool:
    message = str(error).lower()
    return "has been closed" in message or "target closed" in message or "browser has disconnected" in message


@runtime_checkable
class PageSession(Protocol):
    """Operations the engine performs on a live page."""

    def is_closed(self) -> bool: ...

    def current_url(self) -> str: ...

    async def goto(self, url: str, timeout: Optional[int] = None) -> None: ...

    async def count(self, locator: str) -> int: ...

    async def wait_for(self, locator: str, state: str = "visible", timeout: Optional[int] = None) -> None: ...

    async def is_visible(self, locator: str) -> bool: ...

    async def is_enabled(self, locator: str) -> bool: ...

    async def click(self, locator: str, timeout: Optional[int] = None) -> None: ...

    async def fill(self, locator: str, value: str, timeout: Optional[int] = None) -> None: ...

    async def select_option(
        self,
        locator: str,
        value: Optional[str] = None,
        label: Optional[str] = None,
        timeout: Optional[int] = None
    ) -> None: ...

    async def list_options(self, locator: str) -> List[Dict[str, str]]: ...

    async def check(self, locator: str, timeout: Optional[int] = None) -> None: ...

    async def uncheck(self, locator: str, timeout: Optional[int] = None) -> None: ...

    async def hover(self, locator: str, timeout: Optional[int] = None) -> None: ...

    async def scroll(self, locator: Optional[str] = None, position: str = "bottom") -> None: ...

    async def text_content(self, locator: str, timeout: Optional[int] = None) -> str: ...

    async def snapshot_matches(self, text: str, limit: int = 5) -> List[Dict[str, str]]: ...


class PlaywrightPageSession:
    """PageSession backed by a Playwright async Page."""

    def __init__(self, page, default_timeout: int = 10000):
        self.page = page
        self.default_timeout = default_timeout

    @contextmanager
    def _driver_errors(self):
        """Translate closed page/context/browser errors into SessionUnavailable."""
        if self.page.is_closed():
            raise SessionUnavailable("Page session is closed")
        try:
            yield
        except PlaywrightError as e:
            if _is_closed_error(e):
                raise SessionUnavailable(str(e)) from e
            raise

    def _all_matches(self, locator: str):
        if locator.startswith("label="):
            return self.page.get_by_label(locator[len("label="):].strip())
        if locator.startswith("placeholder="):
            return self.page.get_by_placeholder(locator[len("placeholder="):].strip())
        return self.page.locator(locator)

    def _get_locator(self, locator: str):
        """Get a Playwright locator for the first visible match of a locator string"""
        return self._all_matches(locator).filter(visible=True).first

    def _timeout(self, timeout: Optional[int]) -> int:
        return timeout if timeout is not None else self.default_timeout

    def is_closed(self) -> bool:
        return self.page.is_closed()

    def current_url(self) -> str:
        return self.page.url

    async def goto(self, url: str, timeout: Optional[int] = None) -> None:
        with self._driver_errors():
            await self.page.goto(url, wait_until="domcontentloaded", timeout=self._timeout(timeout))
            try:
                await self.page.wait_for_load_state("networkidle", timeout=5000)
            except PlaywrightError as e:
                if _is_closed_error(e):
                    raise
                logger.debug(f"networkidle not reached after goto {url}: {e}")

    async def count(self, locator: str) -> int:
        with self._driver_errors():
            return await self._all_matches(locator).count()

    async def wait_for(self, locator: str, state: str = "visible", timeout: Optional[int] = None) -> None:
        with self._driver_errors():
            # A hidden duplicate ahead of the visible node must not block a visible wait
            target = self._get_locator(locator) if state == "visible" else self._all_matches(locator).first
            await target.wait_for(state=state, timeout=self._timeout(timeout))

    async def is_visible(self, locator: str) -> bool:
        with self._driver_errors():
            return await self._get_locator(locator).is_visible()

    async def is_enabled(self, locator: str) -> bool:
        with self._driver_errors():
            return await self._get_locator(locator).is_enabled()

    async def click(self, locator: str, timeout: Optional[int] = None) -> None:
        with self._driver_errors():
            await self._get_locator(locator).click(timeout=self._timeout(timeout))

    async def fill(self, locator: str, value: str, timeout: Optional[int] = None) -> None:
        with self._driver_errors():
            await self._get_locator(locator).fill(value, timeout=self._timeout(timeout))

    async def select_option(
        self,
        locator: str,
        value: Optional[str] = None,
        label: Optional[str] = None,
        timeout: Optional[int] = None
    ) -> None:
        with self._driver_errors():
            target = self._get_locator(locator)
            if label is not None:
                await target.select_option(label=label, timeout=self._timeout(timeout))
            else:
                await target.select_option(value=value, timeout=self._timeout(timeout))

    async def list_options(self, locator: str) -> List[Dict[str, str]]:
        with self._driver_errors():
            return await self._get_locator(locator).evaluate(OPTIONS_SCRIPT)

    async def check(self, locator: str, timeout: Optional[int] = None) -> None:
        with self._driver_errors():
            await self._get_locator(locator).check(timeout=self._timeout(timeout))

    async def uncheck(self, locator: str, timeout: Optional[int] = None) -> None:
        with self._driver_errors():
            await self._get_locator(locator).uncheck(timeout=self._timeout(timeout))

    async def hover(self, locator: str, timeout: Optional[int] = None) -> None:
        with self._driver_errors():
            await self._get_locator(locator).hover(timeout=self._timeout(timeout))

    async def scroll(self, locator: Optional[str] = None, position: str = "bottom") -> None:
        with self._driver_errors():
            if locator:
                await self._get_locator(locator).scroll_into_view_if_needed(timeout=self.default_timeout)
            elif position == "top":
                await self.page.evaluate("window.scrollTo(0, 0)")
            else:
                await self.page.evaluate("window.scrollTo(0, document.body.scrollHeight)")

    async def text_content(self, locator: str, timeout: Optional[int] = None) -> str:
        with self._driver_errors():
            return await self._get_locator(locator).inner_text(timeout=self._timeout(timeout))

    async def snapshot_matches(self, text: str, limit: int = 5) -> List[Dict[str, str]]:
        with self._driver_errors():
            return await self.page.evaluate(SNAPSHOT_SCRIPT, {"text": text, "limit": limit})
