"""
Candidate resolution shared by every action type.

Walks an ordered candidate list and returns the first locator that exists,
is visible and, when required, is enabled. Failures carry a DOM snapshot of
nodes that mention the searched text.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from ..config import EngineConfig
from ..exceptions import ElementNotFound, ElementNotInteractable, SessionUnavailable
from .locators import diagnostic_text
from .session import PageSession

logger = logging.getLogger(__name__)


class ProbeResult(Enum):
    MISSING = "missing"
    BLOCKED = "blocked"  # present but hidden or disabled
    READY = "ready"


class CandidateResolver:
    """Turns candidate locators into one usable locator on a live page."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.config = config or EngineConfig()
        self.sleep = sleep

    async def probe(self, session: PageSession, locator: str, require_enabled: bool = True) -> ProbeResult:
        """Check existence, visibility and enabled state without interacting."""
        try:
            if await session.count(locator) == 0:
                return ProbeResult.MISSING
            if not await session.is_visible(locator):
                return ProbeResult.BLOCKED
            if require_enabled and not await session.is_enabled(locator):
                return ProbeResult.BLOCKED
            return ProbeResult.READY
        except SessionUnavailable:
            raise
        except Exception as e:
            # Invalid selector syntax and detached nodes count as a miss
            logger.debug(f"Probe failed for {locator}: {e}")
            return ProbeResult.MISSING

    async def locate(
        self,
        session: PageSession,
        locators: Sequence[str],
        timeout: Optional[int] = None,
        require_enabled: bool = True,
        search: Optional[str] = None
    ) -> str:
        """
        Resolve the first usable candidate.

        Args:
            session: Page to resolve against
            locators: Ordered candidates; the first usable one wins
            timeout: Milliseconds to wait for a candidate to appear
            require_enabled: Also require the element to be enabled
            search: Text for failure diagnostics (defaults to the first locator's)

        Returns:
            The winning locator string
        """
        if not locators:
            raise ElementNotFound("No locator given")

        timeout = timeout if timeout is not None else self.config.action_timeout_ms

        if len(locators) == 1:
            return await self._locate_single(session, locators[0], timeout, require_enabled, search)

        polls = max(1, timeout // max(self.config.poll_interval_ms, 1))
        blocked = None
        for attempt in range(polls):
            for locator in locators:
                result = await self.probe(session, locator, require_enabled)
                if result == ProbeResult.READY:
                    logger.info(f"[RESOLVE] Candidate {locator} matched")
                    return locator
                if result == ProbeResult.BLOCKED and blocked is None:
                    blocked = locator
            if attempt < polls - 1:
                await self.sleep(self.config.poll_interval_ms / 1000)

        await self._raise_unresolved(session, list(locators), blocked, search)

    async def _locate_single(
        self,
        session: PageSession,
        locator: str,
        timeout: int,
        require_enabled: bool,
        search: Optional[str]
    ) -> str:
        try:
            await session.wait_for(locator, state="visible", timeout=timeout)
        except SessionUnavailable:
            raise
        except Exception as e:
            logger.warning(f"Element {locator} not visible within {timeout}ms: {e}")
            result = await self.probe(session, locator, require_enabled)
            blocked = locator if result == ProbeResult.BLOCKED else None
            await self._raise_unresolved(session, [locator], blocked, search)

        if require_enabled and not await session.is_enabled(locator):
            await self._raise_unresolved(session, [locator], locator, search)
        return locator

    async def _raise_unresolved(
        self,
        session: PageSession,
        locators: List[str],
        blocked: Optional[str],
        search: Optional[str]
    ):
        diagnostics = await self.diagnostics(session, search or diagnostic_text(locators[0]))
        joined = ", ".join(locators)
        if blocked:
            raise ElementNotInteractable(
                f"Element '{blocked}' exists but is hidden or disabled",
                locator=blocked,
                diagnostics=diagnostics
            )
        raise ElementNotFound(
            f"No element matched '{joined}'",
            locator=joined,
            diagnostics=diagnostics
        )

    async def diagnostics(self, session: PageSession, text: str) -> List[Dict[str, str]]:
        """Up to diagnostics_limit DOM nodes whose text or value contains text."""
        if not text:
            return []
        try:
            return list(await session.snapshot_matches(text, limit=self.config.diagnostics_limit))
        except SessionUnavailable:
            raise
        except Exception as e:
            logger.debug(f"Diagnostic snapshot failed for '{text}': {e}")
            return []
