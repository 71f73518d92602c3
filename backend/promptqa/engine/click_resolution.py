"""
Click Resolution

The click cascade as an explicit state machine. Transitions and candidate
planning are pure functions; ClickResolver drives them against a page.

    TEXT_DIRECT       -> SUCCESS | ALTERNATIVES      (no element-type hint)
    TYPE_PRIORITIZED  -> SUCCESS | ALTERNATIVES      (hint present)
    ALTERNATIVES      -> SUCCESS | ALTERNATIVES | FAILURE
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from ..config import EngineConfig
from ..exceptions import (
    ElementNotFound,
    ElementNotInteractable,
    ResolutionError,
    SessionUnavailable,
)
from ..models import Action, ElementType
from .locators import (
    build_alternative_selectors,
    build_ranked_candidates,
    dedupe,
    diagnostic_text,
    is_text_locator,
    search_text,
)
from .resolution import CandidateResolver, ProbeResult
from .session import PageSession

logger = logging.getLogger(__name__)


class ClickState(str, Enum):
    TEXT_DIRECT = "text_direct"
    TYPE_PRIORITIZED = "type_prioritized"
    ALTERNATIVES = "alternatives"
    SUCCESS = "success"
    FAILURE = "failure"


TERMINAL_STATES = frozenset({ClickState.SUCCESS, ClickState.FAILURE})


def initial_state(element_type: Optional[ElementType]) -> ClickState:
    """Hint-less clicks try the literal locator first."""
    if element_type is None:
        return ClickState.TEXT_DIRECT
    return ClickState.TYPE_PRIORITIZED


def next_state(
    state: ClickState,
    succeeded: bool,
    rounds_completed: int = 0,
    max_rounds: int = 3
) -> ClickState:
    """
    Transition after one attempt in state.

    rounds_completed counts finished ALTERNATIVES rounds, including the one
    just attempted when state is ALTERNATIVES.
    """
    if state in TERMINAL_STATES:
        return state
    if succeeded:
        return ClickState.SUCCESS
    if state == ClickState.ALTERNATIVES and rounds_completed >= max_rounds:
        return ClickState.FAILURE
    return ClickState.ALTERNATIVES


def plan_candidates(
    state: ClickState,
    locators: Sequence[str],
    element_type: Optional[ElementType] = None
) -> List[str]:
    """Ordered selectors to try in state for the action's locators."""
    if state == ClickState.TEXT_DIRECT:
        return dedupe(locators)

    planned: List[str] = []
    for locator in locators:
        text = search_text(locator) if is_text_locator(locator) else None
        if state == ClickState.TYPE_PRIORITIZED:
            planned.extend(build_ranked_candidates(text, element_type) if text else [locator])
        elif state == ClickState.ALTERNATIVES:
            planned.append(locator)
            if text:
                planned.extend(build_alternative_selectors(text))
    return dedupe(planned)


class ClickResolver:
    """Runs the click cascade for one action on one page session."""

    def __init__(
        self,
        resolver: Optional[CandidateResolver] = None,
        config: Optional[EngineConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.config = config or EngineConfig()
        self.resolver = resolver or CandidateResolver(self.config, sleep=sleep)
        self.sleep = sleep

    async def click(self, action: Action, session: PageSession) -> str:
        """
        Click the element the action targets.

        Returns:
            The locator that was clicked

        Raises:
            ElementNotFound: every state and retry round was exhausted
            ElementNotInteractable: a candidate matched but stayed hidden or disabled
        """
        locators = action.candidates
        if not locators:
            raise ElementNotFound("Click action has no locator")

        timeout = action.timeout or self.config.action_timeout_ms
        state = initial_state(action.element_type)
        rounds = 0
        blocked: List[str] = []

        while state not in TERMINAL_STATES:
            planned = plan_candidates(state, locators, action.element_type)
            logger.info(f"[CLICK] {state.value}: trying {len(planned)} candidate(s)")

            if state == ClickState.TEXT_DIRECT:
                clicked = await self._attempt_direct(session, planned, timeout, blocked)
            else:
                clicked = await self._attempt_ranked(session, planned, timeout, blocked)
                if state == ClickState.ALTERNATIVES:
                    rounds += 1

            new_state = next_state(state, clicked is not None, rounds, self.config.click_retry_rounds)
            if new_state == ClickState.SUCCESS:
                logger.info(f"[CLICK] Clicked {clicked} via {state.value}")
                return clicked
            if state == ClickState.ALTERNATIVES and new_state == ClickState.ALTERNATIVES:
                logger.info(f"[CLICK] Retry round {rounds} failed, waiting {self.config.retry_delay_ms}ms")
                await self.sleep(self.config.retry_delay_ms / 1000)
            state = new_state

        joined = ", ".join(locators)
        diagnostics = await self.resolver.diagnostics(session, diagnostic_text(locators[0]))
        if blocked:
            raise ElementNotInteractable(
                f"Element '{blocked[0]}' exists but is hidden or disabled",
                locator=blocked[0],
                diagnostics=diagnostics
            )
        raise ElementNotFound(
            f"All click attempts failed for '{joined}' after {rounds} retries",
            locator=joined,
            diagnostics=diagnostics
        )

    async def _attempt_direct(
        self,
        session: PageSession,
        planned: List[str],
        timeout: int,
        blocked: List[str]
    ) -> Optional[str]:
        try:
            target = await self.resolver.locate(session, planned, timeout=timeout)
        except ElementNotInteractable as e:
            blocked.append(e.locator)
            return None
        except ResolutionError as e:
            logger.info(f"[CLICK] Direct attempt missed: {e.locator}")
            return None
        return await self._click(session, target, timeout)

    async def _attempt_ranked(
        self,
        session: PageSession,
        planned: List[str],
        timeout: int,
        blocked: List[str]
    ) -> Optional[str]:
        for candidate in planned:
            result = await self.resolver.probe(session, candidate)
            if result == ProbeResult.BLOCKED:
                blocked.append(candidate)
                continue
            if result == ProbeResult.MISSING:
                continue
            clicked = await self._click(session, candidate, timeout)
            if clicked:
                return clicked
        return None

    async def _click(self, session: PageSession, locator: str, timeout: int) -> Optional[str]:
        try:
            await session.click(locator, timeout=timeout)
            return locator
        except SessionUnavailable:
            raise
        except Exception as e:
            # Overlays and detached nodes make a matched candidate unclickable
            logger.warning(f"[CLICK] Click on {locator} failed: {e}")
            return None
