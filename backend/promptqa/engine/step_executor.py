"""
Step Executor

Executes one Action against a borrowed PageSession and reports a
StepOutcome. Failures never escape as exceptions: they are recorded on the
outcome as a structured StepError.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Optional
from urllib.parse import urljoin

from ..config import EngineConfig
from ..exceptions import AssertionFailed, PromptQAError, SessionUnavailable
from ..models import Action, ActionType, StepError, StepOutcome, StepStatus
from .click_resolution import ClickResolver
from .resolution import CandidateResolver
from .select_resolution import SelectResolver
from .session import PageSession

logger = logging.getLogger(__name__)

DEFAULT_WAIT_MS = 2000
DEFAULT_TEXT_SCOPE = "body"


class ActionExecutor:
    """
    Executes compiled actions on a page session.

    Features:
    - Candidate cascade for clicks, tiered option matching for selects
    - Existence, visibility and enabled preconditions for everything else
    - DOM diagnostics attached to resolution failures
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.config = config or EngineConfig()
        self.sleep = sleep
        self.resolver = CandidateResolver(self.config, sleep=sleep)
        self.clicks = ClickResolver(self.resolver, self.config, sleep=sleep)
        self.selects = SelectResolver(self.resolver, self.config, sleep=sleep)

        self._handlers: Dict[ActionType, Callable[..., Awaitable[Optional[str]]]] = {
            ActionType.NAVIGATE: self._navigate,
            ActionType.CLICK: self._click,
            ActionType.FILL: self._fill,
            ActionType.SELECT: self._select,
            ActionType.CHECK: self._check,
            ActionType.UNCHECK: self._uncheck,
            ActionType.HOVER: self._hover,
            ActionType.SCROLL: self._scroll,
            ActionType.WAIT: self._wait,
            ActionType.VERIFY: self._verify,
            ActionType.ASSERT_VISIBLE: self._assert_visible,
            ActionType.ASSERT_TEXT: self._assert_text,
        }

    async def execute(
        self,
        action: Action,
        session: PageSession,
        step_number: int = 1,
        base_url: Optional[str] = None
    ) -> StepOutcome:
        """
        Execute a single action.

        Args:
            action: The action to perform
            session: Live page; borrowed for the duration of the call
            step_number: 1-based position of the action in its test case
            base_url: Test case URL, used to resolve relative navigate targets

        Returns:
            StepOutcome with status, the locator that resolved, and any error
        """
        start = time.monotonic()
        description = action.description or action.type.value
        logger.info(f"[STEP {step_number}] {action.type.value}: {description}")

        locator_used = None
        error = None
        try:
            if session.is_closed():
                raise SessionUnavailable("Page session is closed")
            locator_used = await self._handlers[action.type](action, session, base_url)
        except PromptQAError as e:
            error = StepError(
                kind=e.kind,
                message=str(e),
                locator=getattr(e, "locator", None) or action.locator_text,
                diagnostics=getattr(e, "diagnostics", []),
                options=getattr(e, "options", []),
            )
        except Exception as e:
            # Anything the driver raises once the page is gone is a lost session
            kind = "SessionUnavailable" if session.is_closed() else "Error"
            error = StepError(kind=kind, message=str(e), locator=action.locator_text)

        duration_ms = int((time.monotonic() - start) * 1000)
        if error:
            logger.error(f"[STEP {step_number}] Failed ({error.kind}): {error.message}")
        else:
            logger.info(f"[STEP {step_number}] Passed in {duration_ms}ms")

        return StepOutcome(
            step_number=step_number,
            action_type=action.type,
            description=description,
            status=StepStatus.FAILED if error else StepStatus.PASSED,
            locator_used=locator_used,
            error=error,
            duration_ms=duration_ms,
        )

    def _timeout(self, action: Action) -> int:
        return action.timeout or self.config.action_timeout_ms

    async def _locate(self, action: Action, session: PageSession, require_enabled: bool = True) -> str:
        return await self.resolver.locate(
            session,
            action.candidates,
            timeout=self._timeout(action),
            require_enabled=require_enabled
        )

    # ==================== Handlers ====================

    async def _navigate(self, action: Action, session: PageSession, base_url: Optional[str]) -> Optional[str]:
        target = action.value or action.locator_text or base_url
        if not target:
            raise AssertionFailed("Navigate action has no URL")
        if base_url:
            target = urljoin(base_url, target)
        await session.goto(target, timeout=action.timeout or self.config.navigation_timeout_ms)
        return target

    async def _click(self, action: Action, session: PageSession, base_url: Optional[str]) -> Optional[str]:
        return await self.clicks.click(action, session)

    async def _fill(self, action: Action, session: PageSession, base_url: Optional[str]) -> Optional[str]:
        target = await self._locate(action, session)
        await session.fill(target, action.value or "", timeout=self._timeout(action))
        return target

    async def _select(self, action: Action, session: PageSession, base_url: Optional[str]) -> Optional[str]:
        return await self.selects.select(action, session)

    async def _check(self, action: Action, session: PageSession, base_url: Optional[str]) -> Optional[str]:
        target = await self._locate(action, session)
        await session.check(target, timeout=self._timeout(action))
        return target

    async def _uncheck(self, action: Action, session: PageSession, base_url: Optional[str]) -> Optional[str]:
        target = await self._locate(action, session)
        await session.uncheck(target, timeout=self._timeout(action))
        return target

    async def _hover(self, action: Action, session: PageSession, base_url: Optional[str]) -> Optional[str]:
        target = await self._locate(action, session, require_enabled=False)
        await session.hover(target, timeout=self._timeout(action))
        return target

    async def _scroll(self, action: Action, session: PageSession, base_url: Optional[str]) -> Optional[str]:
        if action.candidates:
            target = await self._locate(action, session, require_enabled=False)
            await session.scroll(target)
            return target
        await session.scroll(None, position=action.value or "bottom")
        return None

    async def _wait(self, action: Action, session: PageSession, base_url: Optional[str]) -> Optional[str]:
        try:
            ms = int(action.value) if action.value else DEFAULT_WAIT_MS
        except ValueError:
            logger.warning(f"Wait value {action.value!r} is not a number, using {DEFAULT_WAIT_MS}ms")
            ms = DEFAULT_WAIT_MS
        await self.sleep(ms / 1000)
        return None

    async def _verify(self, action: Action, session: PageSession, base_url: Optional[str]) -> Optional[str]:
        target = None
        if action.expected_url:
            await self._wait_for_url(action.expected_url, session, self._timeout(action))
        if action.candidates:
            target = await self._locate(action, session, require_enabled=False)
        elif action.value and not action.expected_url:
            target = await self._expect_text(DEFAULT_TEXT_SCOPE, action.value, session, self._timeout(action))
        return target

    async def _assert_visible(self, action: Action, session: PageSession, base_url: Optional[str]) -> Optional[str]:
        return await self._locate(action, session, require_enabled=False)

    async def _assert_text(self, action: Action, session: PageSession, base_url: Optional[str]) -> Optional[str]:
        scope = DEFAULT_TEXT_SCOPE
        if action.candidates:
            scope = await self._locate(action, session, require_enabled=False)
        return await self._expect_text(scope, action.value or "", session, self._timeout(action))

    # ==================== Assertions ====================

    async def _wait_for_url(self, expected: str, session: PageSession, timeout: int):
        """Poll the current URL until it contains expected."""
        polls = max(1, timeout // max(self.config.poll_interval_ms, 1))
        for attempt in range(polls):
            if expected in session.current_url():
                logger.info(f"URL contains {expected}")
                return
            if attempt < polls - 1:
                await self.sleep(self.config.poll_interval_ms / 1000)
        raise AssertionFailed(f"Expected URL to contain '{expected}', got '{session.current_url()}'")

    async def _expect_text(self, scope: str, expected: str, session: PageSession, timeout: int) -> str:
        content = await session.text_content(scope, timeout=timeout)
        if expected not in (content or ""):
            snippet = (content or "").strip()[:100]
            raise AssertionFailed(f"Expected text '{expected}' in {scope}, found '{snippet}'", locator=scope)
        return scope
