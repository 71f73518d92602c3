"""
Dropdown option selection.

Instructions name options by visible text while <select> works on option
values, so every tier is attempted: the tier order is only an optimization.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from ..config import EngineConfig
from ..exceptions import SelectOptionNotFound, SessionUnavailable
from ..heuristics import is_display_text_value
from ..models import Action
from .resolution import CandidateResolver
from .session import PageSession

logger = logging.getLogger(__name__)

GENERIC_SELECT_LOCATOR = "select"


def tier_order(value: str) -> List[str]:
    """label first for display text like "Mobile Banking", value first for codes like "20"."""
    if is_display_text_value(value):
        return ["label", "value"]
    return ["value", "label"]


def match_option(options: List[Dict[str, str]], wanted: str) -> Optional[Dict[str, str]]:
    """Case-insensitive match against option text, then option value."""
    needle = (wanted or "").strip().lower()
    for option in options:
        if (option.get("text") or "").strip().lower() == needle:
            return option
    for option in options:
        if (option.get("value") or "").strip().lower() == needle:
            return option
    return None


class SelectResolver:
    """Picks an option in a dropdown by value, label, or loose text."""

    def __init__(
        self,
        resolver: Optional[CandidateResolver] = None,
        config: Optional[EngineConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.config = config or EngineConfig()
        self.resolver = resolver or CandidateResolver(self.config, sleep=sleep)

    async def select(self, action: Action, session: PageSession) -> str:
        value = action.value or ""
        locators = action.candidates or [GENERIC_SELECT_LOCATOR]
        timeout = action.timeout or self.config.action_timeout_ms

        target = await self.resolver.locate(session, locators, timeout=timeout, search=value or None)

        for tier in tier_order(value):
            try:
                await session.select_option(target, timeout=self.config.probe_timeout_ms, **{tier: value})
                logger.info(f"[SELECT] Selected '{value}' by {tier} in {target}")
                return target
            except SessionUnavailable:
                raise
            except Exception as e:
                logger.debug(f"[SELECT] {tier} '{value}' failed in {target}: {e}")

        options = await self._options(session, target)
        option = match_option(options, value)
        if option is not None:
            await session.select_option(target, value=option.get("value", ""), timeout=self.config.probe_timeout_ms)
            logger.info(f"[SELECT] Selected '{value}' by loose match ({option.get('value')}) in {target}")
            return target

        raise SelectOptionNotFound(f"Option '{value}' not found in '{target}'", locator=target, options=options)

    async def _options(self, session: PageSession, target: str) -> List[Dict[str, str]]:
        try:
            return list(await session.list_options(target))
        except SessionUnavailable:
            raise
        except Exception as e:
            logger.warning(f"[SELECT] Could not read options of {target}: {e}")
            return []
