"""
Resolution & execution engine.

Turns compiled actions into interactions on a live page session.
"""

from .session import PageSession, PlaywrightPageSession
from .resolution import CandidateResolver, ProbeResult
from .click_resolution import ClickResolver, ClickState, initial_state, next_state, plan_candidates
from .select_resolution import SelectResolver
from .step_executor import ActionExecutor
from .browser import BrowserSessionFactory

__all__ = [
    "PageSession",
    "PlaywrightPageSession",
    "CandidateResolver",
    "ProbeResult",
    "ClickResolver",
    "ClickState",
    "initial_state",
    "next_state",
    "plan_candidates",
    "SelectResolver",
    "ActionExecutor",
    "BrowserSessionFactory",
]
