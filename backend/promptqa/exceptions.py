"""
Error taxonomy for compilation and execution.

The compiler never raises: dropped lines are recorded as CompileOmission
entries. Engine failures are exceptions that the executor converts into a
structured StepError on the failing step outcome.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class CompileOmission:
    """A line the compiler could not turn into an action."""
    line_number: int
    text: str
    reason: str = "no instruction keyword matched"


def format_diagnostics(diagnostics: Optional[List[Dict[str, str]]]) -> str:
    """Render a DOM snapshot for error messages."""
    if not diagnostics:
        return "no matches"
    return ", ".join(
        f'{d.get("tag", "?")}(id: {d.get("id", "")}, class: {d.get("class", "")}, '
        f'text: "{d.get("text", "")}", value: "{d.get("value", "")}")'
        for d in diagnostics
    )


class PromptQAError(Exception):
    """Base class for engine failures."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class ResolutionError(PromptQAError):
    """A locator could not be turned into a usable element."""

    def __init__(
        self,
        message: str,
        locator: Optional[str] = None,
        diagnostics: Optional[List[Dict[str, str]]] = None
    ):
        self.locator = locator
        self.diagnostics = list(diagnostics or [])
        super().__init__(f"{message}. Available elements: {format_diagnostics(self.diagnostics)}")


class ElementNotFound(ResolutionError):
    """Every candidate and retry round was exhausted."""


class ElementNotInteractable(ResolutionError):
    """The element exists but is hidden or disabled."""


class SelectOptionNotFound(ResolutionError):
    """Value, label and case-insensitive text matching all failed."""

    def __init__(
        self,
        message: str,
        locator: Optional[str] = None,
        options: Optional[List[Dict[str, str]]] = None
    ):
        self.options = list(options or [])
        listing = ", ".join(f'{o.get("value", "")}="{o.get("text", "")}"' for o in self.options) or "none"
        PromptQAError.__init__(self, f"{message}. Available options: {listing}")
        self.locator = locator
        self.diagnostics = []


class AssertionFailed(PromptQAError):
    """A text, URL or visibility assertion did not hold."""

    def __init__(self, message: str, locator: Optional[str] = None):
        self.locator = locator
        super().__init__(message)


class SessionUnavailable(PromptQAError):
    """The page, context or browser went away mid-run."""
