from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from typing import List, Optional, Dict, Any, Tuple, Union, Literal
from datetime import datetime
from enum import Enum
import re
import uuid


class ActionType(str, Enum):
    NAVIGATE = "navigate"
    FILL = "fill"
    CLICK = "click"
    SELECT = "select"
    CHECK = "check"
    UNCHECK = "uncheck"
    HOVER = "hover"
    SCROLL = "scroll"
    WAIT = "wait"
    VERIFY = "verify"
    ASSERT_VISIBLE = "assert_visible"
    ASSERT_TEXT = "assert_text"


class ElementType(str, Enum):
    """Hint that re-ranks click candidates. Never filters them."""
    BUTTON = "button"
    LINK = "link"
    SELECT = "select"
    GENERIC = "generic"


class StepStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"


# ==================== Locators ====================

_TEXT_PREFIXES = ("text=", "label=")

# Segments that start a new locator rather than continue a text= value
_LOCATOR_START = re.compile(
    r"^(?:[#.\[*]|//|(?:text|label|placeholder|xpath|css|role|id)=|"
    r"(?:a|button|input|select|textarea|option|label|form|div|span|li|ul|nav|img|svg|p|h[1-6]|td|tr|table)"
    r"(?=$|[\s\[:.#>~+(]))"
)


def _looks_like_locator(segment: str) -> bool:
    return bool(_LOCATOR_START.match(segment))


def _split_top_level(raw: str) -> List[str]:
    parts = []
    buf = []
    depth = 0
    quote = None

    for ch in raw:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
            continue
        # An apostrophe inside a word ("Don't") is not a quote
        if ch in ("'", '"') and not (buf and buf[-1].isalnum()):
            quote = ch
        elif ch in "([":
            depth += 1
        elif ch in ")]":
            depth = max(depth - 1, 0)
        elif ch == "," and depth == 0:
            part = "".join(buf).strip()
            if part:
                parts.append(part)
            buf = []
            continue
        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        parts.append(tail)
    return parts


def split_candidates(raw: str) -> List[str]:
    """
    Split a comma-joined candidate string into its ordered parts.

    Commas inside quotes, brackets or parentheses do not split. A text=/label=
    value keeps its own commas: a following segment only starts a new
    candidate when it reads as a locator ("text=Login, #login-btn" is two
    candidates, "text=Hello, world" is one).
    """
    raw = (raw or "").strip()
    if not raw:
        return []

    parts: List[str] = []
    for segment in _split_top_level(raw):
        if parts and parts[-1].startswith(_TEXT_PREFIXES) and not _looks_like_locator(segment):
            parts[-1] = f"{parts[-1]}, {segment}"
        else:
            parts.append(segment)
    return parts


class SingleLocator(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["single"] = "single"
    value: str

    @property
    def candidates(self) -> Tuple[str, ...]:
        return (self.value,)

    def to_wire(self) -> str:
        return self.value


class CandidateList(BaseModel):
    """Ordered alternative locators for the same element; first match wins."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["candidates"] = "candidates"
    candidates: Tuple[str, ...]

    def to_wire(self) -> str:
        return ", ".join(self.candidates)


Locator = Union[SingleLocator, CandidateList]


def parse_locator(raw: Any) -> Optional[Locator]:
    """Build the locator variant from its wire form (string or list)."""
    if raw is None:
        return None
    if isinstance(raw, (SingleLocator, CandidateList)):
        return raw
    if isinstance(raw, dict):
        if "candidates" in raw:
            return parse_locator(list(raw["candidates"]))
        if "selector" in raw:
            return parse_locator(raw["selector"])
        return parse_locator(raw.get("value"))
    if isinstance(raw, (list, tuple)):
        parts = [str(p).strip() for p in raw if p is not None and str(p).strip()]
    else:
        parts = split_candidates(str(raw))

    if not parts:
        return None
    if len(parts) == 1:
        return SingleLocator(value=parts[0])
    return CandidateList(candidates=tuple(parts))


# ==================== Actions ====================

class Action(BaseModel):
    """A single compiled test step. Immutable once built."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: ActionType
    locator: Optional[Locator] = None
    element_type: Optional[ElementType] = Field(default=None, alias="elementType")
    value: Optional[str] = None
    description: str = ""
    expected_url: Optional[str] = Field(default=None, alias="expectedUrl")
    timeout: Optional[int] = None  # milliseconds, overrides the engine default

    @model_validator(mode="before")
    @classmethod
    def _accept_selector_key(cls, data: Any) -> Any:
        # AI collaborators and older exports use "selector" instead of "locator"
        if isinstance(data, dict) and "selector" in data and not data.get("locator"):
            data = dict(data)
            data["locator"] = data.pop("selector")
        return data

    @field_validator("locator", mode="before")
    @classmethod
    def _parse_locator(cls, value: Any) -> Optional[Locator]:
        return parse_locator(value)

    @field_validator("element_type", mode="before")
    @classmethod
    def _normalize_element_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if not value:
                return None
            # Unknown hints from upstream generators fall back to the default ranking
            if value not in {e.value for e in ElementType}:
                return ElementType.GENERIC
        return value

    @field_validator("value", mode="before")
    @classmethod
    def _stringify_value(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value)) if float(value).is_integer() else str(value)
        return value

    @field_serializer("locator")
    def _serialize_locator(self, locator: Optional[Locator]) -> Optional[str]:
        return locator.to_wire() if locator is not None else None

    @property
    def candidates(self) -> List[str]:
        """Ordered locator strings to try; empty when the action has no target."""
        if self.locator is None:
            return []
        return list(self.locator.candidates)

    @property
    def locator_text(self) -> Optional[str]:
        return self.locator.to_wire() if self.locator is not None else None

    def to_wire(self) -> Dict[str, Any]:
        """Flat JSON-compatible form of the action."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ==================== Test Cases ====================

class TestCase(BaseModel):
    id: str = Field(default_factory=lambda: f"tc_{uuid.uuid4().hex[:12]}")
    name: str = "Untitled Test"
    url: Optional[str] = None
    description: str = ""
    actions: List[Action] = []
    created_at: datetime = Field(default_factory=datetime.now)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "TestCase":
        return cls.model_validate(data)


# ==================== Execution Results ====================

class StepError(BaseModel):
    """Structured failure attached to a step outcome."""
    kind: str
    message: str
    locator: Optional[str] = None
    diagnostics: List[Dict[str, str]] = []
    options: List[Dict[str, str]] = []


class StepOutcome(BaseModel):
    step_number: int
    action_type: ActionType
    description: str = ""
    status: StepStatus
    locator_used: Optional[str] = None
    error: Optional[StepError] = None
    duration_ms: int = 0
    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def passed(self) -> bool:
        return self.status == StepStatus.PASSED


class TestResult(BaseModel):
    test_case_id: str
    test_case_name: str
    status: str  # "passed", "failed"
    duration: float
    steps: List[StepOutcome] = []
    failed_step: Optional[int] = None
    error_message: Optional[str] = None

    def record(self, outcome: StepOutcome) -> None:
        """Append a step outcome. Outcomes are never rewritten."""
        self.steps.append(outcome)


class TestReport(BaseModel):
    id: str
    executed_at: datetime = Field(default_factory=datetime.now)
    total_tests: int
    passed: int
    failed: int
    duration: float
    results: List[TestResult]
