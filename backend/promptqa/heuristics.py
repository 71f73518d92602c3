"""
Lexical heuristics as ordered rule tables.

Each table is a list of (predicate, result) pairs evaluated top to bottom;
the first matching predicate wins. New synonyms or keywords are added by
inserting rows, not by touching the callers.
"""

import re
from typing import Callable, List, Optional, Pattern, Tuple, TypeVar, Union

from .models import ActionType

T = TypeVar("T")
Rule = Tuple[Callable[[str], bool], T]


def first_match(rules: List[Rule], text: str, default: Optional[T] = None) -> Optional[T]:
    """Return the result of the first rule whose predicate accepts text."""
    for predicate, result in rules:
        if predicate(text):
            return result
    return default


def _search(pattern: str) -> Callable[[str], bool]:
    regex = re.compile(pattern, re.IGNORECASE)
    return lambda text: regex.search(text) is not None


# ==================== Instruction Keywords ====================

def _is_check(text: str) -> bool:
    return re.search(r"\bcheck\b", text, re.IGNORECASE) is not None and "uncheck" not in text.lower()


# "type" only counts as the verb ("type in", "type into", or leading the line)
# so field names such as "Mobile Banking Type" do not turn selects into fills.
_FILL_VERB = re.compile(
    r"^(?:(?:then|and|i)\s+)*(?:type|enter|input|fill)\b"
    r"|\btype\s+(?:in|into)\b"
    r"|\b(?:enter|input|fill)\b",
    re.IGNORECASE,
)

# Autocomplete lines expand into fill, wait and click; not a single ActionType
SUGGESTION = "suggestion"


def _is_suggestion(text: str) -> bool:
    lowered = text.lower()
    if re.search(r"\b(?:suggestions?|auto-?complete)\b", lowered):
        return True
    return re.search(r"\bsearch\b", lowered) is not None and re.search(r"\bselect\b", lowered) is not None


INSTRUCTION_RULES: List[Rule] = [
    (_search(r"\bclick"), ActionType.CLICK),
    (_is_suggestion, SUGGESTION),
    (lambda text: _FILL_VERB.search(text) is not None, ActionType.FILL),
    (_search(r"\bselect\b"), ActionType.SELECT),
    (_search(r"\bwait\b"), ActionType.WAIT),
    (_is_check, ActionType.CHECK),
    (_search(r"\bscroll"), ActionType.SCROLL),
    # Rows below only see lines none of the rows above accepted
    (_search(r"\buncheck\b"), ActionType.UNCHECK),
    (_search(r"\bhover"), ActionType.HOVER),
    (_search(r"\b(?:choose|pick|dropdown)\b"), ActionType.SELECT),
    (_search(r"\b(?:verify|assert|should\s+see)\b"), ActionType.VERIFY),
]


def classify_instruction(line: str, suggestions: bool = True) -> Optional[Union[ActionType, str]]:
    """
    Classify one instruction line: an ActionType, SUGGESTION, or None when
    no keyword matches. With suggestions=False the autocomplete row is skipped.
    """
    rules = INSTRUCTION_RULES if suggestions else [r for r in INSTRUCTION_RULES if r[1] != SUGGESTION]
    return first_match(rules, line)


# ==================== Domain Field Names ====================

# (phrase pattern, canonical lower-cased element id)
FIELD_SYNONYM_RULES: List[Tuple[Pattern, str]] = [
    (re.compile(r"\bmobile\s+banking(?:\s+type)?\b", re.IGNORECASE), "mobilebanking"),
    (re.compile(r"\bteacher\s+grade\b", re.IGNORECASE), "teachergrade"),
    (re.compile(r"\breligion\b", re.IGNORECASE), "religion"),
    (re.compile(r"\bblood\s+group\b", re.IGNORECASE), "bloodgroup"),
    (re.compile(r"\bmarital\s+status\b", re.IGNORECASE), "maritalstatus"),
]


def canonical_field_id(text: str) -> Optional[str]:
    for pattern, field_id in FIELD_SYNONYM_RULES:
        if pattern.search(text):
            return field_id
    return None


def field_candidates(field_id: str, tag: str) -> str:
    """
    Candidate-list locator for a known domain field.

    The lower-cased id is the primary candidate; the fallbacks cover the
    "Type" suffixed id and case-insensitive name attributes.
    """
    return (
        f"#{field_id}, #{field_id}Type, "
        f'{tag}[name="{field_id}" i], {tag}[name="{field_id}Type" i]'
    )


# ==================== Select Values ====================

DISPLAY_TEXT_RULES: List[Rule] = [
    (lambda v: not v.strip(), False),
    (lambda v: re.fullmatch(r"[\d.,\s-]+", v) is not None, False),
    (lambda v: re.search(r"\s", v.strip()) is not None and re.search(r"[A-Z]", v) is not None, True),
    (lambda v: re.match(r"[A-Z][a-z]", v.strip()) is not None, True),
]


def is_display_text_value(value: Optional[str]) -> bool:
    """
    Whether a select value looks like visible option text rather than an
    option value attribute.

    "Nagad", "Level-01" and "United States" read as display text; "us", "1",
    "ACTIVE" and "teacher-grade" read as technical values. Only decides which
    selection tier runs first.
    """
    if value is None:
        return False
    return bool(first_match(DISPLAY_TEXT_RULES, value, default=False))
