"""
Instruction Compiler
Turns free-form, line-delimited test instructions into typed Action records.
Rule based: every decision comes from lexical patterns, no model at runtime.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from .exceptions import CompileOmission
from .heuristics import SUGGESTION, canonical_field_id, classify_instruction, field_candidates
from .models import Action, ActionType, ElementType, TestCase

logger = logging.getLogger(__name__)


URL_PATTERN = re.compile(r"https?://[^\s\"'<>]+")
NAME_PATTERN = re.compile(r"^(?:test(?:\s+case)?(?:\s+name)?|name|title)\s*:\s*(.*)$", re.IGNORECASE)
BULLET_PATTERN = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s+")
QUOTED_PATTERN = re.compile(r"\"([^\"]+)\"|“([^”]+)”|(?<!\w)'([^']+)'(?!\w)")
PLACEHOLDER_PATTERN = re.compile(
    r"placeholder\s*(?:=|:|of|text)?\s*(?:\"([^\"]+)\"|'([^']+)'|“([^”]+)”)",
    re.IGNORECASE,
)

CLICK_HINT_PATTERN = re.compile(r"\bclick\w*\s+(?:on\s+)?(.*?)\s*\b(button|link)\b", re.IGNORECASE)
CLICK_TARGET_PATTERN = re.compile(r"\bclick\w*\s+(?:on\s+)?(.*)$", re.IGNORECASE)
FIELD_LABEL_PATTERN = re.compile(r"\b(?:in|into|on|the)\s+(.+?)\s+field\b", re.IGNORECASE)
SELECT_LABEL_PATTERN = re.compile(
    r"\bfrom\s+(?:the\s+)?(.+?)\s+(?:dropdown|drop-down|list|menu|field|select)\b", re.IGNORECASE
)
SELECT_VALUE_PATTERN = re.compile(r"\b(?:select|choose|pick)\s+(.+?)\s+from\b", re.IGNORECASE)
CHECK_LABEL_PATTERN = re.compile(
    r"\b(?:un)?check\w*\s+(?:the\s+)?(.+?)\s+(?:checkbox|check\s+box|box|option|radio(?:\s+button)?)\b",
    re.IGNORECASE,
)
HOVER_TARGET_PATTERN = re.compile(r"\bhover\w*\s+(?:over\s+|on\s+)?(.*)$", re.IGNORECASE)
URL_EXPECTATION_PATTERN = re.compile(r"\b(?:contains?|includes?|is|equals?)\s+(\S+)\s*$", re.IGNORECASE)
SUGGESTION_FIELD_PATTERNS = [
    re.compile(r"\bfrom\s+(?:the\s+)?(.+?)\s+suggestions?\b", re.IGNORECASE),
    re.compile(r"\b(?:in|into)\s+(?:the\s+)?(.+?)\s+field\b", re.IGNORECASE),
    re.compile(r"\bsearch\s+(?:the\s+)?(.+?)\s+for\b", re.IGNORECASE),
]

# A hinted phrase longer than this is a sentence, not a button label
MAX_HINT_PHRASE_WORDS = 6

# Autocomplete lists render asynchronously after typing
SUGGESTION_WAIT_MS = 1000
SUGGESTION_CLICK_TIMEOUT_MS = 10000


@dataclass
class CompileResult:
    """Everything one compilation pass produced."""
    actions: List[Action] = field(default_factory=list)
    url: Optional[str] = None
    name: Optional[str] = None
    omissions: List[CompileOmission] = field(default_factory=list)


# ==================== Lexical helpers ====================

def quoted_tokens(line: str) -> List[str]:
    """All quoted substrings of a line, in order."""
    tokens = []
    for match in QUOTED_PATTERN.finditer(line):
        token = next(g for g in match.groups() if g is not None).strip()
        if token:
            tokens.append(token)
    return tokens


def strip_quoted(line: str) -> str:
    return QUOTED_PATTERN.sub(" ", line)


def looks_like_css(token: str) -> bool:
    return any(ch in token for ch in "#.[")


def extract_value(line: str) -> str:
    """
    Pull the input value out of an instruction.

    Prefers the first quoted substring, then the text after a literal
    "with", then the text after a colon. Empty when none apply.
    """
    quoted = quoted_tokens(line)
    if quoted:
        return quoted[0]

    with_match = re.search(r"\bwith\s+(.+)$", line, re.IGNORECASE)
    if with_match:
        return with_match.group(1).strip()

    colon_match = re.search(r":\s*(.+)$", line)
    if colon_match:
        return colon_match.group(1).strip()

    return ""


def _strip_articles(phrase: str) -> str:
    phrase = re.sub(r"^(?:the|a|an)(?:\s+|$)", "", phrase.strip(), flags=re.IGNORECASE)
    return phrase.strip(" .,;:!")


def _text_locator(text: str) -> str:
    return f"text={text}"


def _placeholder_locator(text: str) -> str:
    if "'" in text:
        return f'[placeholder="{text}"]'
    return f"[placeholder='{text}']"


# ==================== Compiler ====================

class InstructionCompiler:
    """Compile natural-language test instructions into Action records."""

    def __init__(self):
        self._builders: Dict[Union[ActionType, str], Callable[[str], Optional[Union[Action, List[Action]]]]] = {
            SUGGESTION: self._build_suggestion,
            ActionType.CLICK: self._build_click,
            ActionType.FILL: self._build_fill,
            ActionType.SELECT: self._build_select,
            ActionType.WAIT: self._build_wait,
            ActionType.CHECK: self._build_check,
            ActionType.UNCHECK: self._build_uncheck,
            ActionType.SCROLL: self._build_scroll,
            ActionType.HOVER: self._build_hover,
            ActionType.VERIFY: self._build_verify,
        }

    def compile(self, text: str) -> List[Action]:
        """
        Compile instruction text into an ordered list of actions.

        Args:
            text: Free-form instructions, one per line

        Returns:
            Ordered actions; lines that match no rule are left out
        """
        return self.compile_detailed(text).actions

    def compile_detailed(self, text: str) -> CompileResult:
        """Compile and also report the test URL, name and skipped lines."""
        result = CompileResult()
        if not isinstance(text, str) or not text.strip():
            return result

        for line_number, raw_line in enumerate(text.splitlines(), 1):
            line = BULLET_PATTERN.sub("", raw_line).strip()
            if not line:
                continue
            try:
                self._compile_line(line, line_number, result)
            except Exception as e:
                logger.warning(f"Skipping line {line_number} after compiler error: {e}")
                result.omissions.append(CompileOmission(line_number, line, reason=f"compiler error: {e}"))

        logger.info(
            f"Compiled {len(result.actions)} actions "
            f"({len(result.omissions)} lines skipped)"
        )
        return result

    def compile_test_case(self, text: str, test_id: Optional[str] = None) -> TestCase:
        """Compile instructions into a complete TestCase."""
        return self.test_case_from_result(self.compile_detailed(text), text, test_id)

    def test_case_from_result(
        self,
        result: CompileResult,
        text: str,
        test_id: Optional[str] = None
    ) -> TestCase:
        """Build the TestCase for an existing compilation pass over text."""
        data = {
            "name": result.name or "Compiled Test",
            "url": result.url,
            "description": (text or "").strip()[:100],
            "actions": result.actions,
        }
        if test_id:
            data["id"] = test_id
        return TestCase(**data)

    def _compile_line(self, line: str, line_number: int, result: CompileResult):
        url_match = URL_PATTERN.search(line)
        if url_match:
            result.url = url_match.group(0).rstrip(".,;)")
            return

        name_match = NAME_PATTERN.match(line)
        if name_match:
            name = name_match.group(1).strip().strip("\"'")
            if name:
                result.name = name
            return

        line = line.rstrip(" .;!")
        # Autocomplete needs a quoted value to pick; without one the line reads as usual
        action_type = classify_instruction(strip_quoted(line), suggestions=bool(quoted_tokens(line)))
        if action_type is None:
            logger.debug(f"Line {line_number} not recognised: {line}")
            result.omissions.append(CompileOmission(line_number, line))
            return

        kind = getattr(action_type, "value", action_type)
        built = self._builders[action_type](line)
        if built is None:
            logger.debug(f"Line {line_number} matched {kind} but has no target: {line}")
            result.omissions.append(
                CompileOmission(line_number, line, reason=f"no target found for {kind}")
            )
            return

        result.actions.extend(built if isinstance(built, list) else [built])

    # ==================== Builders ====================

    def _build_click(self, line: str) -> Optional[Action]:
        quoted = quoted_tokens(line)
        bare = strip_quoted(line)

        hint_match = re.search(r"\b(button|link)\b", bare, re.IGNORECASE)
        hint = ElementType(hint_match.group(1).lower()) if hint_match else None

        if quoted:
            token = quoted[0]
            if looks_like_css(token):
                return Action(type=ActionType.CLICK, locator=token, description=line)
            return Action(
                type=ActionType.CLICK,
                locator=_text_locator(token),
                element_type=hint,
                description=line
            )

        phrase_match = CLICK_HINT_PATTERN.search(line)
        if phrase_match:
            phrase = _strip_articles(phrase_match.group(1))
            hint = ElementType(phrase_match.group(2).lower())
            if not phrase:
                # "click the button": nothing to search for but the tag itself
                tag = "button" if hint == ElementType.BUTTON else "a"
                return Action(type=ActionType.CLICK, locator=tag, element_type=hint, description=line)
            if len(phrase.split()) <= MAX_HINT_PHRASE_WORDS:
                return Action(
                    type=ActionType.CLICK,
                    locator=_text_locator(phrase),
                    element_type=hint,
                    description=line
                )

        target_match = CLICK_TARGET_PATTERN.search(line)
        target = _strip_articles(target_match.group(1)) if target_match else ""
        if not target:
            return None
        if " " not in target and looks_like_css(target) and not target.endswith("."):
            return Action(type=ActionType.CLICK, locator=target, description=line)
        return Action(type=ActionType.CLICK, locator=_text_locator(target), description=line)

    def _build_fill(self, line: str) -> Optional[Action]:
        return Action(
            type=ActionType.FILL,
            locator=self._field_locator(line, ActionType.FILL),
            value=extract_value(line),
            description=line
        )

    def _build_select(self, line: str) -> Optional[Action]:
        value = extract_value(line)
        if not value:
            value_match = SELECT_VALUE_PATTERN.search(line)
            if value_match:
                value = _strip_articles(value_match.group(1))
        return Action(
            type=ActionType.SELECT,
            locator=self._field_locator(line, ActionType.SELECT),
            value=value,
            description=line
        )

    def _build_suggestion(self, line: str) -> Optional[List[Action]]:
        """
        Expand an autocomplete instruction into fill, wait and click.

        The last quoted token is the suggestion to pick; the first is the
        search term typed to make it appear (the same token when only one).
        """
        quoted = quoted_tokens(line)
        if not quoted:
            return None
        value = quoted[-1]
        search_term = quoted[0]

        return [
            Action(
                type=ActionType.FILL,
                locator=self._suggestion_field_locator(line),
                value=search_term,
                description=f'Type "{search_term}" in search field'
            ),
            Action(
                type=ActionType.WAIT,
                value=str(SUGGESTION_WAIT_MS),
                description="Wait for suggestions to load"
            ),
            Action(
                type=ActionType.CLICK,
                locator=_text_locator(value),
                timeout=SUGGESTION_CLICK_TIMEOUT_MS,
                description=f'Select "{value}" from suggestions'
            ),
        ]

    def _build_wait(self, line: str) -> Optional[Action]:
        digits = re.search(r"\d+", line)
        return Action(
            type=ActionType.WAIT,
            value=digits.group(0) if digits else "2000",
            description=line
        )

    def _build_check(self, line: str) -> Optional[Action]:
        return Action(type=ActionType.CHECK, locator=self._checkbox_locator(line), description=line)

    def _build_uncheck(self, line: str) -> Optional[Action]:
        return Action(type=ActionType.UNCHECK, locator=self._checkbox_locator(line), description=line)

    def _build_scroll(self, line: str) -> Optional[Action]:
        quoted = quoted_tokens(line)
        position = "top" if re.search(r"\b(?:top|up)\b", line, re.IGNORECASE) else "bottom"
        locator = None
        if quoted:
            locator = quoted[0] if looks_like_css(quoted[0]) else _text_locator(quoted[0])
        return Action(type=ActionType.SCROLL, locator=locator, value=position, description=line)

    def _build_hover(self, line: str) -> Optional[Action]:
        quoted = quoted_tokens(line)
        if quoted:
            token = quoted[0]
            locator = token if looks_like_css(token) else _text_locator(token)
            return Action(type=ActionType.HOVER, locator=locator, description=line)

        target_match = HOVER_TARGET_PATTERN.search(line)
        target = _strip_articles(target_match.group(1)) if target_match else ""
        if not target:
            return None
        return Action(type=ActionType.HOVER, locator=_text_locator(target), description=line)

    def _build_verify(self, line: str) -> Optional[Action]:
        quoted = quoted_tokens(line)
        bare = strip_quoted(line)

        if re.search(r"\burl\b", bare, re.IGNORECASE):
            expected = quoted[0] if quoted else None
            if not expected:
                tail = URL_EXPECTATION_PATTERN.search(bare)
                expected = tail.group(1) if tail else None
            if not expected:
                return None
            return Action(type=ActionType.VERIFY, expected_url=expected, description=line)

        if not quoted:
            return None
        if len(quoted) > 1 and looks_like_css(quoted[1]):
            return Action(
                type=ActionType.ASSERT_TEXT,
                locator=quoted[1],
                value=quoted[0],
                description=line
            )
        return Action(type=ActionType.ASSERT_VISIBLE, locator=_text_locator(quoted[0]), description=line)

    # ==================== Locator inference ====================

    def _field_locator(self, line: str, action_type: ActionType) -> str:
        """
        Infer the locator of an input or dropdown.

        Order: explicit quoted CSS, known domain field names, placeholder
        phrases, "... field" labels, then a generic fallback.
        """
        quoted = quoted_tokens(line)
        # The first quoted token is the value; later ones may name the target
        for token in quoted[1:]:
            if looks_like_css(token):
                return token

        bare = strip_quoted(line)
        tag = "select" if action_type == ActionType.SELECT else "input"

        field_id = canonical_field_id(bare)
        if field_id:
            return field_candidates(field_id, tag)

        placeholder = PLACEHOLDER_PATTERN.search(line)
        if placeholder:
            text = next(g for g in placeholder.groups() if g is not None).strip()
            return _placeholder_locator(text)

        label = None
        if action_type == ActionType.SELECT:
            select_match = SELECT_LABEL_PATTERN.search(bare)
            if select_match:
                label = _strip_articles(select_match.group(1))
        if not label:
            field_match = FIELD_LABEL_PATTERN.search(bare)
            if field_match:
                label = _strip_articles(field_match.group(1))
        if label:
            return f"label={label}"

        return "select" if action_type == ActionType.SELECT else "input, textarea"

    def _suggestion_field_locator(self, line: str) -> str:
        bare = strip_quoted(line)

        field_id = canonical_field_id(bare)
        if field_id:
            return field_candidates(field_id, "input")

        placeholder = PLACEHOLDER_PATTERN.search(line)
        if placeholder:
            text = next(g for g in placeholder.groups() if g is not None).strip()
            return _placeholder_locator(text)

        for pattern in SUGGESTION_FIELD_PATTERNS:
            match = pattern.search(bare)
            label = _strip_articles(match.group(1)) if match else ""
            if label:
                return f"label={label}"
        return 'input[type="search"], input[type="text"]'

    def _checkbox_locator(self, line: str) -> str:
        quoted = quoted_tokens(line)
        if quoted:
            token = quoted[0]
            return token if looks_like_css(token) else f"label={token}"

        label_match = CHECK_LABEL_PATTERN.search(strip_quoted(line))
        if label_match:
            label = _strip_articles(label_match.group(1))
            if label:
                return f"label={label}"
        return 'input[type="checkbox"]'


_default_compiler = InstructionCompiler()


def compile_instructions(text: str) -> List[Action]:
    """Quick utility to compile instruction text"""
    return _default_compiler.compile(text)


def compile_test_case(text: str, test_id: Optional[str] = None) -> TestCase:
    """Quick utility to compile instruction text into a TestCase"""
    return _default_compiler.compile_test_case(text, test_id)
