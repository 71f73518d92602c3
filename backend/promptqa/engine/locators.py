"""
Locator shapes used by the click cascade.

Ranked candidate lists per element-type hint, the broader alternative
battery, and helpers that recover the search text from a locator string.
"""

import re
from typing import Dict, Iterable, List, Optional

from ..models import ElementType


# {q} is the text escaped for a double-quoted selector argument
RANKED_TEMPLATES: Dict[ElementType, List[str]] = {
    ElementType.BUTTON: [
        'button:has-text("{q}")',
        '[role="button"]:has-text("{q}")',
        'input[type="submit"][value="{q}"]',
        'input[type="button"][value="{q}"]',
        'text="{q}"',
    ],
    ElementType.LINK: [
        'a:has-text("{q}")',
        '[role="link"]:has-text("{q}")',
        'text="{q}"',
    ],
    ElementType.SELECT: [
        'select:has(option:has-text("{q}"))',
        'option:has-text("{q}")',
        '[role="option"]:has-text("{q}")',
        '[role="combobox"]:has-text("{q}")',
        'text="{q}"',
    ],
}

ALTERNATIVE_TEMPLATES: List[str] = [
    'button:has-text("{q}")',
    'a:has-text("{q}")',
    '[role="button"]:has-text("{q}")',
    'input[type="submit"][value="{q}"]',
    'input[type="button"][value="{q}"]',
    '[onclick]:has-text("{q}")',
    'text="{q}"',
    'button:text-is("{q}")',
    'a:text-is("{q}")',
    '[role="button"]:text-is("{q}")',
    'input[value="{q}"]',
    'button[title="{q}"]',
    'a[title="{q}"]',
    '[title="{q}"]',
]

_HAS_TEXT = re.compile(r""":(?:has-text|text-is|text)\((["'])(.+?)\1\)""")
_ATTRIBUTE_TEXT = re.compile(r"""\[(?:value|title|aria-label|placeholder)=(["'])(.+?)\1\]""")


def escape_text(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def dedupe(selectors: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for selector in selectors:
        if selector not in seen:
            seen.add(selector)
            ordered.append(selector)
    return ordered


def is_text_locator(locator: str) -> bool:
    return locator.startswith("text=")


def search_text(locator: str) -> Optional[str]:
    """The visible text a locator searches for, if it has one."""
    for prefix in ("text=", "label=", "placeholder="):
        if locator.startswith(prefix):
            text = locator[len(prefix):].strip()
            if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
                text = text[1:-1]
            return text or None

    match = _HAS_TEXT.search(locator) or _ATTRIBUTE_TEXT.search(locator)
    if match:
        return match.group(2)
    return None


def diagnostic_text(locator: str) -> str:
    """Text to look for in the DOM when a locator fails."""
    text = search_text(locator)
    if text:
        return text
    simple = re.fullmatch(r"[#.]([\w-]+)", locator.strip())
    if simple:
        return simple.group(1)
    return locator.strip()


def build_ranked_candidates(text: str, element_type: Optional[ElementType]) -> List[str]:
    """
    Candidate selectors for text, ranked for the element-type hint.

    Unset and generic hints use the button ranking, so buttons win ties.
    """
    if element_type is None or element_type == ElementType.GENERIC:
        element_type = ElementType.BUTTON
    quoted = escape_text(text)
    return dedupe(template.format(q=quoted) for template in RANKED_TEMPLATES[element_type])


def build_alternative_selectors(text: str) -> List[str]:
    """The broad fallback battery tried once type-prioritized candidates run out."""
    quoted = escape_text(text)
    return dedupe(template.format(q=quoted) for template in ALTERNATIVE_TEMPLATES)
