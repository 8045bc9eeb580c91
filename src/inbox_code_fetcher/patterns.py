"""Verification code extraction - ordered regex cascade over message text."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from .models import CandidateMessage, CodeMatch

logger = logging.getLogger(__name__)

_COLON = r"[：:\s]"  # ASCII or full-width colon, or whitespace
_TOKEN = r"([A-Z0-9]{6})"


@dataclass(frozen=True)
class CodePattern:
    """One entry of the cascade.  Group 1 of ``regex`` is the code."""

    name: str
    tier: int
    regex: re.Pattern[str]


def _p(name: str, tier: int, pattern: str, flags: int = re.IGNORECASE) -> CodePattern:
    return CodePattern(name=name, tier=tier, regex=re.compile(pattern, flags))


# Most specific first.  Order is the precedence.
CODE_PATTERNS: tuple[CodePattern, ...] = (
    _p("following_6_digit_code", 1, r"following\s+6\s*-?\s*digit\s+code[^\d]*(\d{6})"),
    _p("enter_following", 2, r"enter\s+(?:the\s+)?following[^\d]*(\d{6})"),
    _p("verification_code", 3, rf"verification\s*code{_COLON}*{_TOKEN}"),
    _p("verify_code", 3, rf"verify\s*code{_COLON}*{_TOKEN}"),
    _p("code_is", 3, rf"code\s*(?:is)?{_COLON}+{_TOKEN}"),
    _p("your_code", 3, rf"your\s*code{_COLON}*{_TOKEN}"),
    _p("zh_verification_code", 4, rf"验证码[：:\s　]*{_TOKEN}"),
    _p("zh_verification_code_long", 4, rf"验证代码[：:\s　]*{_TOKEN}"),
    _p("code_token", 5, rf"code{_COLON}*{_TOKEN}(?![0-9])"),
    _p("standalone_digits", 6, r"(?:^|[^0-9])([0-9]{6})(?:[^0-9]|$)", 0),
)

SUBJECT_CODE_RE = re.compile(r"(?:^|[\s\-:])([0-9]{6})(?:[\s\-:]|$)")

_WHITESPACE_RE = re.compile(r"\s+")


def match_code(
    text: str | None,
    patterns: tuple[CodePattern, ...] = CODE_PATTERNS,
) -> tuple[str, CodePattern] | None:
    """Return ``(code, pattern)`` for the first pattern that matches ``text``."""
    if not text:
        return None
    for pattern in patterns:
        m = pattern.regex.search(text)
        if m:
            return m.group(1), pattern
    return None


def extract_code(text: str | None, patterns: tuple[CodePattern, ...] = CODE_PATTERNS) -> str | None:
    """Run the cascade over ``text`` and return the code, or None."""
    found = match_code(text, patterns)
    return found[0] if found else None


def extract_subject_code(subject: str | None) -> str | None:
    """Fast path: a 6-digit run standing on its own in the subject line.

    Handles "123456 - Your code", "Your code - 123456", "Verify: 123456".
    """
    if not subject:
        return None
    m = SUBJECT_CODE_RE.search(subject)
    return m.group(1) if m else None


def clean_html(html: str | None) -> str:
    """Strip scripts, styles and tags; decode entities; collapse whitespace."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return _WHITESPACE_RE.sub(" ", soup.get_text(" ")).strip()


def extract_from_message(message: CandidateMessage) -> CodeMatch | None:
    """Run the cascade over a decoded message, cheapest source first.

    Plain text, then raw HTML markup, then cleaned HTML (only when the raw pass
    failed), then the subject line.
    """
    found = match_code(message.text)
    if found:
        return CodeMatch(code=found[0], source="text", pattern=found[1].name)

    if message.html:
        found = match_code(message.html)
        if found:
            return CodeMatch(code=found[0], source="html", pattern=found[1].name)

        logger.debug("No code in raw HTML of #%s, retrying on cleaned text", message.uid)
        found = match_code(clean_html(message.html))
        if found:
            return CodeMatch(code=found[0], source="html_clean", pattern=found[1].name)

    # Subject last; the header stage already tried the subject fast path
    found = match_code(message.subject)
    if found:
        return CodeMatch(code=found[0], source="subject", pattern=found[1].name)

    return None
