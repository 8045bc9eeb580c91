"""Turn raw RFC 5322 bytes from the store into CandidateMessage objects."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import parsedate_to_datetime

from .models import CandidateMessage

logger = logging.getLogger(__name__)

_GARBLED_RUN_RE = re.compile(r"[\ufffd\x00-\x08\x0b\x0c\x0e-\x1f]{3,}|\?{5,}")
_NON_PRINTABLE_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


def _header(message: EmailMessage, name: str) -> str:
    value = message.get(name)
    if value is None:
        return ""
    return str(value).strip()


def parse_date(value: str) -> datetime | None:
    """Parse a Date header.  Unparseable or missing dates give None."""
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug("Unparseable Date header: %r", value)
        return None


def _part_text(part: EmailMessage | None) -> str | None:
    if part is None:
        return None
    try:
        return part.get_content()
    except (LookupError, UnicodeDecodeError):
        # Unknown or wrong charset label
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")


def _build(uid: int, message: EmailMessage) -> CandidateMessage:
    return CandidateMessage(
        uid=uid,
        subject=_header(message, "Subject"),
        sender=_header(message, "From"),
        recipient=_header(message, "To"),
        date=parse_date(_header(message, "Date")),
        headers={key: str(value) for key, value in message.items()},
    )


def parse_headers(uid: int, raw: bytes) -> CandidateMessage:
    """Decode a header-only fetch.  Body fields stay None."""
    message = BytesParser(policy=policy.default).parsebytes(raw, headersonly=True)
    return _build(uid, message)


def parse_message(uid: int, raw: bytes) -> CandidateMessage:
    """Decode a full message, including its plain-text and HTML bodies."""
    message = BytesParser(policy=policy.default).parsebytes(raw)
    candidate = _build(uid, message)
    candidate.text = _part_text(message.get_body(preferencelist=("plain",)))
    candidate.html = _part_text(message.get_body(preferencelist=("html",)))

    if candidate.html and looks_garbled(candidate.html):
        logger.warning("Message #%s HTML body looks garbled; charset may be mislabeled", uid)
    return candidate


def looks_garbled(text: str | None) -> bool:
    """Heuristic for mis-decoded text.  Diagnostic only."""
    if not text or len(text) < 10:
        return False
    if _GARBLED_RUN_RE.search(text):
        return True
    return len(_NON_PRINTABLE_RE.findall(text)) / len(text) > 0.1
