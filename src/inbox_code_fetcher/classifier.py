"""Decide whether a message is a verification email meant for the target address."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from .constants import (
    GENERIC_SUBJECT_KEYWORDS,
    MAX_MESSAGE_AGE,
    VENDOR_SENDER_KEYWORDS,
    VENDOR_SUBJECT_KEYWORDS,
)
from .models import CandidateMessage


@dataclass(frozen=True)
class Verdict:
    in_scope: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.in_scope


def message_age(message: CandidateMessage, now: datetime) -> float:
    """Age of the message in seconds.  A missing date counts as brand new."""
    if message.date is None:
        return 0.0
    sent = message.date
    if sent.tzinfo is None:
        sent = sent.replace(tzinfo=timezone.utc)
    return (now - sent).total_seconds()


def is_recent(message: CandidateMessage, now: datetime, max_age: float = MAX_MESSAGE_AGE) -> bool:
    return message_age(message, now) <= max_age


def has_provenance(message: CandidateMessage) -> bool:
    """Sender or subject names a known vendor, or the subject asks to verify."""
    subject = message.subject.lower()
    sender = message.sender.lower()
    if any(keyword in subject for keyword in VENDOR_SUBJECT_KEYWORDS):
        return True
    if any(keyword in sender for keyword in VENDOR_SENDER_KEYWORDS):
        return True
    return any(keyword in subject for keyword in GENERIC_SUBJECT_KEYWORDS)


def matches_recipient(message: CandidateMessage, target: str) -> bool:
    """The To header, or the body when present, mentions the target address.

    Either the full address or its local part (before "@") counts, case-insensitively.
    """
    target = target.strip().lower()
    if not target:
        return False
    local_part = target.split("@")[0]
    needles = {target, local_part} if local_part else {target}

    haystacks = [message.recipient, message.text, message.html]
    for haystack in haystacks:
        if not haystack:
            continue
        lowered = haystack.lower()
        if any(needle in lowered for needle in needles):
            return True
    return False


def classify(
    message: CandidateMessage,
    target: str,
    now: datetime,
    max_age: float = MAX_MESSAGE_AGE,
) -> Verdict:
    """Apply the recency, provenance and recipient rules in that order."""
    age = message_age(message, now)
    if age > max_age:
        return Verdict(False, f"too old ({int(age)}s)")
    if not has_provenance(message):
        return Verdict(False, "not a verification email")
    if not matches_recipient(message, target):
        return Verdict(False, f"recipient does not match {target}")
    return Verdict(True)


def is_in_scope(message: CandidateMessage, target: str, now: datetime) -> bool:
    return classify(message, target, now).in_scope
