"""Data models for Inbox Code Fetcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class SessionState(str, Enum):
    """States of a single retrieval session."""

    CONNECTING = "connecting"
    FOLDER_OPENING = "folder_opening"
    POLLING = "polling"
    SWITCHING_FOLDER = "switching_folder"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    CONNECTION_FAILED = "connection_failed"
    CLOSED = "closed"


TERMINAL_STATES = frozenset(
    {
        SessionState.RESOLVED,
        SessionState.TIMED_OUT,
        SessionState.CONNECTION_FAILED,
        SessionState.CLOSED,
    }
)


@dataclass
class CandidateMessage:
    """Decoded fields of one message under evaluation."""

    uid: int
    subject: str = ""
    sender: str = ""  # Full From header value
    recipient: str = ""  # Full To header value
    date: datetime | None = None
    text: str | None = None
    html: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def has_body(self) -> bool:
        return self.text is not None or self.html is not None


@dataclass(frozen=True)
class FolderInfo:
    """One entry of the store's folder listing."""

    name: str
    delimiter: str = "/"
    flags: tuple[str, ...] = ()


@dataclass(frozen=True)
class CodeMatch:
    """A code found by the pattern cascade and where it came from."""

    code: str
    source: str  # "subject", "text", "html" or "html_clean"
    pattern: str = ""


@dataclass
class RetrievalOutcome:
    """The single terminal result of a retrieval session."""

    code: str | None = None
    error: Exception | None = None
    folder: str = ""
    source: str = ""
    uid: int | None = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.code is not None

    def unwrap(self) -> str:
        """Return the code or raise the recorded error."""
        if self.error is not None:
            raise self.error
        assert self.code is not None
        return self.code


@dataclass(frozen=True)
class PollReport:
    """Summary of one scheduler tick."""

    folder: str
    found: int = 0  # uids returned by the search
    evaluated: int = 0  # uids not seen before
    body_fetches: int = 0
    unread_fallback: bool = False
    failed: bool = False


@dataclass(frozen=True)
class ConnectionCheck:
    """Result of a connect/disconnect health probe."""

    success: bool
    message: str
