"""Message builders and in-memory fakes shared by the test modules."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.message import EmailMessage
from email.utils import format_datetime

from inbox_code_fetcher.errors import TransientStoreError
from inbox_code_fetcher.models import FolderInfo

BASE_TIME = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
TARGET = "alice@example.com"


def build_message(
    subject: str,
    sender: str = "Windsurf <noreply@windsurf.com>",
    to: str = TARGET,
    date: datetime | None = BASE_TIME,
    text: str | None = None,
    html: str | None = None,
) -> bytes:
    """Build raw RFC 5322 bytes the way a server would return them."""
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = to
    if date is not None:
        msg["Date"] = format_datetime(date)
    if text is not None:
        msg.set_content(text)
        if html is not None:
            msg.add_alternative(html, subtype="html")
    elif html is not None:
        msg.set_content(html, subtype="html")
    else:
        msg.set_content("")
    return msg.as_bytes()


def header_block(raw: bytes) -> bytes:
    """Header section of a raw message, as returned for HEADER.FIELDS."""
    head, _, _ = raw.partition(b"\n\n")
    return head + b"\n\n"


class FakeClock:
    """Monotonic clock, sleep and wall clock that only move when sleep is called."""

    def __init__(self, base: datetime = BASE_TIME) -> None:
        self.base = base
        self.t = 0.0
        self.sleeps: list[float] = []
        self._events: list[tuple[float, object]] = []

    def monotonic(self) -> float:
        return self.t

    def now(self) -> datetime:
        return self.base + timedelta(seconds=self.t)

    def at(self, seconds: float, callback) -> None:
        """Run ``callback`` once the clock reaches ``seconds``."""
        self._events.append((seconds, callback))
        self._events.sort(key=lambda e: e[0])

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.t += seconds
        while self._events and self._events[0][0] <= self.t:
            _, callback = self._events.pop(0)
            callback()


class FakeStore:
    """In-memory mail store with the same surface as MailStore."""

    host = "imap.example.com"
    port = 993

    def __init__(self, folders: list[str] | None = None) -> None:
        self.folders = folders if folders is not None else ["INBOX", "Sent", "Junk"]
        self.mailboxes: dict[str, dict[int, bytes]] = {name: {} for name in self.folders}
        self.read: set[tuple[str, int]] = set()
        self.selected: str | None = None

        self.connect_error: Exception | None = None
        self.select_errors: dict[str, Exception] = {}
        self.search_failures = 0
        self.search_error: Exception | None = None
        self.body_failures = 0

        self.connect_calls = 0
        self.logout_calls = 0
        self.list_calls = 0
        self.selections: list[str] = []
        self.searches: list[tuple[str, bool]] = []
        self.header_fetches: list[list[int]] = []
        self.body_fetches: list[int] = []

    def add(self, folder: str, uid: int, raw: bytes, read: bool = False) -> None:
        self.mailboxes.setdefault(folder, {})[uid] = raw
        if read:
            self.read.add((folder, uid))

    # --- MailStore surface ---

    def connect(self) -> None:
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error

    def logout(self) -> None:
        self.logout_calls += 1
        self.selected = None

    def list_folders(self) -> list[FolderInfo]:
        self.list_calls += 1
        return [FolderInfo(name=name) for name in self.folders]

    def select_folder(self, name: str) -> None:
        if name in self.select_errors:
            raise self.select_errors[name]
        self.selections.append(name)
        self.selected = name

    def close_folder(self) -> None:
        self.selected = None

    def search(self, since, unseen: bool = True) -> list[int]:
        self.searches.append((self.selected, unseen))
        if self.search_error is not None:
            raise self.search_error
        if self.search_failures > 0:
            self.search_failures -= 1
            raise TransientStoreError("SEARCH failed: server busy")
        messages = self.mailboxes.get(self.selected, {})
        if unseen:
            return [uid for uid in messages if (self.selected, uid) not in self.read]
        return list(messages)

    def fetch_headers(self, uids: list[int]) -> dict[int, bytes]:
        self.header_fetches.append(list(uids))
        messages = self.mailboxes.get(self.selected, {})
        return {uid: header_block(messages[uid]) for uid in uids if uid in messages}

    def fetch_message(self, uid: int) -> bytes | None:
        self.body_fetches.append(uid)
        if self.body_failures > 0:
            self.body_failures -= 1
            raise TransientStoreError("FETCH body failed: server busy")
        return self.mailboxes.get(self.selected, {}).get(uid)
