"""IMAP mail store adapter built on IMAPClient."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Callable, Iterator

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientAbortError, IMAPClientError, LoginError

from .config import AccountConfig
from .constants import HEADER_FIELDS, IMAP_TIMEOUT
from .errors import StoreConnectionError, TransientStoreError
from .models import FolderInfo

logger = logging.getLogger(__name__)

HEADERS_ITEM = f"BODY.PEEK[HEADER.FIELDS ({HEADER_FIELDS})]"
FULL_ITEM = "BODY.PEEK[]"


def _decode(value: bytes | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _body_section(attrs: dict) -> bytes | None:
    """Pick the BODY[...] payload out of one message's fetch response.

    Servers echo the section name back in slightly different spellings, so
    match on the prefix rather than the exact key.
    """
    for key, value in attrs.items():
        if isinstance(key, bytes) and key.upper().startswith(b"BODY[") and isinstance(value, bytes):
            return value
    return None


class MailStore:
    """One authenticated IMAP session.

    Every operation is a blocking round trip.  Failures that leave the
    connection unusable raise StoreConnectionError; a failed command on a
    healthy connection raises TransientStoreError.
    """

    def __init__(
        self,
        account: AccountConfig,
        client_factory: Callable[..., IMAPClient] = IMAPClient,
        timeout: float = IMAP_TIMEOUT,
    ) -> None:
        self.account = account
        self._client_factory = client_factory
        self._timeout = timeout
        self._client: IMAPClient | None = None

    @property
    def host(self) -> str:
        return self.account.host

    @property
    def port(self) -> int:
        return self.account.port

    @property
    def connected(self) -> bool:
        return self._client is not None

    def _connection_error(self, message: str) -> StoreConnectionError:
        return StoreConnectionError(message, host=self.host, port=self.port)

    @property
    def client(self) -> IMAPClient:
        if self._client is None:
            raise self._connection_error("not connected")
        return self._client

    @contextmanager
    def _round_trip(self, action: str) -> Iterator[None]:
        try:
            yield
        except IMAPClientAbortError as exc:
            raise self._connection_error(f"connection lost during {action}: {exc}") from exc
        except IMAPClientError as exc:
            raise TransientStoreError(f"{action} failed: {exc}") from exc
        except OSError as exc:
            raise self._connection_error(f"transport error during {action}: {exc}") from exc

    # --- session lifecycle ---

    def connect(self) -> None:
        """Open a TLS connection and log in."""
        logger.info("Connecting to IMAP server %s:%s", self.host, self.port)
        try:
            client = self._client_factory(self.host, port=self.port, ssl=True, timeout=self._timeout)
        except (IMAPClientError, OSError) as exc:
            raise self._connection_error(str(exc)) from exc

        try:
            client.login(self.account.user, self.account.password)
        except LoginError as exc:
            raise self._connection_error(f"login rejected for {self.account.user}: {exc}") from exc
        except (IMAPClientError, OSError) as exc:
            raise self._connection_error(str(exc)) from exc

        self._client = client
        logger.info("IMAP connection established")

    def logout(self) -> None:
        """End the session.  Safe to call more than once."""
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.logout()
        except (IMAPClientError, OSError) as exc:
            logger.debug("Ignoring error while logging out: %s", exc)
        logger.info("IMAP connection closed")

    # --- folders ---

    def list_folders(self) -> list[FolderInfo]:
        with self._round_trip("LIST"):
            listing = self.client.list_folders()
        return [
            FolderInfo(
                name=_decode(name),
                delimiter=_decode(delimiter) or "/",
                flags=tuple(_decode(flag) for flag in flags),
            )
            for flags, delimiter, name in listing
        ]

    def select_folder(self, name: str) -> None:
        """Select ``name`` read-only; fetches use BODY.PEEK so nothing is marked read."""
        with self._round_trip(f"SELECT {name}"):
            self.client.select_folder(name, readonly=True)

    def close_folder(self) -> None:
        with self._round_trip("CLOSE"):
            self.client.close_folder()

    # --- search / fetch ---

    def search(self, since: date, unseen: bool = True) -> list[int]:
        """Return uids received on or after ``since`` (day granularity)."""
        criteria: list = ["SINCE", since]
        if unseen:
            criteria.append("UNSEEN")
        with self._round_trip("SEARCH"):
            return list(self.client.search(criteria))

    def fetch_headers(self, uids: list[int]) -> dict[int, bytes]:
        """Fetch FROM/TO/SUBJECT/DATE only, without touching the \\Seen flag."""
        if not uids:
            return {}
        with self._round_trip("FETCH headers"):
            response = self.client.fetch(uids, [HEADERS_ITEM])
        headers: dict[int, bytes] = {}
        for uid, attrs in response.items():
            raw = _body_section(attrs)
            if raw is not None:
                headers[uid] = raw
        return headers

    def fetch_message(self, uid: int) -> bytes | None:
        """Fetch one complete message, without touching the \\Seen flag."""
        with self._round_trip("FETCH body"):
            response = self.client.fetch([uid], [FULL_ITEM])
        attrs = response.get(uid)
        if attrs is None:
            return None
        return _body_section(attrs)
