"""One poll cycle: search recent mail, fetch headers, fetch bodies only when needed."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Protocol

from .constants import MAX_CANDIDATES_PER_POLL, SEARCH_WINDOW
from .decoder import parse_headers, parse_message
from .dedup import SeenSet
from .errors import TransientStoreError
from .models import CandidateMessage, PollReport

logger = logging.getLogger(__name__)


class HeaderAction(str, Enum):
    """What the scheduler should do after a header set was evaluated."""

    SKIP = "skip"
    RESOLVED = "resolved"
    FETCH_BODY = "fetch_body"


class MessageHandler(Protocol):
    @property
    def finished(self) -> bool: ...

    def handle_headers(self, uid: int, message: CandidateMessage) -> HeaderAction: ...

    def handle_body(self, uid: int, message: CandidateMessage) -> bool: ...


class PollScheduler:
    """Runs search/fetch round trips against the selected folder.

    A failed round trip ends the tick quietly; the next tick tries again.
    StoreConnectionError is not caught here.
    """

    def __init__(
        self,
        store,
        seen: SeenSet,
        handler: MessageHandler,
        now: Callable[[], datetime],
        search_window: float = SEARCH_WINDOW,
        max_candidates: int = MAX_CANDIDATES_PER_POLL,
    ) -> None:
        self.store = store
        self.seen = seen
        self.handler = handler
        self._now = now
        self.search_window = search_window
        self.max_candidates = max_candidates

    def search(self, folder: str) -> tuple[list[int], bool]:
        """Search unread recent mail, falling back to all recent mail.

        Returns ``(uids, used_fallback)``.  The fallback can bring back a
        message someone already read; recall wins over precision here.
        """
        since = (self._now() - timedelta(seconds=self.search_window)).date()
        logger.debug("Searching %s: SINCE %s UNSEEN", folder, since.isoformat())
        uids = self.store.search(since, unseen=True)
        if uids:
            logger.debug("UNSEEN search in %s: %d result(s)", folder, len(uids))
            return uids, False

        logger.debug("No unread mail in %s, searching all recent mail", folder)
        uids = self.store.search(since, unseen=False)
        logger.debug("Fallback search in %s: %d result(s)", folder, len(uids))
        return uids, True

    def poll(self, folder: str) -> PollReport:
        """Run one tick against ``folder``."""
        try:
            uids, fallback = self.search(folder)
        except TransientStoreError as exc:
            logger.warning("Search in %s failed, retrying next tick: %s", folder, exc)
            return PollReport(folder=folder, failed=True)

        fresh = sorted(self.seen.unseen(folder, uids), reverse=True)[: self.max_candidates]
        if not fresh:
            return PollReport(folder=folder, found=len(uids), unread_fallback=fallback)

        logger.info("Found %d new message(s) in %s", len(fresh), folder)
        try:
            headers = self.store.fetch_headers(fresh)
        except TransientStoreError as exc:
            logger.warning("Header fetch in %s failed, retrying next tick: %s", folder, exc)
            return PollReport(folder=folder, found=len(uids), unread_fallback=fallback, failed=True)

        body_fetches = 0
        for uid in fresh:
            if self.handler.finished:
                break
            raw = headers.get(uid)
            if raw is None:
                # Expunged between SEARCH and FETCH
                self.seen.mark(folder, uid)
                continue

            action = self.handler.handle_headers(uid, parse_headers(uid, raw))
            if action is not HeaderAction.FETCH_BODY:
                continue

            body_fetches += 1
            logger.debug("No code in subject of #%s, fetching full message", uid)
            try:
                raw_message = self.store.fetch_message(uid)
            except TransientStoreError as exc:
                logger.warning("Fetching message #%s failed, retrying next tick: %s", uid, exc)
                self.seen.forget(folder, uid)
                continue
            if raw_message is None:
                logger.warning("Message #%s disappeared before its body was fetched", uid)
                continue
            self.handler.handle_body(uid, parse_message(uid, raw_message))

        return PollReport(
            folder=folder,
            found=len(uids),
            evaluated=len(fresh),
            body_fetches=body_fetches,
            unread_fallback=fallback,
        )
