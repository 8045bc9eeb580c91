"""Retrieval session - the state machine behind a single retrieve_code call.

A session owns one store connection from connect to logout::

    CONNECTING -> FOLDER_OPENING -> POLLING -> [SWITCHING_FOLDER -> POLLING]
        -> RESOLVED | TIMED_OUT | CONNECTION_FAILED -> CLOSED

``resolve`` and ``fail`` are the only ways into a terminal state and both
check ``finished`` first, so exactly one outcome is ever recorded.  Completion
handlers called after that are no-ops, and ``close`` logs out exactly once.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

from .classifier import classify
from .constants import DEFAULT_MAX_WAIT, POLL_INTERVAL, PREVIEW_CHARS, PRIMARY_FOLDER
from .dedup import SeenSet
from .errors import CodeTimeoutError, StoreConnectionError, TransientStoreError
from .folders import MailboxSwitcher, flatten_folder_names
from .models import CandidateMessage, CodeMatch, RetrievalOutcome, SessionState
from .patterns import clean_html, extract_from_message, extract_subject_code
from .scheduler import HeaderAction, PollScheduler

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _preview(text: str | None) -> str:
    return (text or "")[:PREVIEW_CHARS].replace("\n", "\\n")


class RetrievalSession:
    """Poll one mailbox until a verification code for ``target`` shows up."""

    def __init__(
        self,
        store,
        target: str,
        max_wait: float = DEFAULT_MAX_WAIT,
        *,
        poll_interval: float = POLL_INTERVAL,
        switcher: MailboxSwitcher | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.target = target.strip()
        self.max_wait = max_wait
        self.poll_interval = poll_interval
        self.switcher = switcher or MailboxSwitcher()
        self._clock = clock
        self._sleep = sleep
        self._now = now

        self.seen = SeenSet()
        self._header_times: dict[tuple[str | None, int], datetime] = {}
        self.scheduler = PollScheduler(store, self.seen, self, now=now)

        self.state = SessionState.CONNECTING
        self.final_state: SessionState | None = None
        self.folder: str | None = None
        self.switched = False
        self.outcome: RetrievalOutcome | None = None
        self.teardowns = 0
        self.ticks = 0

        self._started: float | None = None
        self._folder_opened_at: float | None = None

    # --- bookkeeping ---

    @property
    def finished(self) -> bool:
        return self.outcome is not None

    @property
    def deadline(self) -> float | None:
        if self._started is None:
            return None
        return self._started + self.max_wait

    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        return self._clock() - self._started

    def folder_elapsed(self) -> float:
        if self._folder_opened_at is None:
            return 0.0
        return self._clock() - self._folder_opened_at

    # --- driver ---

    def execute(self) -> RetrievalOutcome:
        """Run the session to its terminal state and return the outcome."""
        self._started = self._clock()
        logger.info("Waiting up to %gs for a verification code for %s", self.max_wait, self.target)
        try:
            self._open()
            while not self.finished:
                self.tick()
                if self.finished:
                    break
                remaining = self.deadline - self._clock()
                self._sleep(max(0.0, min(self.poll_interval, remaining)))
        except StoreConnectionError as exc:
            self.fail(exc, SessionState.CONNECTION_FAILED)
        finally:
            self.close()
        assert self.outcome is not None
        return self.outcome

    def run(self) -> str:
        """Return the code, or raise StoreConnectionError / CodeTimeoutError."""
        return self.execute().unwrap()

    def _open(self) -> None:
        self.state = SessionState.CONNECTING
        self.store.connect()

        self.state = SessionState.FOLDER_OPENING
        try:
            self.store.select_folder(PRIMARY_FOLDER)
        except TransientStoreError as exc:
            raise StoreConnectionError(
                f"could not open {PRIMARY_FOLDER}: {exc}",
                host=getattr(self.store, "host", ""),
                port=getattr(self.store, "port", None),
            ) from exc

        self.folder = PRIMARY_FOLDER
        self._folder_opened_at = self._clock()
        self.state = SessionState.POLLING
        logger.info(
            "%s opened; junk folder is checked after %gs without a code",
            PRIMARY_FOLDER,
            self.switcher.switch_after,
        )

    def tick(self) -> None:
        """One scheduler tick: deadline check, poll, maybe switch folders."""
        if self.finished:
            return
        if self.elapsed() >= self.max_wait:
            self.fail(CodeTimeoutError(self.target, self.max_wait), SessionState.TIMED_OUT)
            return

        self.ticks += 1
        self.scheduler.poll(self.folder)
        if self.finished:
            return

        if self.switcher.should_switch(self.folder, self.folder_elapsed(), self.switched):
            self._switch_folder()

    def _switch_folder(self) -> None:
        self.switched = True
        self.state = SessionState.SWITCHING_FOLDER
        logger.info("No code in %s yet, looking for a junk folder", self.folder)

        try:
            folders = self.store.list_folders()
        except TransientStoreError as exc:
            logger.warning("Listing folders failed: %s", exc)
            self.state = SessionState.POLLING
            return

        logger.debug("Available folders: %s", ", ".join(flatten_folder_names(folders)))
        junk = self.switcher.pick_folder(folders)
        if junk is None:
            logger.info("No junk folder found, staying in %s", self.folder)
            self.state = SessionState.POLLING
            return

        previous = self.folder
        try:
            self.store.close_folder()
        except TransientStoreError as exc:
            logger.warning("Closing %s failed: %s", previous, exc)

        try:
            self.store.select_folder(junk)
        except TransientStoreError as exc:
            logger.warning("Opening %s failed, going back to %s: %s", junk, previous, exc)
            try:
                self.store.select_folder(previous)
            except TransientStoreError as reopen_exc:
                logger.warning("Reopening %s failed: %s", previous, reopen_exc)
            self.state = SessionState.POLLING
            return

        self.folder = junk
        self._folder_opened_at = self._clock()
        self.state = SessionState.POLLING
        logger.info("Switched to junk folder %s", junk)
        self.scheduler.poll(junk)

    # --- completion handlers ---

    def handle_headers(self, uid: int, message: CandidateMessage) -> HeaderAction:
        """Evaluate FROM/TO/SUBJECT/DATE of one message."""
        if self.finished or self.seen.is_seen(self.folder, uid):
            return HeaderAction.SKIP
        self.seen.mark(self.folder, uid)

        now = self._now()
        verdict = classify(message, self.target, now)
        if not verdict:
            logger.debug("Skipping #%s %r: %s", uid, message.subject, verdict.reason)
            return HeaderAction.SKIP

        logger.info("Message #%s matches: %r to %s", uid, message.subject, message.recipient)
        code = extract_subject_code(message.subject)
        if code:
            self.resolve(CodeMatch(code=code, source="subject", pattern="subject_fast_path"), uid)
            return HeaderAction.RESOLVED
        self._header_times[(self.folder, uid)] = now
        return HeaderAction.FETCH_BODY

    def handle_body(self, uid: int, message: CandidateMessage) -> bool:
        """Evaluate a fully fetched message.  Returns True if it resolved the session."""
        if self.finished:
            logger.debug("Ignoring late body for #%s", uid)
            return False

        # Age is judged as of the header stage
        evaluated_at = self._header_times.pop((self.folder, uid), None)
        if evaluated_at is None:
            evaluated_at = self._now()
        verdict = classify(message, self.target, evaluated_at)
        if not verdict:
            logger.info("Skipping #%s after body fetch: %s", uid, verdict.reason)
            return False

        match = extract_from_message(message)
        if match is None:
            logger.info("No verification code found in message #%s", uid)
            logger.debug("Text preview: %s", _preview(message.text))
            if message.html:
                logger.debug("HTML preview: %s", _preview(clean_html(message.html)))
            return False
        return self.resolve(match, uid)

    # --- transitions ---

    def resolve(self, match: CodeMatch, uid: int | None = None) -> bool:
        if self.finished:
            return False
        self.outcome = RetrievalOutcome(
            code=match.code,
            folder=self.folder or "",
            source=match.source,
            uid=uid,
            elapsed=self.elapsed(),
        )
        self.final_state = SessionState.RESOLVED
        self.state = SessionState.RESOLVED
        logger.info("Verification code found in %s (%s): %s", self.folder, match.source, match.code)
        self.close()
        return True

    def fail(self, error: Exception, state: SessionState) -> bool:
        if self.finished:
            return False
        self.outcome = RetrievalOutcome(error=error, folder=self.folder or "", elapsed=self.elapsed())
        self.final_state = state
        self.state = state
        logger.error("%s", error)
        self.close()
        return True

    def close(self) -> None:
        """Release the store connection.  Idempotent."""
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        self.teardowns += 1
        self.store.logout()
