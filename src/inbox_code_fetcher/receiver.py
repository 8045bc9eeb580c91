"""Public entry points: fetch a verification code, probe the connection."""

from __future__ import annotations

import logging
from typing import Callable

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import AccountConfig
from .constants import DEFAULT_MAX_WAIT, DEFAULT_RETRY_ATTEMPTS, RETRY_WAIT_MAX, RETRY_WAIT_MIN
from .errors import StoreConnectionError
from .models import ConnectionCheck, RetrievalOutcome
from .session import RetrievalSession
from .store import MailStore

logger = logging.getLogger(__name__)


class CodeReceiver:
    """Retrieves verification codes delivered to one mailbox."""

    def __init__(
        self,
        account: AccountConfig,
        store_factory: Callable[[AccountConfig], MailStore] = MailStore,
        **session_options,
    ) -> None:
        self.account = account
        self._store_factory = store_factory
        self._session_options = session_options

    def new_session(self, target: str, max_wait: float = DEFAULT_MAX_WAIT) -> RetrievalSession:
        store = self._store_factory(self.account)
        return RetrievalSession(store, target, max_wait, **self._session_options)

    def retrieve(self, target: str, max_wait: float = DEFAULT_MAX_WAIT) -> RetrievalOutcome:
        """Run one session and return its outcome without raising on failure."""
        logger.info("IMAP server: %s:%s", self.account.host, self.account.port)
        return self.new_session(target, max_wait).execute()

    def retrieve_code(self, target: str, max_wait: float = DEFAULT_MAX_WAIT) -> str:
        """Return the code sent to ``target``.

        Raises StoreConnectionError when the mailbox cannot be reached and
        CodeTimeoutError when nothing matched within ``max_wait`` seconds.
        """
        return self.retrieve(target, max_wait).unwrap()

    def retrieve_with_retry(
        self,
        target: str,
        max_wait: float = DEFAULT_MAX_WAIT,
        attempts: int = DEFAULT_RETRY_ATTEMPTS,
        wait=None,
    ) -> RetrievalOutcome:
        """Like ``retrieve``, re-running the whole call after connection failures.

        Timeouts are not retried.
        """
        retrying = Retrying(
            retry=retry_if_exception_type(StoreConnectionError),
            wait=wait or wait_exponential(multiplier=1, min=RETRY_WAIT_MIN, max=RETRY_WAIT_MAX),
            stop=stop_after_attempt(max(1, attempts)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        def _attempt() -> RetrievalOutcome:
            outcome = self.retrieve(target, max_wait)
            if isinstance(outcome.error, StoreConnectionError):
                raise outcome.error
            return outcome

        try:
            return retrying(_attempt)
        except StoreConnectionError as exc:
            return RetrievalOutcome(error=exc)

    def retrieve_code_with_retry(
        self,
        target: str,
        max_wait: float = DEFAULT_MAX_WAIT,
        attempts: int = DEFAULT_RETRY_ATTEMPTS,
    ) -> str:
        return self.retrieve_with_retry(target, max_wait, attempts).unwrap()

    def test_connection(self) -> ConnectionCheck:
        """Connect, log in and log out.  Never raises for store failures."""
        store = self._store_factory(self.account)
        try:
            store.connect()
        except StoreConnectionError as exc:
            logger.error("%s", exc)
            return ConnectionCheck(success=False, message=str(exc))
        finally:
            store.logout()
        return ConnectionCheck(
            success=True,
            message=f"Connected to {self.account.host}:{self.account.port} as {self.account.user}",
        )
