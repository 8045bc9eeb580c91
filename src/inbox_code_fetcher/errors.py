"""Exception hierarchy for Inbox Code Fetcher."""

from __future__ import annotations


class InboxCodeError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(InboxCodeError):
    """Account configuration is missing or malformed."""


class StoreConnectionError(InboxCodeError, ConnectionError):
    """The mail store could not be reached, authenticated, or was lost.

    Fatal for a single retrieval call.  The caller may retry the whole call.
    """

    def __init__(self, message: str, host: str = "", port: int | None = None) -> None:
        self.host = host
        self.port = port
        if host:
            where = f"{host}:{port}" if port else host
            message = (
                f"IMAP connection to {where} failed: {message} "
                "(check that IMAP access is enabled for the mailbox and that "
                "the account address and app password are correct)"
            )
        super().__init__(message)


class CodeTimeoutError(InboxCodeError, TimeoutError):
    """No verification code was found before the deadline."""

    def __init__(self, target: str, max_wait: float) -> None:
        self.target = target
        self.max_wait = max_wait
        super().__init__(
            f"Timed out after {max_wait:g}s: no verification code found for {target}"
        )


class TransientStoreError(InboxCodeError):
    """A single search or fetch round trip failed.  Recovered on the next tick."""
