"""CLI entry point for Inbox Code Fetcher."""

from __future__ import annotations

import click

from .config import AccountConfig, load_account
from .constants import DEFAULT_MAX_WAIT, DEFAULT_RETRY_ATTEMPTS
from .display import (
    create_status,
    display_code_result,
    display_connection_check,
    display_failure,
    setup_logging,
)
from .errors import ConfigError
from .receiver import CodeReceiver

VERSION = "0.1.0"


def _account(user: str | None, password: str | None) -> AccountConfig:
    try:
        return load_account(user=user, password=password)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


def account_options(func):
    func = click.option("--password", default=None, help="Mailbox password or app-specific authorization code.")(func)
    func = click.option("-u", "--user", default=None, help="Mailbox address used to log in.")(func)
    return func


@click.group()
@click.version_option(version=VERSION, prog_name="inbox-code-fetcher")
def cli() -> None:
    """Inbox Code Fetcher - read email verification codes from an IMAP mailbox."""


@cli.command()
@click.argument("target")
@click.option(
    "-t",
    "--timeout",
    default=DEFAULT_MAX_WAIT,
    type=click.FloatRange(min=1),
    show_default=True,
    help="Seconds to wait for the code.",
)
@click.option(
    "-r",
    "--retries",
    default=DEFAULT_RETRY_ATTEMPTS,
    type=click.IntRange(min=1),
    show_default=True,
    help="Attempts when the mailbox cannot be reached.",
)
@click.option("--raw", is_flag=True, help="Print only the code on stdout.")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logs.")
@account_options
def fetch(
    target: str,
    timeout: float,
    retries: int,
    raw: bool,
    verbose: bool,
    user: str | None,
    password: str | None,
) -> None:
    """Wait for a verification code sent to TARGET and print it."""
    setup_logging(verbose)
    receiver = CodeReceiver(_account(user, password))

    with create_status(target, timeout):
        outcome = receiver.retrieve_with_retry(target, max_wait=timeout, attempts=retries)

    if not outcome.ok:
        display_failure(outcome.error)
        raise click.exceptions.Exit(1)

    if raw:
        click.echo(outcome.code)
    else:
        display_code_result(outcome)


@cli.command()
@click.option("-v", "--verbose", is_flag=True, help="Show debug logs.")
@account_options
def check(verbose: bool, user: str | None, password: str | None) -> None:
    """Test that the mailbox accepts an IMAP login."""
    setup_logging(verbose)
    result = CodeReceiver(_account(user, password)).test_connection()
    display_connection_check(result)
    if not result.success:
        raise click.exceptions.Exit(1)
