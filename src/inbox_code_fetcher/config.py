"""Account configuration loading."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from .constants import ACCOUNT_PATH, ENV_PASSWORD, ENV_USER, IMAP_HOST, IMAP_PORT
from .errors import ConfigError


@dataclass(frozen=True)
class AccountConfig:
    """Mailbox identity plus the (fixed) store endpoint."""

    user: str
    password: str
    host: str = IMAP_HOST
    port: int = IMAP_PORT

    def __repr__(self) -> str:
        return f"AccountConfig(user={self.user!r}, host={self.host!r}, port={self.port})"


def _read_account_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Account file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Account file {path} must contain a JSON object")
    return data


def load_account(
    user: str | None = None,
    password: str | None = None,
    path: Path | None = None,
) -> AccountConfig:
    """Resolve the account from explicit values, then environment, then file.

    Raises ConfigError when the address or password cannot be found.
    """
    path = Path(path) if path is not None else ACCOUNT_PATH
    file_data = _read_account_file(path)

    user = user or os.environ.get(ENV_USER) or file_data.get("user")
    password = password or os.environ.get(ENV_PASSWORD) or file_data.get("password")

    missing = [name for name, value in (("user", user), ("password", password)) if not value]
    if missing:
        raise ConfigError(
            f"Missing mailbox {' and '.join(missing)}.\n"
            f"Pass --user/--password, set {ENV_USER}/{ENV_PASSWORD}, "
            "or save them as JSON in:\n"
            f"  {path}"
        )

    return AccountConfig(user=str(user).strip(), password=str(password))
