"""Tests for account configuration loading."""

import json

import pytest

from inbox_code_fetcher.config import AccountConfig, load_account
from inbox_code_fetcher.constants import ENV_PASSWORD, ENV_USER, IMAP_HOST, IMAP_PORT
from inbox_code_fetcher.errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(ENV_USER, raising=False)
    monkeypatch.delenv(ENV_PASSWORD, raising=False)


@pytest.fixture
def account_file(tmp_path):
    path = tmp_path / "account.json"
    path.write_text(json.dumps({"user": "file@example.com", "password": "file-secret"}))
    return path


def test_explicit_values(tmp_path):
    account = load_account("me@example.com", "secret", path=tmp_path / "missing.json")
    assert account.user == "me@example.com"
    assert account.password == "secret"
    assert (account.host, account.port) == (IMAP_HOST, IMAP_PORT)


def test_environment(monkeypatch, tmp_path):
    monkeypatch.setenv(ENV_USER, "env@example.com")
    monkeypatch.setenv(ENV_PASSWORD, "env-secret")
    account = load_account(path=tmp_path / "missing.json")
    assert account.user == "env@example.com"
    assert account.password == "env-secret"


def test_file(account_file):
    account = load_account(path=account_file)
    assert account.user == "file@example.com"
    assert account.password == "file-secret"


def test_precedence(monkeypatch, account_file):
    monkeypatch.setenv(ENV_PASSWORD, "env-secret")
    account = load_account(user="cli@example.com", path=account_file)
    assert account.user == "cli@example.com"
    assert account.password == "env-secret"


def test_missing_credentials(tmp_path):
    with pytest.raises(ConfigError, match="Missing mailbox user and password"):
        load_account(path=tmp_path / "missing.json")


def test_missing_password_only(tmp_path):
    with pytest.raises(ConfigError, match="Missing mailbox password"):
        load_account(user="me@example.com", path=tmp_path / "missing.json")


def test_invalid_json(tmp_path):
    path = tmp_path / "account.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError, match="not valid JSON"):
        load_account(path=path)


def test_file_must_hold_object(tmp_path):
    path = tmp_path / "account.json"
    path.write_text("[]")
    with pytest.raises(ConfigError, match="JSON object"):
        load_account(path=path)


def test_repr_hides_password():
    account = AccountConfig(user="me@example.com", password="hunter2")
    assert "hunter2" not in repr(account)
    assert "me@example.com" in repr(account)
