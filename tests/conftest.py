"""Shared fixtures for tests."""

from __future__ import annotations

import pytest

from helpers import TARGET, FakeClock, FakeStore
from inbox_code_fetcher.config import AccountConfig
from inbox_code_fetcher.session import RetrievalSession


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def account() -> AccountConfig:
    return AccountConfig(user="inbox@example.com", password="app-secret", host=FakeStore.host)


@pytest.fixture
def make_session(store: FakeStore, clock: FakeClock):
    def _make(target: str = TARGET, max_wait: float = 120, **kwargs) -> RetrievalSession:
        return RetrievalSession(
            store,
            target,
            max_wait,
            clock=clock.monotonic,
            sleep=clock.sleep,
            now=clock.now,
            **kwargs,
        )

    return _make
