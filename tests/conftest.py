"""
Shared fixtures for unit and integration tests.

The store never reads the wall clock directly, so every test drives time
through FakeClock and advances it explicitly.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from config import VerificationSettings
from services.verification_store import VerificationSessionStore

TEST_SALT = "test-salt"


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class CodeSequence:
    """Hands out the given codes in order, then keeps counting upwards."""

    def __init__(self, *codes: str) -> None:
        self._codes = list(codes)
        self._next = 200000

    def __call__(self) -> str:
        if self._codes:
            return self._codes.pop(0)
        self._next += 1
        return str(self._next)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def codes():
    return CodeSequence("111111", "222222", "333333", "444444", "555555")


@pytest.fixture
def make_store(clock, codes):
    """Build a store on the fake clock; keyword args override settings."""

    def _make(**overrides) -> VerificationSessionStore:
        values = {"verification_code_salt": TEST_SALT}
        values.update(overrides)
        return VerificationSessionStore(
            VerificationSettings(**values), code_generator=codes, clock=clock
        )

    return _make


@pytest.fixture
def store(make_store):
    return make_store()
