"""
Result variants returned by the verification session store.

Every expected policy outcome is a value, never an exception. Callers branch
on the concrete class (or on ``status``, which is stable across the wire).

VerifyResult  — NoSession | Expired | Locked | RateLimited | Success
                | Invalid | LockedOut
ResendResult  — NoSession | Locked | ResendLimitReached | Cooldown | Resent
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Result(BaseModel):
    model_config = ConfigDict(frozen=True)


class NoSession(_Result):
    status: Literal["no_session"] = "no_session"


class Expired(_Result):
    status: Literal["expired"] = "expired"


class Locked(_Result):
    """The session is locked out and ``lock_until`` has not passed yet."""

    status: Literal["locked"] = "locked"
    lock_until: datetime


class RateLimited(_Result):
    status: Literal["rate_limited"] = "rate_limited"
    reset_time: datetime


class Success(_Result):
    status: Literal["success"] = "success"


class Invalid(_Result):
    status: Literal["invalid"] = "invalid"
    remaining: int


class LockedOut(_Result):
    """This call's failure exhausted the attempts and started a lockout."""

    status: Literal["locked_out"] = "locked_out"
    lock_until: datetime


class ResendLimitReached(_Result):
    status: Literal["resend_limit_reached"] = "resend_limit_reached"


class Cooldown(_Result):
    status: Literal["cooldown"] = "cooldown"
    wait_remaining: int  # seconds, rounded up


class Resent(_Result):
    status: Literal["resent"] = "resent"
    # Plaintext is handed to the caller once; keep it out of reprs and logs.
    code: str = Field(repr=False)


class VerificationStats(_Result):
    """Read-only composite view of one email's session."""

    exists: bool
    time_remaining: int  # seconds
    attempts_remaining: int
    resend_count: int
    locked: bool
    can_resend: bool


VerifyResult = Union[
    NoSession, Expired, Locked, RateLimited, Success, Invalid, LockedOut
]
ResendResult = Union[NoSession, Locked, ResendLimitReached, Cooldown, Resent]
