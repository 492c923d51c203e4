"""
Verification session models.

One VerificationSession exists per email address at most. code_hash stores
SHA-256(code + salt); the plaintext code is never part of the model.
attempts is append-only while the session lives and is cleared when a
lockout auto-clears or a new code is issued.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class VerificationAttempt(BaseModel):
    """A single verify call that reached the hash comparison."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    outcome: AttemptOutcome
    origin_ip: Optional[str] = None
    user_agent: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.outcome is AttemptOutcome.FAILURE


class VerificationSession(BaseModel):
    """Mutable state for one email's verification lineage.

    Owned exclusively by the session store; callers get copies.
    """

    email: str
    code_hash: bytes = Field(repr=False)
    created_at: datetime
    expires_at: datetime
    attempts: list[VerificationAttempt] = Field(default_factory=list)
    locked: bool = False
    lock_until: Optional[datetime] = None
    resend_count: int = Field(default=0, ge=0)
    last_resend_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _lock_has_deadline(self) -> "VerificationSession":
        if self.locked and (
            self.lock_until is None or self.lock_until <= self.created_at
        ):
            raise ValueError("a locked session needs lock_until after created_at")
        return self

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def lock_active(self, now: datetime) -> bool:
        """True while a lockout is in effect and its deadline has not passed."""
        return self.locked and self.lock_until is not None and now < self.lock_until

    def lock_elapsed(self, now: datetime) -> bool:
        """True when the session is flagged locked but the deadline has passed."""
        return self.locked and not self.lock_active(now)

    @property
    def failed_count(self) -> int:
        return sum(1 for attempt in self.attempts if attempt.failed)
