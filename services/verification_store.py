"""
In-process verification session store.

Holds at most one VerificationSession per email and runs the whole session
state machine: issuing codes, verifying them, lockout after repeated
failures, a rolling per-email rate limit, and resend cooldown/limits.

Concurrency: every operation that reads and then writes a session runs under
that email's asyncio.Lock (see KeyedLock), so two verify calls for one email
can never both see "one attempt left". Different emails never share a lock.
The sweep task takes the same per-key lock before deleting anything.
The locks are asyncio.Lock, so the store must be driven from the one event
loop it was started on: call it from async handlers only, never from sync
route handlers or other threads.

The clock, code generator and hasher are injected. Failures in the last two
raise VerificationFault; every other outcome is a result value.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from datetime import datetime
from typing import AsyncIterator, Optional

from config import VerificationSettings
from errors import VerificationFault
from schemas.models.results import (
    Cooldown,
    Expired,
    Invalid,
    Locked,
    LockedOut,
    NoSession,
    RateLimited,
    Resent,
    ResendLimitReached,
    ResendResult,
    Success,
    VerificationStats,
    VerifyResult,
)
from schemas.models.verification import (
    AttemptOutcome,
    VerificationAttempt,
    VerificationSession,
)
from shared.crypto import CodeHasher, digests_match, make_code_hasher
from shared.datetime_utils import Clock, seconds_until, utc_now
from shared.generators import OTP_MAX, OTP_MIN, CodeGenerator, generate_otp_code
from shared.logging import get_logger, hash_ip, mask_email

log = get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class KeyedLock:
    """One asyncio.Lock per key, dropped again once nobody holds or awaits it.

    Only excludes tasks running on a single event loop.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class VerificationSessionStore:
    def __init__(
        self,
        settings: VerificationSettings,
        *,
        hasher: Optional[CodeHasher] = None,
        code_generator: CodeGenerator = generate_otp_code,
        clock: Clock = utc_now,
    ) -> None:
        self._code_ttl = settings.code_ttl
        self._max_attempts = settings.verification_max_attempts
        self._lock_duration = settings.lock_duration
        self._resend_cooldown = settings.resend_cooldown
        self._max_resends = settings.verification_max_resends
        self._rate_window = settings.rate_limit_window
        self._max_requests = settings.verification_max_requests_per_window
        self._sweep_interval = settings.verification_sweep_interval_seconds

        self._hash_code = hasher or make_code_hasher(settings.verification_code_salt)
        self._generate_code = code_generator
        self._now = clock

        self._sessions: dict[str, VerificationSession] = {}
        self._locks = KeyedLock()
        self._sweeper: Optional[asyncio.Task] = None

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def code_ttl_seconds(self) -> int:
        return int(self._code_ttl.total_seconds())

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def __len__(self) -> int:
        return len(self._sessions)

    # ── Crypto leaves ────────────────────────────────────────────────────────

    def _issue_code(self) -> tuple[str, bytes]:
        """Draw a fresh code and its digest, or raise VerificationFault."""
        try:
            code = self._generate_code()
            if not (code.isdigit() and OTP_MIN <= int(code) <= OTP_MAX):
                raise ValueError("code generator returned a malformed code")
            return code, self._hash_code(code)
        except Exception as exc:
            log.error(
                "verification_code_issue_failed",
                error_type=type(exc).__name__,
            )
            raise VerificationFault("Could not issue a verification code") from exc

    def _digest_candidate(self, candidate: str) -> bytes:
        try:
            return self._hash_code(candidate)
        except Exception as exc:
            log.error(
                "verification_hash_failed",
                error_type=type(exc).__name__,
            )
            raise VerificationFault("Could not check the verification code") from exc

    # ── Policy helpers (callers hold the key lock) ───────────────────────────

    def _unlock(self, session: VerificationSession) -> None:
        session.locked = False
        session.lock_until = None
        session.attempts = []
        log.info("verification_lock_cleared", email=mask_email(session.email))

    def _is_stale(self, session: VerificationSession, now: datetime) -> bool:
        """Expired and not held by an active lockout."""
        return session.is_expired(now) and not session.lock_active(now)

    def _rate_limit_reset(
        self, session: VerificationSession, now: datetime
    ) -> Optional[datetime]:
        recent = [
            attempt.timestamp
            for attempt in session.attempts
            if now - attempt.timestamp < self._rate_window
        ]
        if len(recent) >= self._max_requests:
            return min(recent) + self._rate_window
        return None

    def _attempts_remaining(self, session: VerificationSession) -> int:
        return max(0, self._max_attempts - session.failed_count)

    # ── Public operations ────────────────────────────────────────────────────

    async def create(self, email: str) -> tuple[str, VerificationSession]:
        """Issue a new code for *email*, replacing any existing session.

        Returns the plaintext code (the only time it is available) and a copy
        of the new session.
        """
        key = normalize_email(email)
        async with self._locks.hold(key):
            code, code_hash = self._issue_code()
            now = self._now()
            session = VerificationSession(
                email=key,
                code_hash=code_hash,
                created_at=now,
                expires_at=now + self._code_ttl,
            )
            replaced = self._sessions.get(key) is not None
            self._sessions[key] = session
            log.info(
                "verification_session_created",
                email=mask_email(key),
                replaced=replaced,
                expires_at=session.expires_at.isoformat(),
            )
            return code, session.model_copy(deep=True)

    async def lookup(self, email: str) -> Optional[VerificationSession]:
        """Return a copy of the live session for *email*, or ``None``.

        Expired sessions are deleted here unless a lockout is still active;
        letting the code expire must not lift a lockout.
        """
        key = normalize_email(email)
        async with self._locks.hold(key):
            session = self._sessions.get(key)
            if session is None:
                return None
            if self._is_stale(session, self._now()):
                del self._sessions[key]
                log.debug("verification_session_expired", email=mask_email(key))
                return None
            return session.model_copy(deep=True)

    async def verify(
        self,
        email: str,
        candidate_code: str,
        origin_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> VerifyResult:
        key = normalize_email(email)
        async with self._locks.hold(key):
            session = self._sessions.get(key)
            if session is None:
                return NoSession()

            now = self._now()
            if session.locked:
                if session.lock_active(now):
                    return Locked(lock_until=session.lock_until)
                self._unlock(session)

            if session.is_expired(now):
                del self._sessions[key]
                log.info("verification_code_expired", email=mask_email(key))
                return Expired()

            reset_time = self._rate_limit_reset(session, now)
            if reset_time is not None:
                log.warning(
                    "verification_rate_limited",
                    email=mask_email(key),
                    ip_hash=hash_ip(origin_ip),
                    reset_time=reset_time.isoformat(),
                )
                return RateLimited(reset_time=reset_time)

            candidate_hash = self._digest_candidate(candidate_code)
            matched = digests_match(candidate_hash, session.code_hash)
            outcome = AttemptOutcome.SUCCESS if matched else AttemptOutcome.FAILURE
            session.attempts.append(
                VerificationAttempt(
                    timestamp=now,
                    outcome=outcome,
                    origin_ip=origin_ip,
                    user_agent=user_agent,
                )
            )

            if matched:
                del self._sessions[key]
                log.info("verification_succeeded", email=mask_email(key))
                return Success()

            remaining = self._max_attempts - session.failed_count
            if remaining <= 0:
                session.locked = True
                session.lock_until = now + self._lock_duration
                log.warning(
                    "verification_locked_out",
                    email=mask_email(key),
                    ip_hash=hash_ip(origin_ip),
                    lock_until=session.lock_until.isoformat(),
                )
                return LockedOut(lock_until=session.lock_until)

            log.info(
                "verification_code_invalid",
                email=mask_email(key),
                ip_hash=hash_ip(origin_ip),
                remaining=remaining,
            )
            return Invalid(remaining=remaining)

    async def resend(self, email: str) -> ResendResult:
        """Issue a replacement code within the existing session's limits."""
        async with self.staged_resend(email) as result:
            return result

    @asynccontextmanager
    async def staged_resend(self, email: str) -> AsyncIterator[ResendResult]:
        """Resend, committing the new code only if the block exits cleanly.

        The key lock is held for the whole block, so the caller can deliver
        the code first: if delivery raises, the session keeps its previous
        code, expiry, resend count and cooldown anchor.
        """
        key = normalize_email(email)
        async with self._locks.hold(key):
            session = self._sessions.get(key)
            if session is None:
                yield NoSession()
                return

            now = self._now()
            if session.locked:
                if session.lock_active(now):
                    yield Locked(lock_until=session.lock_until)
                    return
                self._unlock(session)

            if session.resend_count >= self._max_resends:
                yield ResendLimitReached()
                return

            if session.last_resend_at is not None:
                cooldown_ends = session.last_resend_at + self._resend_cooldown
                if now < cooldown_ends:
                    yield Cooldown(
                        wait_remaining=seconds_until(cooldown_ends, now, round_up=True)
                    )
                    return

            # Nothing is written until the new code and digest both exist
            # and the block has returned.
            code, code_hash = self._issue_code()
            yield Resent(code=code)

            session.code_hash = code_hash
            session.expires_at = now + self._code_ttl
            session.resend_count += 1
            session.last_resend_at = now
            session.attempts = [a for a in session.attempts if not a.failed]
            log.info(
                "verification_code_resent",
                email=mask_email(key),
                resend_count=session.resend_count,
            )

    async def stats(self, email: str) -> VerificationStats:
        """Composite read-only view; never deletes, never unlocks."""
        key = normalize_email(email)
        async with self._locks.hold(key):
            session = self._sessions.get(key)
            now = self._now()
            if session is None or self._is_stale(session, now):
                return VerificationStats(
                    exists=False,
                    time_remaining=0,
                    attempts_remaining=self._max_attempts,
                    resend_count=0,
                    locked=False,
                    can_resend=False,
                )

            locked = session.lock_active(now)
            if session.lock_elapsed(now):
                # The next verify/resend clears attempts along with the lock.
                attempts_remaining = self._max_attempts
            else:
                attempts_remaining = self._attempts_remaining(session)

            cooling = (
                session.last_resend_at is not None
                and now < session.last_resend_at + self._resend_cooldown
            )
            return VerificationStats(
                exists=True,
                time_remaining=seconds_until(session.expires_at, now),
                attempts_remaining=attempts_remaining,
                resend_count=session.resend_count,
                locked=locked,
                can_resend=(
                    not locked
                    and session.resend_count < self._max_resends
                    and not cooling
                ),
            )

    async def sweep(self) -> int:
        """Delete every expired session without an active lockout.

        Returns the number of sessions removed.
        """
        removed = 0
        for key in list(self._sessions):
            async with self._locks.hold(key):
                session = self._sessions.get(key)
                if session is not None and self._is_stale(session, self._now()):
                    del self._sessions[key]
                    removed += 1
        if removed:
            log.info(
                "verification_sweep_completed",
                removed=removed,
                remaining=len(self._sessions),
            )
        return removed

    # ── Lifecycle ────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Start the periodic sweep task. Calling it twice is a no-op."""
        if self.sweeper_running:
            return
        self._sweeper = asyncio.create_task(
            self._sweep_forever(), name="verification-sweeper"
        )
        log.info("verification_sweeper_started", interval_seconds=self._sweep_interval)

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        log.info("verification_sweeper_stopped")

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                await self.sweep()
            except Exception as e:
                # Keep the schedule alive; the next pass retries.
                log.error(
                    "verification_sweep_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
