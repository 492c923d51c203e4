"""
Verification service: the caller side of the session store.

The store never transmits codes. This service takes the plaintext code that
create/resend hand back, passes it straight to the EmailProvider and drops
it; nothing here keeps or logs it.
"""

from __future__ import annotations

import math
from typing import Optional

from errors import EmailDeliveryError
from infrastructure.email.protocol import EmailProvider
from schemas.models.results import (
    Resent,
    ResendResult,
    VerificationStats,
    VerifyResult,
)
from services.verification_store import VerificationSessionStore, normalize_email
from shared.logging import get_logger, mask_email

log = get_logger(__name__)


class VerificationService:
    def __init__(
        self, store: VerificationSessionStore, email_provider: EmailProvider
    ) -> None:
        self._store = store
        self._email = email_provider

    @property
    def code_ttl_seconds(self) -> int:
        return self._store.code_ttl_seconds

    @property
    def _expires_in_minutes(self) -> int:
        return max(1, math.ceil(self._store.code_ttl_seconds / 60))

    async def _deliver(self, email: str, code: str) -> None:
        delivered = await self._email.send_verification_email(
            email, code, self._expires_in_minutes
        )
        if not delivered:
            log.error("verification_delivery_failed", email=mask_email(email))
            raise EmailDeliveryError(
                "Failed to send verification email. Please try again."
            )

    async def send_code(self, email: str) -> int:
        """Start a new verification for *email* and mail the code.

        Returns the code lifetime in seconds.
        """
        code, session = await self._store.create(email)
        await self._deliver(session.email, code)
        return self._store.code_ttl_seconds

    async def resend_code(self, email: str) -> ResendResult:
        """Re-issue the code when policy allows and mail it.

        The new code only replaces the old one once it has been delivered; on
        EmailDeliveryError the session is left as it was, so the user can
        retry straight away and the previously mailed code keeps working.
        The returned Resent still carries the code; routes must not echo it.
        """
        async with self._store.staged_resend(email) as result:
            if isinstance(result, Resent):
                await self._deliver(normalize_email(email), result.code)
        return result

    async def verify_code(
        self,
        email: str,
        code: str,
        origin_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> VerifyResult:
        return await self._store.verify(
            email, code, origin_ip=origin_ip, user_agent=user_agent
        )

    async def status(self, email: str) -> VerificationStats:
        return await self._store.stats(email)
