"""EmailProvider protocol. The verification service depends on this, not on ZeptoMail."""

from typing import Protocol


class EmailProvider(Protocol):
    async def send_verification_email(
        self, email: str, otp_code: str, expires_in_minutes: int
    ) -> bool: ...

    async def aclose(self) -> None: ...
