"""
Response DTOs for verification endpoints.

CodeSentResponse    — POST /verification/send, POST /verification/resend (202)
VerifiedResponse    — POST /verification/verify (200)
StatusResponse      — GET /verification/status (200)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class CodeSentResponse(BaseModel):
    """A code is on its way. Never contains the code itself."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    expires_in: int  # seconds
    message: str = "Verification code sent to your email address"


class VerifiedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    verified: bool = True
    message: str = "Email verified successfully!"


class StatusResponse(BaseModel):
    """Mirror of VerificationStats for GET /verification/status."""

    model_config = ConfigDict(populate_by_name=True)

    exists: bool
    time_remaining: int
    attempts_remaining: int
    resend_count: int
    locked: bool
    can_resend: bool
