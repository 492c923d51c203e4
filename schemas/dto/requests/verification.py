"""
Request DTOs for verification endpoints.

SendCodeRequest    — POST /verification/send
ResendCodeRequest  — POST /verification/resend
VerifyCodeRequest  — POST /verification/verify
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SendCodeRequest(BaseModel):
    """Request body for POST /verification/send."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr


class ResendCodeRequest(BaseModel):
    """Request body for POST /verification/resend."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr


class VerifyCodeRequest(BaseModel):
    """Request body for POST /verification/verify.

    ``code`` is the 6-digit OTP from the verification email. Surrounding
    whitespace is stripped; anything that is not six digits is rejected
    before it reaches the store.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    email: EmailStr
    code: str = Field(pattern=r"^[0-9]{6}$")
