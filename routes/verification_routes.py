"""
Email verification endpoints.

POST /verification/send    — start a verification and mail a code
POST /verification/verify  — submit a code
POST /verification/resend  — request a replacement code
GET  /verification/status  — countdown / attempts / resend view for the UI

The store reports policy outcomes as values; this module is the only place
they become HTTP errors. Codes are never echoed in a response.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import EmailStr

from config import AppSettings
from dependencies import get_settings, get_verification_service
from errors import GoneError, LockedError, NotFoundError, RateLimitError, ValidationError
from schemas.dto.requests.verification import (
    ResendCodeRequest,
    SendCodeRequest,
    VerifyCodeRequest,
)
from schemas.dto.responses.verification import (
    CodeSentResponse,
    StatusResponse,
    VerifiedResponse,
)
from schemas.models.results import (
    Cooldown,
    Expired,
    Invalid,
    Locked,
    LockedOut,
    NoSession,
    RateLimited,
    ResendLimitReached,
    Success,
)
from services.verification_service import VerificationService
from services.verification_store import normalize_email
from shared.datetime_utils import to_iso
from shared.ip_utils import get_client_ip, get_user_agent

router = APIRouter(prefix="/verification", tags=["verification"])

_NO_SESSION_MESSAGE = "No verification session found. Please request a new code."


def _raise_locked(lock_until) -> None:
    raise LockedError(
        "Too many failed attempts. Verification is temporarily locked.",
        details={"lock_until": to_iso(lock_until), "attempts_remaining": 0},
    )


@router.post(
    "/send", status_code=status.HTTP_202_ACCEPTED, response_model=CodeSentResponse
)
async def send_code(
    body: SendCodeRequest,
    service: VerificationService = Depends(get_verification_service),
) -> CodeSentResponse:
    expires_in = await service.send_code(body.email)
    return CodeSentResponse(email=normalize_email(body.email), expires_in=expires_in)


@router.post("/verify", response_model=VerifiedResponse)
async def verify_code(
    body: VerifyCodeRequest,
    request: Request,
    service: VerificationService = Depends(get_verification_service),
) -> VerifiedResponse:
    result = await service.verify_code(
        body.email,
        body.code,
        origin_ip=get_client_ip(request),
        user_agent=get_user_agent(request),
    )

    if isinstance(result, Success):
        return VerifiedResponse()
    if isinstance(result, NoSession):
        raise NotFoundError(_NO_SESSION_MESSAGE)
    if isinstance(result, Expired):
        raise GoneError("Verification code has expired. Please request a new code.")
    if isinstance(result, (Locked, LockedOut)):
        _raise_locked(result.lock_until)
    if isinstance(result, RateLimited):
        raise RateLimitError(
            "Too many attempts. Please try again later.",
            details={"reset_time": to_iso(result.reset_time)},
        )
    if isinstance(result, Invalid):
        raise ValidationError(
            f"Invalid verification code. {result.remaining} attempts remaining.",
            field="code",
            details={"attempts_remaining": result.remaining},
        )
    raise TypeError(f"unhandled verify result: {result.status}")


@router.post(
    "/resend", status_code=status.HTTP_202_ACCEPTED, response_model=CodeSentResponse
)
async def resend_code(
    body: ResendCodeRequest,
    service: VerificationService = Depends(get_verification_service),
) -> CodeSentResponse:
    result = await service.resend_code(body.email)

    if isinstance(result, NoSession):
        raise NotFoundError(_NO_SESSION_MESSAGE)
    if isinstance(result, Locked):
        _raise_locked(result.lock_until)
    if isinstance(result, ResendLimitReached):
        raise RateLimitError(
            "Resend limit reached. Please start a new verification.",
            details={"resend_limit_reached": True},
        )
    if isinstance(result, Cooldown):
        raise RateLimitError(
            f"Please wait {result.wait_remaining} seconds before requesting a new code.",
            details={"retry_after": result.wait_remaining},
        )

    return CodeSentResponse(
        email=normalize_email(body.email),
        expires_in=service.code_ttl_seconds,
        message="New verification code sent!",
    )


@router.get("/status", response_model=StatusResponse)
async def verification_status(
    email: EmailStr = Query(...),
    settings: AppSettings = Depends(get_settings),
    service: VerificationService = Depends(get_verification_service),
) -> StatusResponse:
    if not settings.verification_status_enabled:
        raise NotFoundError("Not found")
    stats = await service.status(email)
    return StatusResponse(**stats.model_dump())
