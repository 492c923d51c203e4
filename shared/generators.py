"""
Verification code generators. Side-effect-free functions.

Every generator draws from the ``secrets`` module; a general-purpose PRNG
is never acceptable for codes that prove control of an address.
"""

from __future__ import annotations

import secrets
from typing import Callable

CodeGenerator = Callable[[], str]

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp_code() -> str:
    """Generate a cryptographically secure 6-digit code.

    The first digit is never zero, so every code is in ``100000..999999``.
    """
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))
