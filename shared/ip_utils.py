"""
Request origin metadata recorded with each verification attempt.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

# Proxy headers checked in order; the first IP of a list wins.
_IP_HEADERS = ("X-Forwarded-For", "X-Real-IP")

MAX_USER_AGENT_LENGTH = 256


def get_client_ip(request: Request) -> Optional[str]:
    """Resolve the client IP from proxy headers, then the socket peer.

    Returns ``None`` when nothing usable is present.
    """
    for header in _IP_HEADERS:
        value = request.headers.get(header)
        if value:
            ip = value.split(",")[0].strip()
            if ip:
                return ip
    return request.client.host if request.client else None


def get_user_agent(request: Request) -> Optional[str]:
    """The ``User-Agent`` header, truncated, or ``None`` if absent/blank."""
    value = request.headers.get("User-Agent", "").strip()
    return value[:MAX_USER_AGENT_LENGTH] or None
