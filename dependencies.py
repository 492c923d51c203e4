"""
FastAPI dependency providers.

The store, the email provider and the service are built once in
app.create_app() and parked on app.state; these providers hand them to routes.
"""

from __future__ import annotations

from fastapi import Request

from config import AppSettings
from services.verification_service import VerificationService
from services.verification_store import VerificationSessionStore


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_verification_store(request: Request) -> VerificationSessionStore:
    return request.app.state.verification_store


def get_verification_service(request: Request) -> VerificationService:
    return request.app.state.verification_service
