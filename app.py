"""
FastAPI application factory.
create_app() is the single entry point for building the app, and the
composition root for the verification store: it owns the store's lifecycle
(sweeper started on startup, cancelled on shutdown).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.protocol import EmailProvider
from infrastructure.email.zeptomail import ZeptoMailProvider
from routes.health_routes import router as health_router
from routes.verification_routes import router as verification_router
from services.verification_service import VerificationService
from services.verification_store import VerificationSessionStore
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def create_app(
    settings: Optional[AppSettings] = None,
    store: Optional[VerificationSessionStore] = None,
    email_provider: Optional[EmailProvider] = None,
) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging.log_level, settings.logging.log_format)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
        )

    if store is None:
        store = VerificationSessionStore(settings.verification)
    if email_provider is None:
        email_provider = ZeptoMailProvider(
            settings.email, app_name=settings.app_name, app_url=settings.app_url
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        app.state.settings = settings
        app.state.verification_store = store
        app.state.verification_service = VerificationService(store, email_provider)
        await store.start()

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        # In-flight requests finish under their own key locks; only the
        # sweeper is cancelled.
        await store.stop()
        await email_provider.aclose()
        log.info("app_shutdown_complete")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(verification_router)

    return app
