"""FastAPI application wiring for the account service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .api.errors import register_exception_handlers
from .api.routes import router as users_router
from .config import Settings, get_settings
from .domain.service import AccountService
from .repository import InMemoryAccountRepository
from .security.passwords import PasswordHasher

logger = logging.getLogger(__name__)


def build_account_service(settings: Settings) -> AccountService:
    """Create the account service and the directory it owns."""
    return AccountService(
        InMemoryAccountRepository(),
        PasswordHasher(rounds=settings.bcrypt_rounds),
        min_password_length=settings.min_password_length,
        max_name_length=settings.max_name_length,
    )


def create_app(
    settings: Settings | None = None,
    account_service: AccountService | None = None,
) -> FastAPI:
    """Build the FastAPI application; pass ``account_service`` to inject a prepared one."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialise the account directory for the app lifecycle."""
        if getattr(app.state, "account_service", None) is None:
            app.state.account_service = build_account_service(settings)
        logger.info("%s %s started", settings.app_name, settings.version)
        yield
        logger.info("%s shutting down", settings.app_name)

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.account_service = account_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset"],
        max_age=600,
    )
    register_exception_handlers(app)

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        """Return a minimal readiness indicator used by orchestration systems."""
        return {"status": "ok"}

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(users_router)
    return app


app = create_app()
