"""Application factory helpers to keep app/main.py lightweight."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse, RedirectResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from app.api.router import api_router
from app.core.config import settings
from app.core.database import get_db
from app.core.error_handlers import register_exception_handlers
from app.core.logging_config import setup_logging
from app.core.middleware.logging_middleware import LoggingMiddleware
from app.core.middleware.rate_limit import limiter
from app.core.monitoring import setup_monitoring
from app.modules.ledger import build_ledger_client

logger = logging.getLogger(__name__)


class HostRedirectMiddleware(LoggingMiddleware):
    """Enforce allowed hosts and HTTPS before the rest of the stack."""

    def __init__(self, app: FastAPI, allowed_hosts: list[str] | None = None):
        super().__init__(app)
        self.allowed_hosts = allowed_hosts or ["*"]

    async def dispatch(self, request: Request, call_next):
        host = (request.headers.get("host") or "").split(":")[0]
        if self.allowed_hosts and not (
            len(self.allowed_hosts) == 1 and self.allowed_hosts[0] == "*"
        ):
            if host and host not in self.allowed_hosts:
                return JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={"detail": "Invalid host"},
                )
        if request.url.scheme != "https":
            url = request.url.replace(scheme="https")
            return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
        return await super().dispatch(request, call_next)


def _configure_app(app: FastAPI) -> None:
    allowed_hosts = getattr(settings, "allowed_hosts", None) or ["*"]
    if allowed_hosts and not (len(allowed_hosts) == 1 and allowed_hosts[0] == "*"):
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)

    if settings.force_https:
        app.add_middleware(HostRedirectMiddleware, allowed_hosts=allowed_hosts)
        app.add_middleware(HTTPSRedirectMiddleware)

    app.add_middleware(LoggingMiddleware)

    origins = settings.cors_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)


def _register_routes(app: FastAPI) -> None:
    @app.get("/livez", tags=["Health"])
    async def livez():
        return {"status": "ok"}

    @app.get("/readyz", tags=["Health"])
    async def readyz(db: Session = Depends(get_db)):
        health_status = {"database": "unknown", "ledger": "disabled"}
        try:
            db.execute(text("SELECT 1"))
            health_status["database"] = "connected"
        except SQLAlchemyError as e:
            logger.error(f"Readiness check failed (Database): {e}")
            health_status["database"] = "disconnected"
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=health_status
            )

        ledger = getattr(app.state, "ledger", None)
        if ledger is not None and ledger.enabled:
            health_status["ledger"] = "configured"
        return {"status": "ready", "details": health_status}


def _lifespan_factory():
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        app.state.ledger = build_ledger_client(settings)
        logger.info(
            "Ledger attestation %s (corroboration=%s)",
            "enabled" if settings.ledger_enabled else "disabled",
            settings.ledger_corroboration,
        )

        yield

        # Shutdown
        await app.state.ledger.aclose()

    return lifespan


def create_app() -> FastAPI:
    """
    Application Factory to create and configure the FastAPI application.
    Integrates Logging, Error Handling, Rate Limiting, and Middleware.
    """
    setup_logging(
        log_level=getattr(settings, "log_level", "INFO"),
        log_dir=getattr(settings, "log_dir", "logs"),
        app_name="materials_api",
        max_bytes=10 * 1024 * 1024,  # 10 MB
        backup_count=5,
        use_json=getattr(settings, "use_json_logs", False),
        use_colors=True,
    )

    app = FastAPI(
        title="Academic Materials API",
        description="Upload, collaboration and integrity-checked retrieval of academic materials",
        version="1.0.0",
        lifespan=_lifespan_factory(),
        default_response_class=ORJSONResponse,
    )

    app.state.environment = settings.environment

    # RateLimitExceeded is handled globally in register_exception_handlers.
    app.state.limiter = limiter
    if hasattr(limiter, "enabled"):
        limiter.enabled = settings.environment.lower() != "test" and (
            os.getenv("APP_ENV", settings.environment).lower() != "test"
        )

    _configure_app(app)
    _register_routes(app)
    register_exception_handlers(app)
    setup_monitoring(app)

    logger.info("Application startup complete")

    return app


__all__ = ["create_app"]
