from __future__ import annotations

import logging
import sys
import threading
from contextlib import asynccontextmanager
from urllib.parse import urlparse

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s [%(name)s] %(message)s",
    stream=sys.stdout,
)

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError

from guestbook.body_limit import BodySizeLimitMiddleware
from guestbook.db.session import init_db, make_engine, make_session_factory
from guestbook.routers.admin import router as admin_router
from guestbook.routers.entries import router as entries_router
from guestbook.routers.pages import router as pages_router
from guestbook.security import INSECURE_TOKENS, AdminUnauthorized
from guestbook.services.notifications import verify_smtp
from guestbook.settings import DEV_ADMIN_TOKEN, Settings, get_settings

log = logging.getLogger(__name__)

LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}


def validate_security_settings(settings: Settings) -> None:
    """Refuse to serve a public deployment with a default/weak admin token."""
    if settings.admin_token not in INSECURE_TOKENS:
        return

    is_local = urlparse(settings.base_url).hostname in LOCAL_HOSTS
    if is_local or settings.allow_insecure:
        log.warning(
            "SECURITY WARNING: ADMIN_TOKEN is set to a default/weak value. "
            "Set ADMIN_TOKEN before exposing this service."
        )
        return

    log.error(
        "SECURITY ERROR - Cannot start with insecure configuration:\n"
        f"  - ADMIN_TOKEN is set to a default/weak value while serving {settings.base_url}\n\n"
        "To fix: set ADMIN_TOKEN to a long random value.\n"
        "To bypass (DEVELOPMENT ONLY): Set GUESTBOOK_ALLOW_INSECURE=true"
    )
    sys.exit(1)


def log_config_status(settings: Settings) -> None:
    def present(value: str) -> str:
        return "set" if value else "missing/empty"

    token_state = "(DEV default - please set)" if settings.admin_token == DEV_ADMIN_TOKEN else "(set)"
    port_state = str(settings.smtp_port)
    secure_state = (
        str(settings.smtp_secure).lower()
        if settings.smtp_secure is not None
        else f"unset (derived from port: {str(settings.smtp_use_ssl).lower()})"
    )
    pass_state = f"set (len {len(settings.smtp_pass)})" if settings.smtp_pass else "missing/empty"

    log.info(
        "Configuration:\n"
        f"  PUBLIC_BASE_URL: {settings.base_url}\n"
        f"  DB_PATH: {settings.db_path}\n"
        f"  ADMIN_TOKEN: {token_state}\n"
        f"  SMTP_HOST: {present(settings.smtp_host)}\n"
        f"  SMTP_PORT: {port_state}\n"
        f"  SMTP_SECURE: {secure_state}\n"
        f"  SMTP_USER: {present(settings.smtp_user)}\n"
        f"  SMTP_PASS: {pass_state}\n"
        f"  MAIL_FROM: {settings.mail_from}\n"
        f"  MAIL_TO: {settings.mail_to}"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    validate_security_settings(settings)
    log_config_status(settings)
    init_db(app.state.engine)

    if settings.smtp_enabled and settings.smtp_verify_on_startup:
        # Off the startup path; the result only matters for the log
        threading.Thread(target=verify_smtp, args=(settings,), daemon=True).start()

    log.info(f"Guestbook running on {settings.base_url}")
    yield
    app.state.engine.dispose()


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"ok": False, "error": "Invalid request body"}, status_code=400)


async def admin_unauthorized_handler(request: Request, exc: AdminUnauthorized):
    return PlainTextResponse(exc.detail, status_code=exc.status_code, headers=exc.headers)


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    log.exception(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse({"ok": False, "error": "Internal server error"}, status_code=500)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="Guestbook", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = make_engine(settings)
    app.state.session_factory = make_session_factory(app.state.engine)

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(AdminUnauthorized, admin_unauthorized_handler)

    app.include_router(entries_router)
    app.include_router(admin_router)
    app.include_router(pages_router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
