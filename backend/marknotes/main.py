"""
MarkNotes Backend - FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app(settings) builds the Database handle and
       NoteStore, registers middleware, exception handlers and routes, and
       returns the app. The store handle travels through `app.state`.
Who:   uvicorn (`uvicorn marknotes.main:app`) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  RateLimit → RequestID → Logging → SecurityHeaders  │
    │            → GZip → CORS                            │
    │                                                     │
    │  Routes:                                            │
    │  /api/notes (CRUD, search, stats)   /api/health     │
    │                                                     │
    │  Exception Handlers:                                │
    │  Validation→400 │ NotFound→404 │ DB→500 │ Other→500 │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, connect the database (optionally create tables)
    Shutdown: dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from marknotes import __version__
from marknotes.config import Settings, settings as default_settings
from marknotes.database import Database
from marknotes.exceptions import (
    DatabaseError,
    MarkNotesError,
    NotFoundError,
    RateLimitExceededError,
    ValidationError,
)
from marknotes.middleware.logging import RequestLoggingMiddleware
from marknotes.middleware.rate_limit import RateLimitMiddleware
from marknotes.middleware.request_id import RequestIDMiddleware, request_id_var
from marknotes.middleware.security_headers import SecurityHeadersMiddleware
from marknotes.routes import health, notes
from marknotes.services.note_store import NoteStore

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Server Error"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    cfg: Settings = app.state.settings
    database: Database = app.state.database

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(cfg.log_level)
    logger.info("=" * 60)
    logger.info("MarkNotes API starting up (%s)...", cfg.environment)

    await database.connect()

    logger.info("Server ready at http://%s:%d", cfg.backend_host, cfg.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("MarkNotes API shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, details: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    rid = request_id_var.get("")
    if rid:
        body["request_id"] = rid
    return body


def _field_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    """Flatten pydantic errors into [{field, message}] without internal objects."""
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        field = ".".join(loc[1:]) or (loc[0] if loc else "")
        if err.get("type") == "value_error" and "error" in err.get("ctx", {}):
            message = str(err["ctx"]["error"])
        else:
            message = err.get("msg", "Invalid value")
        details.append({"field": field, "message": message})
    return details


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the error envelope.

    Handler hierarchy:
        RequestValidationError  → 400 (FastAPI body/query validation)
        ValidationError         → 400
        NotFoundError           → 404
        RateLimitExceededError  → 429
        DatabaseError           → 500 (generic message)
        MarkNotesError (base)   → 500 (generic message)
        HTTPException           → its own status (unknown routes → 404)
        Exception (fallback)    → 500 (generic message)

    Internal details (tracebacks, SQL, driver messages) are only logged.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        details = _field_errors(exc)
        logger.warning("Validation failed on %s %s: %s", request.method, request.url.path, details)
        return JSONResponse(status_code=400, content=_error_body("Validation failed", details))

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation failed on %s %s: %s", request.method, request.url.path, exc.details)
        return JSONResponse(status_code=400, content=_error_body(exc.message, exc.details))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body(exc.message))

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=429,
            content=_error_body(exc.message),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(status_code=500, content=_error_body(GENERIC_SERVER_ERROR))

    @app.exception_handler(MarkNotesError)
    async def handle_app_error(request: Request, exc: MarkNotesError):
        logger.error("[%s] Application error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(status_code=500, content=_error_body(GENERIC_SERVER_ERROR))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = f"Not found - {request.url.path}"
        else:
            message = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return JSONResponse(status_code=500, content=_error_body(GENERIC_SERVER_ERROR))


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    The Database handle is created here but only connected in the lifespan
    (or explicitly by the caller, as the test suite does).
    """
    cfg = settings or default_settings

    app = FastAPI(
        title="MarkNotes API",
        description="Create, search, edit and delete markdown notes.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    database = Database(cfg)
    app.state.settings = cfg
    app.state.database = database
    app.state.note_store = NoteStore(database)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added executes first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    if cfg.rate_limit_enabled:
        app.add_middleware(
            RateLimitMiddleware,
            max_requests=cfg.rate_limit_requests,
            window_seconds=cfg.rate_limit_window,
        )

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(notes.router)

    return app


app = create_app()
