"""
Servekit — FastAPI Application Factory
======================================

What:  Creates and configures the FastAPI application.
How:   create_app() assembles middleware, exception handlers, routers and the
       socket event hub; uvicorn serves the module-level `app`
       (uvicorn servekit.main:app).

    ┌───────────────────────────────────────────────────────┐
    │                     FastAPI App                       │
    │                                                       │
    │  Middleware:  Request ID → Logging → GZip → CORS      │
    │                                                       │
    │  Routes:      /api/users (MasterController subclasses)│
    │               /health                                 │
    │  Socket:      /ws  (SocketEventHub: ping, chat:message)│
    │                                                       │
    │  Errors:      every exception → {status, message,     │
    │               data: null, errors} envelope            │
    └───────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config check → DB connection check (retried) →
              optional table creation
    Shutdown: dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from servekit import __version__
from servekit.config import settings
from servekit.core.response_builder import ResponseBuilder
from servekit.database import create_tables, dispose_engine, verify_connection
from servekit.exceptions import DatabaseError, ServekitError
from servekit.middleware.logging import RequestLoggingMiddleware
from servekit.middleware.request_id import RequestIDMiddleware, request_id_var
from servekit.routes import events, health, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Configure the root logger once, writing to stdout."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("%s %s starting up...", settings.app_name, __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        raise

    try:
        await verify_connection()
    except Exception as e:
        logger.error("Unable to connect to the database: %s", str(e))
        raise

    if settings.db_auto_create:
        await create_tables()
        logger.info("Database tables created (DB_AUTO_CREATE=true)")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("Socket events on %s: %s", events.hub.path, ", ".join(events.hub.events))
    logger.info("=" * 60)

    yield

    logger.info("%s shutting down...", settings.app_name)
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_validation_errors(exc: RequestValidationError) -> Dict[str, List[str]]:
    # FastAPI locations are ("path"|"query"|"body"|"header", field, ...)
    keys = {"path": "param", "query": "query", "body": "body"}
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        location, *path = error.get("loc", ()) or ("body",)
        key = keys.get(location, "body")
        field = ".".join(str(part) for part in path)
        errors.setdefault(key, []).append(f'"{field}" {error["msg"]}' if field else error["msg"])
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """
    Render every error as the response envelope.

        ServekitError subclasses   → their status_code and message
        DatabaseError              → 500, generic message (details logged)
        RequestValidationError     → 400 "Validation Error" (plain FastAPI routes)
        Starlette HTTPException    → its status (unknown route → 404, etc.)
        Exception                  → 500, generic message, traceback logged

    Internal details never reach the client.
    """

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return ResponseBuilder.error(
            500, "An internal error occurred. Please try again later."
        ).to_json_response()

    @app.exception_handler(ServekitError)
    async def handle_servekit_error(request: Request, exc: ServekitError):
        rid = request_id_var.get("")
        log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        logger.log(log_level, "[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        return ResponseBuilder.error(exc.status_code, exc.message, exc.errors).to_json_response()

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return ResponseBuilder.validation_error(_request_validation_errors(exc)).to_json_response()

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return ResponseBuilder.error(exc.status_code, str(exc.detail)).to_json_response(
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return ResponseBuilder.error(
            500, "An unexpected error occurred. Please try again or contact support."
        ).to_json_response()


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description=(
            "REST and socket-event service scaffold. Every endpoint answers with "
            "the same {status, message, data, errors} envelope."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Executes in reverse order of addition: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(users.router)
    app.include_router(health.router)
    events.hub.mount(app)

    return app


app = create_app()
