"""
FastAPI Gateway Application Factory
===================================

Entry point of the gateway that sits between the Tributestream site and the
headless CMS.

Architecture:
    Browser → Gateway (this service) → CMS REST API

Routers:
    - /api/auth/*          : Login, registration, session check, logout, password recovery
    - /login               : HTML login form submission
    - /api/funeral-homes/* : Funeral home collection
    - /api/tributes/*      : Tribute collection
    - /api/upload/*        : Upload plugin
    - /health              : Health check endpoint

Environment Variables:
    - CMS_API_URL: Base URL of the CMS REST API (e.g., "http://localhost:1337/api")
    - SESSION_COOKIE_NAME: Name of the session cookie (default: jwt)
    - ENVIRONMENT: development | test | production (production marks cookies Secure)
    - ALLOWED_ORIGINS: Comma-separated CORS origins for /api routes (none by default)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn tribute_gateway.main:app --reload --host 0.0.0.0 --port 8080

    Production:
        tribute-gateway
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Receive, Scope, Send

from . import __version__
from .auth import auth_router, login_router
from .auth.session import clear_session_cookie
from .cms.client import build_http_client
from .cms.envelope import CmsError
from .config import Settings, get_settings
from .forms import FormValidationError, field_errors
from .proxy import funeral_homes_router, tributes_router, upload_router

SERVICE_NAME = "tribute-gateway"
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"

logger = logging.getLogger(__name__)


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


class ApiCORSMiddleware:
    """CORSMiddleware applied only to paths under ``path_prefix``."""

    def __init__(self, app: ASGIApp, path_prefix: str = "/api", **cors_options: Any):
        self.app = app
        self.path_prefix = path_prefix
        self.cors = CORSMiddleware(app, **cors_options)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"].startswith(self.path_prefix):
            await self.cors(scope, receive, send)
        else:
            await self.app(scope, receive, send)


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup: configure logging and open the shared CMS HTTP client.
    Shutdown: close it.
    """
    settings: Settings = app.state.settings
    setup_logging(settings.LOG_LEVEL)

    app.state.http_client = build_http_client(settings, transport=app.state.transport)

    logger.info(
        "Starting gateway",
        extra={
            "cms_api_url": settings.cms_api_url_str,
            "environment": settings.ENVIRONMENT,
            "log_level": settings.LOG_LEVEL,
        },
    )

    try:
        yield
    finally:
        logger.info("Shutting down gateway")
        await app.state.http_client.aclose()
        app.state.http_client = None


def _error_status(status: int) -> int:
    return status if 400 <= status <= 599 else 500


def register_exception_handlers(app: FastAPI) -> None:
    """
    Render every failure as ``{"error": message}``.

    Validation failures also carry ``"errors": {field: [messages]}``.
    """

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(FormValidationError)
    async def form_validation_handler(request: Request, exc: FormValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": exc.message, "errors": exc.errors},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "errors": field_errors(exc)},
        )

    @app.exception_handler(CmsError)
    async def cms_error_handler(request: Request, exc: CmsError) -> JSONResponse:
        """Relay the CMS status; a rejected session cookie is dropped."""
        status = _error_status(exc.status)
        logger.warning(
            f"CMS error: {exc.message}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": status,
                "error_name": exc.name,
            },
        )

        response = JSONResponse(status_code=status, content={"error": exc.message})

        settings: Settings = request.app.state.settings
        if status == 401 and request.cookies.get(settings.SESSION_COOKIE_NAME):
            clear_session_cookie(response, settings)

        return response

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns a standardized error response.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        return JSONResponse(status_code=500, content={"error": UNEXPECTED_ERROR_MESSAGE})


# Create FastAPI application
def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Application factory function.

    Args:
        settings: Settings instance (defaults to ``get_settings()``)
        transport: Optional httpx transport for the CMS client (tests)

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Tributestream Gateway",
        description="Cookie-session proxy between the Tributestream site and its headless CMS",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.state.settings = settings
    app.state.transport = transport
    app.state.http_client = None

    app.add_middleware(
        ApiCORSMiddleware,
        path_prefix="/api",
        allow_origins=settings.allowed_origins_list,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # Mount routers
    app.include_router(auth_router)
    app.include_router(login_router)
    app.include_router(funeral_homes_router)
    app.include_router(tributes_router)
    app.include_router(upload_router)

    register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health", tags=["System"])
    async def health_check() -> Dict[str, str]:
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": __version__
        }

    # Root endpoint
    @app.get("/", tags=["System"])
    async def root() -> Dict[str, Any]:
        """
        Root endpoint with service information.
        """
        return {
            "service": SERVICE_NAME,
            "version": __version__,
            "description": "Cookie-session proxy between the Tributestream site and its headless CMS",
            "endpoints": {
                "health": "/health",
                "docs": "/docs",
                "auth": "/api/auth",
                "funeral_homes": "/api/funeral-homes",
                "tributes": "/api/tributes",
                "upload": "/api/upload"
            }
        }

    return app


# Create app instance for uvicorn
app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` with uvicorn."""
    settings = get_settings()

    uvicorn.run(
        "tribute_gateway.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run()
