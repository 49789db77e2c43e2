"""
FastAPI Hidden URL Proxy Application Factory
============================================

This is the main entry point for the proxy service that relays files from
hidden origin URLs. Callers hold only an encrypted container; the service
decrypts it with the shared AES-256 key and streams the origin response.

Architecture:
    Link Builder (links/) → Client → Proxy (this service) → Origin

Routers:
    - /*       : Encrypted URL proxy (GET ?q=..., optionally POST); path ignored
    - /health  : Liveness check

Environment Variables:
    - KEY_BASE64 / KEY: AES-256 key ('base64:...', 'hex:...' or raw 32-char string)
    - TIMEOUT_SECS: Outbound fetch timeout in seconds (default: 60)
    - TIMEOUT_MS: Timeout override in milliseconds
    - MAX_MEGABYTES: Optional response size ceiling in MiB
    - ALLOW_POST: Accept POST requests carrying 'q' in the body (default: false)
    - BLOCK_PRIVATE_HOSTS: Reject loopback/private targets (default: false)
    - ALLOWED_ORIGINS: Comma-separated CORS origins
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn hidden_proxy.app.main:app --reload --host 0.0.0.0 --port 8080

    Production:
        uvicorn hidden_proxy.app.main:app --host 0.0.0.0 --port 8080 --workers 4
"""

import logging
import sys
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .errors import InternalProxyError, error_response, proxy_error_response
from .proxy import proxy_router


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


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup tasks:
        - Load configuration from environment
        - Configure logging
        - Create the shared outbound httpx.AsyncClient

    Shutdown tasks:
        - Close the outbound client and its connection pool
    """
    settings = get_settings()

    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("hidden_proxy.main")

    app.state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.timeout_seconds),
        follow_redirects=True,
    )

    logger.info(
        "Hidden URL proxy started",
        extra={
            "timeout_seconds": settings.timeout_seconds,
            "max_bytes": settings.max_bytes,
            "allow_post": settings.ALLOW_POST,
            "block_private_hosts": settings.BLOCK_PRIVATE_HOSTS,
            "key_configured": bool(settings.KEY_BASE64),
        }
    )

    yield

    logger.info("Shutting down hidden URL proxy")
    await app.state.http_client.aclose()
    app.state.http_client = None


def create_app() -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application instance with:
        - Lifespan management
        - Optional CORS middleware
        - Route handlers
        - Exception handlers rendering the {"error": ...} envelope

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Hidden URL Proxy",
        description="Decrypts AES-256-CBC encrypted target URLs and streams the origin response",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    origins = settings.allowed_origins_list
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=False,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
            expose_headers=["*"]
        )

    # Health check endpoint (bypasses all decryption logic)
    @app.get("/health", tags=["System"])
    async def health_check() -> PlainTextResponse:
        return PlainTextResponse("ok")

    app.include_router(proxy_router, tags=["Proxy"])

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, "Bad Request")

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns the generic internal error envelope.
        """
        logger = logging.getLogger("hidden_proxy.main")
        logger.error(
            f"Unhandled exception: {type(exc).__name__}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        return proxy_error_response(InternalProxyError())

    return app


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "hidden_proxy.app.main:app",
        host=settings.PROXY_HOST,
        port=settings.PROXY_PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
