"""
Proxy Routes - Encrypted URL Relay
==================================

This module implements the edge endpoint that turns an encrypted container
into a streamed fetch of the hidden target URL.

Request Pipeline:
-----------------
1. Extract ``q`` (query string on GET; raw or JSON body on POST when enabled)
2. Decode the base64/JSON container into IV + ciphertext
3. Load the configured AES-256 key
4. Decrypt the ciphertext into the target URL
5. Validate the URL (http/https only, optional private-host filtering)
6. Fetch the target and stream the origin response back

Each stage raises a ProxyError on failure; the first one wins and is
rendered as ``{"error": "<message>"}`` with its status code.

Endpoints:
----------
- GET /?q=<container>: Proxy the encrypted target (any path except /health)
- POST /: Same, when ALLOW_POST is enabled
"""

import json
import logging
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response

from ..config import Settings, get_settings
from ..crypto import decode_container, decrypt_url, load_key
from ..errors import (
    InternalProxyError,
    MethodNotAllowedError,
    MissingQueryError,
    ProxyError,
    proxy_error_response,
)
from .policy import validate_target
from .relay import fetch_target, relay_response

logger = logging.getLogger(__name__)

# Create router
proxy_router = APIRouter()

# Every method is routed here so unsupported ones get the JSON envelope and Allow header.
ROUTED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


# ============================================================================
# Dependencies
# ============================================================================

def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    Dependency to get the shared outbound HTTP client from app state.

    Args:
        request: FastAPI request object

    Returns:
        httpx.AsyncClient created in the application lifespan
    """
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="HTTP client not initialized"
        )

    return client


# ============================================================================
# Request Helpers
# ============================================================================

def allowed_methods(settings: Settings) -> List[str]:
    """Methods accepted on the proxy endpoint for the current configuration."""
    if settings.ALLOW_POST:
        return ["GET", "POST"]
    return ["GET"]


async def extract_q(request: Request) -> Optional[str]:
    """
    Extract the container string from the request.

    GET reads the ``q`` query parameter. POST reads the body: a JSON object
    with a string ``q`` field when the content type is JSON, otherwise the
    raw body text.

    Args:
        request: Incoming request (method already checked)

    Returns:
        Container string, or None when absent/empty
    """
    if request.method == "GET":
        return request.query_params.get("q") or None

    body_text = (await request.body()).decode("utf-8", errors="replace")
    if not body_text:
        return None

    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            payload = json.loads(body_text)
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("q"), str):
            return payload["q"] or None

    return body_text


async def handle_proxy(
    request: Request,
    settings: Settings,
    client: httpx.AsyncClient,
) -> Response:
    """
    Run the decode → decrypt → validate → fetch pipeline for one request.

    Raises:
        ProxyError: The first stage failure
    """
    q = await extract_q(request)
    if not q:
        raise MissingQueryError()

    container = decode_container(q)
    key = load_key(settings.KEY_BASE64)
    plaintext = decrypt_url(key, container)
    target = validate_target(plaintext, block_private_hosts=settings.BLOCK_PRIVATE_HOSTS)

    logger.debug("Fetching decrypted target", extra={"host": target.host})

    upstream = await fetch_target(client, target, settings.timeout_seconds)
    return await relay_response(upstream, settings.max_bytes)


# ============================================================================
# Proxy Endpoint
# ============================================================================

# The path is ignored; /health is registered ahead of this router.
@proxy_router.api_route("/{path:path}", methods=ROUTED_METHODS)
async def proxy_encrypted_url(
    request: Request,
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> Response:
    """
    Decrypt the target URL carried in ``q`` and relay the origin response.

    Success responses are the origin's status, headers and body. Failures
    use the JSON error envelope; unexpected exceptions become a 500.
    """
    methods = allowed_methods(settings)
    if request.method not in methods:
        return proxy_error_response(
            MethodNotAllowedError(headers={"Allow": ", ".join(methods)})
        )

    try:
        return await handle_proxy(request, settings, client)

    except ProxyError as exc:
        logger.info(
            "Proxy request rejected",
            extra={
                "status_code": exc.status_code,
                "error_message": exc.message,
                "method": request.method,
            }
        )
        return proxy_error_response(exc)

    except Exception as e:
        logger.error(
            f"Unexpected error in proxy_encrypted_url: {type(e).__name__}",
            exc_info=True,
            extra={"method": request.method, "path": request.url.path}
        )
        return proxy_error_response(InternalProxyError())
