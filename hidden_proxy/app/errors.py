"""
Proxy Error Taxonomy
====================

Every client-visible failure is a ``ProxyError`` subclass carrying the HTTP
status and the message emitted in the ``{"error": "<message>"}`` envelope.
Stages raise the most specific error they can; the first one raised
short-circuits the rest of the pipeline.
"""

from typing import Dict, Optional

from fastapi import status
from fastapi.responses import JSONResponse


class ProxyError(Exception):
    """Base exception for errors surfaced to the caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal error"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.message
        self.headers = headers
        super().__init__(self.message)


# =============================================================================
# Request / Container Errors (400)
# =============================================================================

class MissingQueryError(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Missing 'q'"


class InvalidContainerEncodingError(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid base64 container"


class InvalidContainerJSONError(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid container JSON"


class MissingContainerFieldsError(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Missing iv/data"


class InvalidFieldEncodingError(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid base64 in iv/data"


class InvalidIVLengthError(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid IV length"


class DecryptionError(ProxyError):
    # One message for every cause; padding errors must look like any other failure.
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Decryption failed"


class InvalidTargetURLError(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid URL"


# =============================================================================
# Key Errors (401)
# =============================================================================

class KeyNotSetError(ProxyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "KEY is not set"


class InvalidKeyLengthError(ProxyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "KEY must be 32 bytes"


# =============================================================================
# Policy Errors (403 / 405 / 413)
# =============================================================================

class SchemeNotAllowedError(ProxyError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Scheme not allowed"


class HostNotAllowedError(ProxyError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Host not allowed"


class MethodNotAllowedError(ProxyError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    message = "Method Not Allowed"


class ResponseTooLargeError(ProxyError):
    status_code = 413
    message = "Response too large"


# =============================================================================
# Upstream / Internal Errors (500)
# =============================================================================

class UpstreamFetchError(ProxyError):
    """Outbound fetch failed or timed out; reported to the caller as an internal error."""


class InternalProxyError(ProxyError):
    """Catch-all for unexpected failures."""


# =============================================================================
# Envelope
# =============================================================================

def error_response(
    status_code: int,
    message: str,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """
    Build the JSON error envelope returned for every client-visible failure.

    Args:
        status_code: HTTP status to emit
        message: Human-readable error message
        headers: Optional extra response headers (e.g. Allow)

    Returns:
        JSONResponse with body ``{"error": message}``
    """
    return JSONResponse(
        status_code=status_code,
        content={"error": message},
        headers=headers,
        media_type="application/json; charset=utf-8",
    )


def proxy_error_response(exc: ProxyError) -> JSONResponse:
    """Render a ProxyError as the JSON error envelope."""
    return error_response(exc.status_code, exc.message, exc.headers)
