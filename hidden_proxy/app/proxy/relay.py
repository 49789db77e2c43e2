"""
Streaming Fetch Relay
=====================

Fetches the validated target with httpx and streams the origin response
back through Starlette's StreamingResponse without buffering the body.

When a byte ceiling is configured:
    - an advertised ``content-length`` above the ceiling is rejected with
      413 before any byte is relayed;
    - otherwise ``content-length`` is dropped and the body passes through
      a ByteBudget, which forwards bytes up to the ceiling, truncates the
      chunk that crosses it, and closes the upstream response.
"""

import asyncio
import logging
from typing import AsyncIterator, List, Optional, Tuple

import httpx
from fastapi.responses import StreamingResponse

from ..errors import ResponseTooLargeError, UpstreamFetchError
from ..models import TargetRequest

logger = logging.getLogger(__name__)

# Connection-scoped headers; the ASGI server frames the relayed body itself.
HOP_BY_HOP_HEADERS = frozenset({
    b"connection",
    b"keep-alive",
    b"proxy-authenticate",
    b"proxy-authorization",
    b"te",
    b"trailer",
    b"transfer-encoding",
    b"upgrade",
})


# ============================================================================
# Byte-Limiting State Machine
# ============================================================================

class ByteBudget:
    """
    Single-use byte ceiling over a stream of chunks.

    States are STREAMING and CLOSED. ``admit`` returns the part of a chunk
    that may be forwarded; once the ceiling is reached (or ``close`` is
    called on end-of-stream) the budget is CLOSED and admits nothing more.
    """

    STREAMING = "streaming"
    CLOSED = "closed"

    def __init__(self, limit: int):
        if limit <= 0:
            raise ValueError("Byte ceiling must be positive")
        self.limit = limit
        self.count = 0
        self.state = self.STREAMING

    @property
    def closed(self) -> bool:
        return self.state == self.CLOSED

    @property
    def remaining(self) -> int:
        return self.limit - self.count

    def admit(self, chunk: bytes) -> bytes:
        """
        Account for an upstream chunk.

        Args:
            chunk: Bytes read from upstream

        Returns:
            The whole chunk while within budget, the exact prefix that fills
            the remaining allowance on breach, or b"" once closed
        """
        if self.closed:
            return b""

        if len(chunk) < self.remaining:
            self.count += len(chunk)
            return chunk

        allowed = chunk[:self.remaining]
        self.count = self.limit
        self.state = self.CLOSED
        return allowed

    def close(self) -> None:
        self.state = self.CLOSED


async def limit_stream(response: httpx.Response, limit: int) -> AsyncIterator[bytes]:
    """
    Relay raw upstream bytes up to ``limit``, then cancel the upstream read.

    Args:
        response: Streaming httpx response (body not yet read)
        limit: Byte ceiling

    Yields:
        Body chunks, the last one possibly truncated
    """
    budget = ByteBudget(limit)
    try:
        async for chunk in response.aiter_raw():
            allowed = budget.admit(chunk)
            if allowed:
                yield allowed
            if budget.closed:
                logger.info(
                    "Byte ceiling reached, closing upstream",
                    extra={"max_bytes": limit, "status_code": response.status_code},
                )
                break
        budget.close()
    finally:
        await response.aclose()


async def pass_through(response: httpx.Response) -> AsyncIterator[bytes]:
    """Relay raw upstream bytes unchanged."""
    try:
        async for chunk in response.aiter_raw():
            yield chunk
    finally:
        await response.aclose()


# ============================================================================
# Outbound Fetch
# ============================================================================

async def fetch_target(
    client: httpx.AsyncClient,
    target: TargetRequest,
    timeout: float,
) -> httpx.Response:
    """
    Issue the outbound GET and wait for the response headers.

    Redirects are followed. ``timeout`` bounds connection plus headers;
    the body is left unread for streaming.

    Raises:
        UpstreamFetchError: On timeout or any transport failure (no retries)
    """
    request = client.build_request("GET", target.url, timeout=httpx.Timeout(timeout))
    try:
        return await asyncio.wait_for(
            client.send(request, stream=True, follow_redirects=True),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning("Origin fetch timed out", extra={"timeout_seconds": timeout})
        raise UpstreamFetchError()
    except httpx.HTTPError as e:
        logger.warning(
            "Origin fetch failed",
            extra={"exception_type": type(e).__name__},
        )
        raise UpstreamFetchError()


# ============================================================================
# Response Relay
# ============================================================================

def relay_headers(headers: httpx.Headers, drop_content_length: bool = False) -> List[Tuple[bytes, bytes]]:
    """
    Copy origin headers for the relayed response, keeping duplicates.

    Args:
        headers: Origin response headers
        drop_content_length: Strip content-length (body may be truncated)

    Returns:
        Raw ASGI header pairs, values byte-for-byte as the origin sent them
    """
    raw: List[Tuple[bytes, bytes]] = []
    for name, value in headers.raw:
        lowered = name.lower()
        if lowered in HOP_BY_HOP_HEADERS:
            continue
        if drop_content_length and lowered == b"content-length":
            continue
        raw.append((lowered, value))
    return raw


def _declared_length(headers: httpx.Headers) -> Optional[int]:
    value = headers.get("content-length")
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


async def relay_response(response: httpx.Response, max_bytes: Optional[int]) -> StreamingResponse:
    """
    Wrap an upstream streaming response for the client.

    Args:
        response: Upstream response with unread body
        max_bytes: Byte ceiling, or None to pass the body through untouched

    Returns:
        StreamingResponse with the origin status and headers

    Raises:
        ResponseTooLargeError: Origin declared a content-length above the ceiling
    """
    try:
        if max_bytes is None:
            raw_headers = relay_headers(response.headers)
            body = pass_through(response)
        else:
            declared = _declared_length(response.headers)
            if declared is not None and declared > max_bytes:
                logger.info(
                    "Origin response exceeds byte ceiling",
                    extra={"content_length": declared, "max_bytes": max_bytes},
                )
                raise ResponseTooLargeError()
            raw_headers = relay_headers(response.headers, drop_content_length=True)
            body = limit_stream(response, max_bytes)

        relayed = StreamingResponse(body, status_code=response.status_code)
        relayed.raw_headers = raw_headers
        return relayed

    except BaseException:
        # Nothing will drain the body; release the upstream connection here.
        await response.aclose()
        raise
