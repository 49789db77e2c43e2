"""Test helpers: key fixtures, container builders and a controllable upstream body."""

import base64
from typing import Iterable, List

import httpx

from hidden_proxy.app.config import Settings
from hidden_proxy.app.crypto import encode_container, encrypt_url

ZERO_KEY = bytes(32)
ZERO_KEY_CONFIG = "base64:" + base64.b64encode(ZERO_KEY).decode("ascii")
FIXED_IV = bytes(range(16))


class ChunkedStream(httpx.AsyncByteStream):
    """Upstream body that yields fixed chunks and records how it was consumed."""

    def __init__(self, chunks: Iterable[bytes]):
        self.chunks: List[bytes] = list(chunks)
        self.chunks_read = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            self.chunks_read += 1
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


def make_settings(**overrides) -> Settings:
    """Settings isolated from any local .env file."""
    values = {"KEY_BASE64": ZERO_KEY_CONFIG}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_q(url: str, key: bytes = ZERO_KEY, iv: bytes = FIXED_IV) -> str:
    """Encrypt a URL into a ``q`` container string."""
    return encode_container(encrypt_url(url, key, iv=iv))


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def container_q(iv: str, data: str) -> str:
    """Hand-built container for malformed-input tests."""
    return b64(('{"iv": "%s", "data": "%s"}' % (iv, data)).encode("utf-8"))
