"""
Encrypted Link Builder
======================

Mints proxy links: the target URL is encrypted with the shared AES-256 key
and packed into the container format the proxy endpoint decodes.
"""

import base64
import os
from typing import Optional
from urllib.parse import quote

from ..crypto import encode_container, encrypt_url, parse_key
from ..models import AES_256_KEY_SIZE


def generate_key() -> str:
    """
    Generate a fresh AES-256 key in configuration form.

    Returns:
        ``base64:``-prefixed 32-byte key, usable as KEY_BASE64
    """
    return "base64:" + base64.b64encode(os.urandom(AES_256_KEY_SIZE)).decode("ascii")


def resolve_key(raw_key: str) -> bytes:
    """
    Parse a key configuration string for link building.

    Raises:
        ValueError: If the key is empty, malformed, or not 32 bytes
    """
    if not raw_key:
        raise ValueError("AES key is required")

    key = parse_key(raw_key.strip())
    if len(key) != AES_256_KEY_SIZE:
        raise ValueError("AES key must be 32 bytes (256 bits)")
    return key


def seal_url(target_url: str, raw_key: str, iv: Optional[bytes] = None) -> str:
    """
    Encrypt a target URL into a ``q`` container string.

    Args:
        target_url: URL the proxy should fetch
        raw_key: Key configuration string (base64:/hex:/raw)
        iv: Optional fixed IV (random when omitted)

    Returns:
        Base64 container string
    """
    container = encrypt_url(target_url, resolve_key(raw_key), iv=iv)
    return encode_container(container)


def build_proxy_url(worker_url: str, target_url: str, raw_key: str, iv: Optional[bytes] = None) -> str:
    """
    Build a complete proxy link for a target URL.

    Args:
        worker_url: Base URL of the deployed proxy
        target_url: URL to hide behind the proxy
        raw_key: Key configuration string shared with the proxy
        iv: Optional fixed IV (random when omitted)

    Returns:
        ``<worker_url>/?q=<url-encoded container>``

    Example:
        >>> build_proxy_url("https://proxy.example.com", "https://example.com/a.txt", key)
        'https://proxy.example.com/?q=eyJpdiI6...'
    """
    base = worker_url.strip().rstrip("/")
    if not base:
        raise ValueError("Proxy URL is required")

    q = seal_url(target_url, raw_key, iv=iv)
    return f"{base}/?q={quote(q, safe='')}"
