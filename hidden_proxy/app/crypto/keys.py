"""
Key Material Loading
====================

Parses the configured key string into raw bytes.

Accepted encodings:
    - ``base64:<payload>``  standard or URL-safe base64, padding optional
    - ``hex:<payload>``     hexadecimal
    - anything else         raw UTF-8 bytes of the string itself

Parsing is memoised per configuration string, so the work happens once per
process while length checks still run on every request.
"""

import binascii
from functools import lru_cache
from typing import Optional

from ..errors import InvalidKeyLengthError, KeyNotSetError
from ..models import AES_256_KEY_SIZE
from .container import decode_base64

BASE64_PREFIX = "base64:"
HEX_PREFIX = "hex:"


class KeyEncodingError(ValueError):
    """The base64/hex payload of the configured key could not be decoded."""


@lru_cache(maxsize=8)
def parse_key(raw: str) -> bytes:
    """
    Decode a key configuration string into bytes.

    Args:
        raw: Configuration value, optionally prefixed with 'base64:' or 'hex:'

    Returns:
        Decoded key bytes (length is not checked here)

    Raises:
        KeyEncodingError: If a prefixed payload is not valid base64/hex
    """
    if raw.startswith(BASE64_PREFIX):
        try:
            return decode_base64(raw[len(BASE64_PREFIX):])
        except ValueError as e:
            raise KeyEncodingError("Key payload is not valid base64") from e

    if raw.startswith(HEX_PREFIX):
        try:
            return binascii.unhexlify(raw[len(HEX_PREFIX):].strip())
        except (binascii.Error, ValueError) as e:
            raise KeyEncodingError("Key payload is not valid hex") from e

    return raw.encode("utf-8")


def load_key(raw: Optional[str]) -> bytes:
    """
    Resolve the configured key into exactly 32 bytes of AES-256 key material.

    Args:
        raw: Configuration value (None or empty when unset)

    Returns:
        32-byte key

    Raises:
        KeyNotSetError: If no key is configured
        InvalidKeyLengthError: If the key does not decode to 32 bytes
        KeyEncodingError: If a prefixed payload cannot be decoded
    """
    if not raw:
        raise KeyNotSetError()

    key = parse_key(raw)
    if len(key) != AES_256_KEY_SIZE:
        raise InvalidKeyLengthError()

    return key
