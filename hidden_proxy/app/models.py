"""
Data Models Module

Request-scoped value types that flow through the proxy pipeline:

- EncryptedContainer: the decoded ``{iv, data}`` pair
- TargetRequest: the validated destination of the outbound fetch

All of them are created, used and discarded within a single request.
"""

from dataclasses import dataclass

import httpx

AES_BLOCK_SIZE = 16
AES_256_KEY_SIZE = 32


@dataclass(frozen=True)
class EncryptedContainer:
    """
    Decoded container carried in the ``q`` parameter.

    Attributes:
        iv: Raw initialization vector (must be 16 bytes to be decryptable)
        ciphertext: Raw AES-CBC ciphertext
    """

    iv: bytes
    ciphertext: bytes

    @property
    def has_valid_iv(self) -> bool:
        return len(self.iv) == AES_BLOCK_SIZE

    @property
    def is_block_aligned(self) -> bool:
        return len(self.ciphertext) > 0 and len(self.ciphertext) % AES_BLOCK_SIZE == 0


@dataclass(frozen=True)
class TargetRequest:
    """Validated absolute http(s) URL the proxy will fetch."""

    url: httpx.URL

    @property
    def scheme(self) -> str:
        return self.url.scheme

    @property
    def host(self) -> str:
        return self.url.host

    def __str__(self) -> str:
        return str(self.url)
