"""
AES-256-CBC Decryptor / Encryptor
=================================

Decrypts the container ciphertext into the target URL and, for link
builders, performs the inverse operation. PKCS#7 padding is applied on
encryption and removed on decryption.

Every decryption failure (misaligned ciphertext, bad padding, wrong key)
collapses into the same DecryptionError so callers cannot tell them apart.
"""

import os
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..errors import DecryptionError, InvalidIVLengthError, InvalidKeyLengthError
from ..models import AES_256_KEY_SIZE, AES_BLOCK_SIZE, EncryptedContainer

_PADDING_BITS = AES_BLOCK_SIZE * 8


def _check_key(key: bytes) -> None:
    if len(key) != AES_256_KEY_SIZE:
        raise InvalidKeyLengthError()


def decrypt_url(key: bytes, container: EncryptedContainer) -> str:
    """
    Decrypt the container into trimmed plaintext.

    Args:
        key: 32-byte AES-256 key
        container: IV and ciphertext

    Returns:
        Decrypted UTF-8 text with surrounding whitespace removed

    Raises:
        InvalidKeyLengthError: Key is not 32 bytes
        InvalidIVLengthError: IV is not 16 bytes
        DecryptionError: Any failure of the cipher or padding removal
    """
    _check_key(key)
    if not container.has_valid_iv:
        raise InvalidIVLengthError()
    if not container.is_block_aligned:
        raise DecryptionError()

    decryptor = Cipher(algorithms.AES(key), modes.CBC(container.iv)).decryptor()
    unpadder = padding.PKCS7(_PADDING_BITS).unpadder()
    try:
        padded = decryptor.update(container.ciphertext) + decryptor.finalize()
        plaintext = unpadder.update(padded) + unpadder.finalize()
    except ValueError:
        raise DecryptionError()

    return plaintext.decode("utf-8", errors="replace").strip()


def encrypt_url(url: str, key: bytes, iv: Optional[bytes] = None) -> EncryptedContainer:
    """
    Encrypt a URL into a container the proxy can decrypt.

    Args:
        url: Plaintext target URL
        key: 32-byte AES-256 key
        iv: Optional 16-byte IV; a random one is generated when omitted

    Returns:
        EncryptedContainer holding the IV and ciphertext

    Raises:
        ValueError: If the key or IV has the wrong length
    """
    if len(key) != AES_256_KEY_SIZE:
        raise ValueError("AES key must be 32 bytes (256 bits)")

    if iv is None:
        iv = os.urandom(AES_BLOCK_SIZE)
    elif len(iv) != AES_BLOCK_SIZE:
        raise ValueError("IV must be 16 bytes")

    padder = padding.PKCS7(_PADDING_BITS).padder()
    padded = padder.update(url.encode("utf-8")) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()

    return EncryptedContainer(iv=iv, ciphertext=ciphertext)
