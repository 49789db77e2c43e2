"""
Container Decoder
=================

The ``q`` request parameter carries a base64-encoded JSON object::

    base64({"iv": "<base64 16-byte IV>", "data": "<base64 ciphertext>"})

Both layers of base64 accept the standard and URL-safe alphabets and tolerate
missing padding. Each failure maps to its own client error.
"""

import base64
import binascii
import json
import logging

from ..errors import (
    InvalidContainerEncodingError,
    InvalidContainerJSONError,
    InvalidFieldEncodingError,
    InvalidIVLengthError,
    MissingContainerFieldsError,
)
from ..models import EncryptedContainer

logger = logging.getLogger(__name__)


def normalize_base64(value: str) -> str:
    """
    Map URL-safe characters to the standard alphabet and restore padding.

    Args:
        value: Base64 text in either alphabet, padded or not

    Returns:
        Standard-alphabet base64 padded to a multiple of 4 characters
    """
    s = value.replace("-", "+").replace("_", "/").strip()
    remainder = len(s) % 4
    if remainder in (2, 3):
        s += "=" * (4 - remainder)
    return s


def decode_base64(value: str) -> bytes:
    """
    Decode lenient base64 (either alphabet, optional padding).

    Raises:
        ValueError: If the text is not valid base64
    """
    try:
        return base64.b64decode(normalize_base64(value), validate=True)
    except binascii.Error as e:
        raise ValueError("Invalid base64") from e


def decode_container(q: str) -> EncryptedContainer:
    """
    Decode the transport string into an EncryptedContainer.

    Args:
        q: Value of the ``q`` parameter

    Returns:
        EncryptedContainer with raw IV and ciphertext bytes

    Raises:
        InvalidContainerEncodingError: Outer base64 is malformed
        InvalidContainerJSONError: Decoded bytes are not UTF-8 JSON
        MissingContainerFieldsError: ``iv`` or ``data`` missing or empty
        InvalidFieldEncodingError: ``iv`` or ``data`` is not base64 text
        InvalidIVLengthError: IV does not decode to 16 bytes
    """
    try:
        raw = decode_base64(q)
    except ValueError:
        raise InvalidContainerEncodingError()

    try:
        parsed = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise InvalidContainerJSONError()

    if not isinstance(parsed, dict) or not parsed.get("iv") or not parsed.get("data"):
        raise MissingContainerFieldsError()

    iv_text, data_text = parsed["iv"], parsed["data"]
    if not isinstance(iv_text, str) or not isinstance(data_text, str):
        raise InvalidFieldEncodingError()

    try:
        iv = decode_base64(iv_text)
        ciphertext = decode_base64(data_text)
    except ValueError:
        raise InvalidFieldEncodingError()

    container = EncryptedContainer(iv=iv, ciphertext=ciphertext)
    if not container.has_valid_iv:
        raise InvalidIVLengthError()

    return container


def encode_container(container: EncryptedContainer) -> str:
    """
    Encode a container into the transport string accepted by decode_container.

    Args:
        container: IV and ciphertext to pack

    Returns:
        Standard-alphabet base64 of the compact container JSON
    """
    payload = {
        "iv": base64.b64encode(container.iv).decode("ascii"),
        "data": base64.b64encode(container.ciphertext).decode("ascii"),
    }
    container_json = json.dumps(payload, separators=(",", ":"))
    return base64.b64encode(container_json.encode("utf-8")).decode("ascii")
