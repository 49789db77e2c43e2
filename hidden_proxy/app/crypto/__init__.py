"""
Crypto Package
==============

Container decoding, key loading and AES-256-CBC encryption/decryption for
the proxy's ``q`` parameter.

Main Components:
----------------
- container.py: base64/JSON container codec
- keys.py: key material parsing (base64:/hex:/raw)
- cipher.py: AES-256-CBC decrypt (proxy side) and encrypt (link builders)
"""

from .cipher import decrypt_url, encrypt_url
from .container import decode_base64, decode_container, encode_container
from .keys import KeyEncodingError, load_key, parse_key

__all__ = [
    "KeyEncodingError",
    "decode_base64",
    "decode_container",
    "decrypt_url",
    "encode_container",
    "encrypt_url",
    "load_key",
    "parse_key",
]
