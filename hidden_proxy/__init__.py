"""Hidden URL proxy: relays origin responses for AES-encrypted target URLs."""

__version__ = "1.0.0"
