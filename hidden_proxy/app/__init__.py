"""
Hidden URL Proxy Application

Stateless edge service that accepts a base64-encoded, AES-256-CBC encrypted
container describing a target URL, decrypts and validates it, fetches the
target over HTTP and streams the response back to the caller.

Subpackages:
- crypto: container codec, key loading, AES-256-CBC cipher
- proxy: URL policy, streaming fetch relay, HTTP routes
- links: encrypted link builders (generic and Telegram files)
"""
