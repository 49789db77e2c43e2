"""
Proxy Package
=============

This package implements the encrypted URL proxy endpoint: target policy
validation, the outbound fetch, and the streaming (optionally byte-limited)
relay of the origin response.

Main Components:
----------------
- routes.py: FastAPI router with the proxy endpoint (/)
- policy.py: http/https scheme allow-list and private-host filtering
- relay.py: outbound fetch and streaming relay with the byte ceiling

Usage:
------
    from hidden_proxy.app.proxy import proxy_router
    app.include_router(proxy_router)
"""

from .routes import proxy_router

__all__ = ["proxy_router"]
