"""
Shared fixtures for the proxy test suite.

Outbound HTTP never leaves the process: the app's ``get_http_client``
dependency is replaced with an httpx.AsyncClient over httpx.MockTransport,
and settings are injected through the ``get_settings`` dependency.
"""

from typing import Callable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from hidden_proxy.app.config import Settings, get_settings
from hidden_proxy.app.main import create_app
from hidden_proxy.app.proxy.routes import get_http_client

from .helpers import make_settings


@pytest.fixture
def origin_requests() -> List[httpx.Request]:
    """Requests received by the mocked origin."""
    return []


@pytest.fixture
def make_client(origin_requests) -> Callable[..., TestClient]:
    """
    Factory for a TestClient bound to a mocked origin.

    The returned callable takes an optional MockTransport ``handler``
    standing in for the origin and optional ``settings`` (zero key by
    default); extra keyword arguments go to TestClient.
    """
    def _make(handler: Optional[Callable] = None, settings: Optional[Settings] = None, **kwargs) -> TestClient:
        settings = settings or make_settings()

        def recording_handler(request: httpx.Request):
            origin_requests.append(request)
            if handler is None:
                return httpx.Response(200, content=b"origin body")
            return handler(request)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))

        app = create_app()
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_http_client] = lambda: http_client
        return TestClient(app, **kwargs)

    return _make
