"""
Link Builder Tests

Tests the producer side of the proxy protocol: encrypted proxy links and
Telegram file links, including a full loop through the proxy endpoint.
"""

from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from hidden_proxy.app.crypto import decode_container, decrypt_url, parse_key
from hidden_proxy.app.links import (
    TelegramFileLinker,
    TelegramLinkError,
    build_proxy_url,
    generate_key,
    seal_url,
)

from .helpers import FIXED_IV, ZERO_KEY, ZERO_KEY_CONFIG, make_settings

BOT_TOKEN = "123456:ABC-DEF1234ghIkl-zyx57W2v1u123ew11"
WORKER_URL = "https://proxy.example.com/"


def _unseal(link: str) -> str:
    """Recover the target URL hidden in a proxy link."""
    q = parse_qs(urlsplit(link).query)["q"][0]
    return decrypt_url(ZERO_KEY, decode_container(q))


# ============================================================================
# Builder Tests
# ============================================================================

def test_generate_key_is_valid_configuration():
    key = generate_key()

    assert key.startswith("base64:")
    assert len(parse_key(key)) == 32
    assert generate_key() != key


def test_seal_url_with_fixed_iv_is_deterministic():
    first = seal_url("https://example.com/a.txt", ZERO_KEY_CONFIG, iv=FIXED_IV)
    second = seal_url("https://example.com/a.txt", ZERO_KEY_CONFIG, iv=FIXED_IV)

    assert first == second
    assert decrypt_url(ZERO_KEY, decode_container(first)) == "https://example.com/a.txt"


def test_build_proxy_url_shape():
    link = build_proxy_url(WORKER_URL, "https://example.com/a.txt", ZERO_KEY_CONFIG)

    assert link.startswith("https://proxy.example.com/?q=")
    assert _unseal(link) == "https://example.com/a.txt"


@pytest.mark.parametrize("key", ["", "short", "base64:AAAA"])
def test_build_proxy_url_rejects_bad_keys(key):
    with pytest.raises(ValueError):
        build_proxy_url(WORKER_URL, "https://example.com/a.txt", key)


def test_build_proxy_url_requires_worker_url():
    with pytest.raises(ValueError):
        build_proxy_url("  ", "https://example.com/a.txt", ZERO_KEY_CONFIG)


# ============================================================================
# Telegram Linker Tests
# ============================================================================

def _telegram_client(payload=None, status_code=200, seen=None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_telegram_link_hides_file_url():
    seen = []
    client = _telegram_client({"ok": True, "result": {"file_path": "photos/file_7.jpg"}}, seen=seen)
    linker = TelegramFileLinker(BOT_TOKEN, WORKER_URL, ZERO_KEY_CONFIG, client=client)

    link = await linker.build_link("  AgACAgIAAxkBAAIBY2  ")
    await client.aclose()

    assert seen[0].url.path == f"/bot{BOT_TOKEN}/getFile"
    assert seen[0].url.params["file_id"] == "AgACAgIAAxkBAAIBY2"
    assert BOT_TOKEN not in link
    assert _unseal(link) == f"https://api.telegram.org/file/bot{BOT_TOKEN}/photos/file_7.jpg"


@pytest.mark.asyncio
async def test_telegram_get_file_http_error():
    client = _telegram_client({"ok": False}, status_code=400)
    linker = TelegramFileLinker(BOT_TOKEN, WORKER_URL, ZERO_KEY_CONFIG, client=client)

    with pytest.raises(TelegramLinkError) as exc_info:
        await linker.build_link("file-id")
    await client.aclose()

    assert "400" in str(exc_info.value)


@pytest.mark.parametrize("payload", [
    {"ok": False},
    {"ok": True, "result": {}},
    {"ok": True},
    ["unexpected"],
])
@pytest.mark.asyncio
async def test_telegram_get_file_bad_payload(payload):
    client = _telegram_client(payload)
    linker = TelegramFileLinker(BOT_TOKEN, WORKER_URL, ZERO_KEY_CONFIG, client=client)

    with pytest.raises(TelegramLinkError):
        await linker.build_link("file-id")
    await client.aclose()


@pytest.mark.asyncio
async def test_telegram_empty_file_id():
    client = _telegram_client()
    linker = TelegramFileLinker(BOT_TOKEN, WORKER_URL, ZERO_KEY_CONFIG, client=client)

    with pytest.raises(TelegramLinkError):
        await linker.build_link("   ")
    await client.aclose()


@pytest.mark.parametrize("token,worker,key", [
    ("", WORKER_URL, ZERO_KEY_CONFIG),
    (BOT_TOKEN, "", ZERO_KEY_CONFIG),
    (BOT_TOKEN, WORKER_URL, ""),
    (BOT_TOKEN, WORKER_URL, "too-short"),
])
def test_telegram_linker_validates_credentials(token, worker, key):
    with pytest.raises(TelegramLinkError):
        TelegramFileLinker(token, worker, key)


# ============================================================================
# Full Loop
# ============================================================================

def test_built_link_is_served_by_proxy(make_client, origin_requests):
    """A link minted by the builder is accepted by the proxy endpoint"""
    link = build_proxy_url("http://testserver", "https://cdn.example.com/v.mp4", ZERO_KEY_CONFIG)
    client = make_client(
        lambda request: httpx.Response(200, content=b"video bytes"),
        settings=make_settings(),
    )

    parts = urlsplit(link)
    response = client.get(f"{parts.path}?{parts.query}")

    assert response.status_code == 200
    assert response.content == b"video bytes"
    assert str(origin_requests[0].url) == "https://cdn.example.com/v.mp4"
