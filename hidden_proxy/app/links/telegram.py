"""
Telegram File Links
===================

Resolves Telegram ``file_id`` values to downloadable file URLs through the
Bot API and wraps them in encrypted proxy links, so the bot token embedded
in Telegram file URLs never reaches the people who receive the link.
"""

import logging
from typing import Optional

import httpx

from .builder import build_proxy_url, resolve_key

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


class TelegramLinkError(Exception):
    """Raised when a Telegram file link cannot be produced."""


class TelegramFileLinker:
    """
    Builds proxy links for files stored on Telegram.

    Attributes:
        bot_token: Telegram Bot API token
        worker_url: Base URL of the deployed proxy
        client: httpx.AsyncClient used for Bot API calls
    """

    def __init__(
        self,
        bot_token: str,
        worker_url: str,
        aes_key: str,
        client: Optional[httpx.AsyncClient] = None,
        api_base: str = TELEGRAM_API_BASE,
    ):
        self.bot_token = (bot_token or "").strip()
        self.worker_url = (worker_url or "").strip().rstrip("/")
        self._aes_key = (aes_key or "").strip()

        if not self.bot_token or not self.worker_url or not self._aes_key:
            raise TelegramLinkError(
                "bot_token, worker_url and aes_key are required"
            )

        try:
            resolve_key(self._aes_key)
        except ValueError as e:
            raise TelegramLinkError(str(e)) from e

        self.client = client
        self.api_base = api_base.rstrip("/")

    def file_url(self, file_path: str) -> str:
        """Direct download URL for a Bot API file path."""
        return f"{self.api_base}/file/bot{self.bot_token}/{file_path}"

    async def get_file_path(self, file_id: str) -> str:
        """
        Call ``getFile`` to resolve a file_id to its file_path.

        Raises:
            TelegramLinkError: On HTTP failure or an unexpected payload
        """
        url = f"{self.api_base}/bot{self.bot_token}/getFile"

        if self.client is not None:
            response = await self.client.get(url, params={"file_id": file_id})
        else:
            async with httpx.AsyncClient() as client:
                response = await client.get(url, params={"file_id": file_id}, timeout=10.0)

        if not response.is_success:
            raise TelegramLinkError(
                f"Failed to get file info: {response.status_code} {response.reason_phrase}"
            )

        try:
            data = response.json()
        except ValueError:
            data = None

        result = data.get("result") if isinstance(data, dict) else None
        if not isinstance(data, dict) or not data.get("ok") or not isinstance(result, dict) \
                or not result.get("file_path"):
            raise TelegramLinkError("Invalid response from getFile API or file not found")

        return result["file_path"]

    async def build_link(self, file_id: str) -> str:
        """
        Produce an encrypted proxy link for a Telegram file.

        Args:
            file_id: Telegram file_id

        Returns:
            Proxy URL whose ``q`` hides the Telegram file URL
        """
        file_id = (file_id or "").strip()
        if not file_id:
            raise TelegramLinkError("File ID must not be empty")

        file_path = await self.get_file_path(file_id)
        link = build_proxy_url(self.worker_url, self.file_url(file_path), self._aes_key)

        logger.info("Built Telegram file proxy link")
        return link
