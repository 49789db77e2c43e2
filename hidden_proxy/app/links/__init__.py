"""
Links Package

Producer side of the proxy protocol: encrypting target URLs into proxy
links, including links to files hosted on Telegram.
"""

from .builder import build_proxy_url, generate_key, resolve_key, seal_url
from .telegram import TelegramFileLinker, TelegramLinkError

__all__ = [
    "TelegramFileLinker",
    "TelegramLinkError",
    "build_proxy_url",
    "generate_key",
    "resolve_key",
    "seal_url",
]
