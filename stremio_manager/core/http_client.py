"""
Shared HTTP client.

Provides a singleton httpx.AsyncClient for connection pooling and efficient resource usage.
"""
import asyncio
from typing import Optional

import httpx
from stremio_manager.core.config import settings
from stremio_manager.core.logging_config import log_info

_client: Optional[httpx.AsyncClient] = None
_client_lock: Optional[asyncio.Lock] = None


def _get_lock() -> asyncio.Lock:
    """Get or create the client lock."""
    global _client_lock
    if _client_lock is None:
        _client_lock = asyncio.Lock()
    return _client_lock


async def get_http_client() -> httpx.AsyncClient:
    """
    Get the shared AsyncClient instance.

    Creates a new instance if one doesn't exist or is closed. Per-request
    timeouts override the default set here.
    """
    global _client
    if _client is None or _client.is_closed:
        async with _get_lock():
            if _client is None or _client.is_closed:
                _client = httpx.AsyncClient(
                    timeout=settings.api_timeout,
                    headers={"Content-Type": "application/json"},
                )
                log_info("HTTP client created", timeout=settings.api_timeout)
    return _client


async def close_http_client():
    """Close the shared client if it exists."""
    global _client
    async with _get_lock():
        if _client and not _client.is_closed:
            await _client.aclose()
            _client = None
            log_info("HTTP client closed")
