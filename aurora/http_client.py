"""Shared HTTP client and concurrency semaphore for live providers."""

import asyncio
import logging
from typing import Optional

import httpx

from .config import Config

logger = logging.getLogger(__name__)

# Global HTTP client (for connection pooling)
_http_client: Optional[httpx.AsyncClient] = None


def get_http_client(config: Optional[Config] = None) -> httpx.AsyncClient:
    """Get or create global HTTP client."""
    global _http_client
    if _http_client is None:
        timeout = config.http_timeout if config is not None else 30
        _http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=httpx.Limits(max_keepalive_connections=20, max_connections=50),
        )
        logger.debug("Created shared HTTP client (timeout=%ss)", timeout)
    return _http_client


async def close_http_client() -> None:
    """Close global HTTP client."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def make_semaphore(config: Config) -> asyncio.Semaphore:
    """Semaphore bounding concurrent upstream requests."""
    return asyncio.Semaphore(config.max_concurrent_requests)
