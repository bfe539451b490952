"""
Persistent HTTP client for the ingest endpoint.

The client is owned by the host: it is opened once at startup, shared by all
dispatch calls (``httpx.AsyncClient`` is safe for concurrent use), and closed
once at shutdown.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from .settings import IngestSettings


def open_ingest_client(settings: IngestSettings) -> httpx.AsyncClient:
    """Create a pooled client bound to ``settings.ingester_domain``."""
    return httpx.AsyncClient(
        base_url=settings.ingester_domain,
        timeout=httpx.Timeout(settings.timeout_seconds),
        limits=httpx.Limits(keepalive_expiry=settings.keep_alive_seconds),
    )


@asynccontextmanager
async def ingest_client(settings: IngestSettings) -> AsyncIterator[httpx.AsyncClient]:
    """Scoped form of ``open_ingest_client`` that always closes the pool."""
    client = open_ingest_client(settings)
    try:
        yield client
    finally:
        await client.aclose()
