"""
ProofChain - HTTP Client Factory
Outbound HTTP client management for model backends, roster and webhook calls
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

USER_AGENT = "ProofChain/1.0.0"


def build_timeout(seconds: float) -> httpx.Timeout:
    """Bounded timeout applied to every outbound call."""
    return httpx.Timeout(seconds, connect=min(seconds, 10.0))


@asynccontextmanager
async def http_client(
    timeout_seconds: float,
    client: httpx.AsyncClient | None = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield an AsyncClient for one outbound call.

    An injected client is reused and left open for its owner; otherwise a
    short-lived client is created and closed on exit.
    """
    if client is not None:
        yield client
        return

    async with httpx.AsyncClient(
        timeout=build_timeout(timeout_seconds),
        headers={"User-Agent": USER_AGENT},
    ) as owned:
        yield owned
