"""Client for the external URL scanner that classifies unseen domains.

Submission is one-way: the scanner later posts its verdict back through
``POST /submit-phishing``.
"""

from __future__ import annotations

import httpx
import structlog

logger = structlog.get_logger()


class ScannerClient:
    """Submit URLs for asynchronous classification."""

    def __init__(self, http: httpx.AsyncClient, base_url: str, api_key: str = "") -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key

    async def submit(self, url: str) -> None:
        """Queue ``url`` for scanning. Raises httpx.HTTPError if the scanner rejects it."""
        resp = await self.http.post(
            f"{self.base_url}/add-url",
            json={"url": url},
            headers={"x-api-key": self.api_key},
        )
        resp.raise_for_status()
        logger.info("scan_submitted", status=resp.status_code)


_client: ScannerClient | None = None


async def init_scanner(base_url: str, api_key: str, timeout: float) -> None:
    """Create the shared scanner client."""
    global _client  # noqa: PLW0603
    _client = ScannerClient(httpx.AsyncClient(timeout=timeout), base_url, api_key)


async def close_scanner() -> None:
    global _client  # noqa: PLW0603
    if _client:
        await _client.http.aclose()
        _client = None


def get_scanner() -> ScannerClient:
    """Get the scanner client (FastAPI dependency)."""
    if _client is None:
        msg = "Scanner not initialized. Call init_scanner() first."
        raise RuntimeError(msg)
    return _client
