"""
Shared outbound HTTP client.
One httpx.AsyncClient per process, created on startup and closed on shutdown.
"""
import httpx
from fastapi import Request

from app.config import settings


def create_http_client() -> httpx.AsyncClient:
    """Build the pooled client used for asset and studio requests."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.ASSET_FETCH_TIMEOUT, connect=10.0),
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
        follow_redirects=False,
    )


def get_http_client(request: Request) -> httpx.AsyncClient:
    """FastAPI dependency returning the shared client from app state."""
    return request.app.state.http_client
