"""
Client for the studio service, the newer owner of gallery data.

Lookups return a tagged result instead of raising, so callers can decide
explicitly when to fall back to the legacy database.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from urllib.parse import quote

import httpx
from fastapi import Depends

from app.config import settings
from app.http_client import get_http_client

logger = logging.getLogger(__name__)

SYNC_SECRET_HEADER = "x-admin-sync-secret"


@dataclass(frozen=True)
class RemoteHit:
    """Studio service owns the gallery; payload is its JSON body."""
    payload: Dict[str, Any]


@dataclass(frozen=True)
class RemoteMiss:
    """Studio service answered 404."""


@dataclass(frozen=True)
class RemoteError:
    """Studio service unreachable, misconfigured or erroring."""
    reason: str
    status_code: Optional[int] = None


StudioLookup = Union[RemoteHit, RemoteMiss, RemoteError]


class StudioClient:
    """
    Read-only access to the studio service's internal API.

    Args:
        http_client: Shared HTTP client
        base_url: Studio API root, e.g. https://studio.example.com
        secret: Shared secret sent in the x-admin-sync-secret header
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: Optional[str],
        secret: Optional[str],
        timeout: float = 10.0,
    ):
        self.http_client = http_client
        self.base_url = (base_url or "").rstrip("/")
        self.secret = secret
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.secret)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get(self, path: str) -> StudioLookup:
        """
        GET a studio API path.

        Returns:
            RemoteHit with the decoded JSON body on 2xx,
            RemoteMiss on 404,
            RemoteError for anything else (never raises).
        """
        if not self.configured:
            return RemoteError("Studio API config missing")

        url = self._url(path)
        try:
            response = await self.http_client.get(
                url,
                headers={SYNC_SECRET_HEADER: self.secret},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            return RemoteError(f"Studio API request failed: {str(e) or type(e).__name__}")

        if response.status_code == 404:
            return RemoteMiss()

        if not response.is_success:
            return RemoteError(
                f"Studio API error ({response.status_code}): {response.text[:500]}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            return RemoteError(f"Studio API returned invalid JSON: {str(e)}", status_code=response.status_code)

        if not isinstance(payload, dict):
            return RemoteError("Studio API returned a non-object payload", status_code=response.status_code)

        return RemoteHit(payload)

    async def get_legacy_gallery(self, slug: str) -> StudioLookup:
        """Look up a gallery by slug on the studio service."""
        return await self.get(f"/api/internal/legacy/gallery/{quote(slug, safe='')}")


def get_studio_client(http_client: httpx.AsyncClient = Depends(get_http_client)) -> StudioClient:
    """
    FastAPI dependency returning a StudioClient bound to the shared HTTP client.
    """
    return StudioClient(
        http_client,
        base_url=settings.STUDIO_API_URL,
        secret=settings.ADMIN_SYNC_SECRET,
        timeout=settings.STUDIO_API_TIMEOUT,
    )
