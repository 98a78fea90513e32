"""
Rate limiting utilities for API endpoints.
Uses slowapi to keep public gallery and download endpoints from being hammered.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from app.config import settings


def get_client_identifier(request: Request) -> str:
    """
    Get client identifier for rate limiting.
    Uses forwarded IP if behind proxy, otherwise remote address.

    Args:
        request: FastAPI request object

    Returns:
        str: Client identifier (IP address)
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First IP in the chain is the original client
        return forwarded.split(",")[0].strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_identifier,
    storage_uri="memory://"  # Per-process counters
)


RATE_LIMITS = {
    "gallery": settings.GALLERY_RATE_LIMIT,
    "download": settings.GALLERY_RATE_LIMIT,
}
