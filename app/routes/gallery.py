"""
Public gallery routes (no authentication required).
Provides gallery metadata and full-gallery ZIP downloads by slug.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
import httpx
import logging

from app.database import get_db
from app.errors import AppError
from app.http_client import get_http_client
from app.schemas import ErrorResponse, GalleryResponse
from app.services.filenames import archive_filename
from app.services.gallery_service import resolve_gallery, resolve_gallery_for_download
from app.services.studio_client import StudioClient, get_studio_client
from app.services.zip_streamer import stream_gallery_archive
from app.utils.rate_limit import limiter, RATE_LIMITS

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/gallery/{slug}",
    responses={
        200: {"model": GalleryResponse},
        404: {"model": ErrorResponse, "description": "Gallery not found"},
    },
)
@limiter.limit(RATE_LIMITS["gallery"])
async def get_gallery(
    request: Request,
    slug: str,
    db: AsyncSession = Depends(get_db),
    studio: StudioClient = Depends(get_studio_client),
):
    """
    Get a public gallery by slug.

    The studio service is consulted first and its payload returned as-is;
    galleries it does not know about are served from the legacy database.

    Args:
        slug: Gallery slug
        db: Database session (injected by FastAPI dependency)
        studio: Studio service client (injected by FastAPI dependency)

    Returns:
        dict: Gallery metadata with its photos, newest first

    Raises:
        GalleryNotFoundError: 404 if neither source knows the slug
    """
    try:
        return await resolve_gallery(db, studio, slug)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error fetching gallery '{slug}': {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Internal Server Error"}
        )


@router.get(
    "/gallery/{slug}/download",
    response_class=StreamingResponse,
    responses={
        200: {"content": {"application/zip": {}}, "description": "ZIP archive of the gallery photos"},
        400: {"model": ErrorResponse, "description": "Gallery has no photos"},
        404: {"model": ErrorResponse, "description": "Gallery not found"},
    },
)
@limiter.limit(RATE_LIMITS["download"])
async def download_gallery(
    request: Request,
    slug: str,
    db: AsyncSession = Depends(get_db),
    studio: StudioClient = Depends(get_studio_client),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    """
    Download every photo of a gallery as one streamed ZIP archive.

    The gallery is resolved before any bytes are sent, so missing galleries
    and empty galleries still get a JSON error. Once streaming starts,
    photos that cannot be fetched are left out of the archive.
    """
    gallery, photos = await resolve_gallery_for_download(db, studio, slug)

    filename = archive_filename(gallery.name)
    logger.info(f"Streaming {len(photos)} photos of gallery '{slug}' as {filename}")

    return StreamingResponse(
        stream_gallery_archive(gallery, photos, http_client),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
