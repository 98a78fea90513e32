"""
Gallery resolution for the public gallery endpoints.

The studio service is asked first; the legacy database answers whenever the
studio service has no record of the slug or cannot be reached.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import GalleryNotFoundError, NoPhotosError
from app.models import Client, Photo
from app.schemas import GalleryClient, GalleryPhoto, GalleryResponse
from app.services.studio_client import RemoteError, RemoteHit, RemoteMiss, StudioClient

logger = logging.getLogger(__name__)


async def lookup_studio_gallery(studio: StudioClient, slug: str) -> Optional[Dict[str, Any]]:
    """
    Ask the studio service for a gallery.

    Returns:
        The studio payload, or None when the legacy database should answer.
    """
    result = await studio.get_legacy_gallery(slug)

    if isinstance(result, RemoteHit):
        logger.info(f"Gallery '{slug}' served by studio service")
        return result.payload
    if isinstance(result, RemoteMiss):
        logger.debug(f"Gallery '{slug}' not found on studio service, using legacy DB")
        return None
    if isinstance(result, RemoteError):
        logger.warning(f"Studio gallery lookup failed for '{slug}', falling back to legacy DB: {result.reason}")
    return None


async def _load_local_gallery(db: AsyncSession, slug: str, not_found_message: str) -> Tuple[Client, List[Photo]]:
    result = await db.execute(select(Client).where(Client.slug == slug))
    client = result.scalars().first()
    if client is None:
        logger.info(f"Gallery '{slug}' not found in legacy DB")
        raise GalleryNotFoundError(not_found_message)

    photos_result = await db.execute(
        select(Photo)
        .where(Photo.client_id == client.id)
        .order_by(Photo.created_at.desc())
    )
    return client, list(photos_result.scalars().all())


def _studio_photos(payload: Dict[str, Any], slug: str) -> List[GalleryPhoto]:
    raw = payload.get("photos")
    if not isinstance(raw, list):
        return []

    photos = []
    for item in raw:
        try:
            photos.append(GalleryPhoto.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping malformed studio photo in gallery '{slug}': {e.error_count()} error(s)")
    return photos


async def resolve_gallery(db: AsyncSession, studio: StudioClient, slug: str) -> Dict[str, Any]:
    """
    Gallery metadata and photos for GET /api/gallery/{slug}.

    A studio payload is returned verbatim. Otherwise the legacy database is
    queried and photos are ordered newest first.

    Raises:
        GalleryNotFoundError: slug unknown to both sources
    """
    payload = await lookup_studio_gallery(studio, slug)
    if payload is not None:
        return payload

    client, photos = await _load_local_gallery(db, slug, "Client not found")
    gallery = GalleryResponse(
        **GalleryClient.model_validate(client).model_dump(),
        photos=[GalleryPhoto.model_validate(photo) for photo in photos],
    )
    logger.info(f"Gallery '{slug}' served from legacy DB with {len(photos)} photos")
    return gallery.model_dump(mode="json")


async def resolve_gallery_for_download(
    db: AsyncSession,
    studio: StudioClient,
    slug: str,
) -> Tuple[GalleryClient, List[GalleryPhoto]]:
    """
    Gallery and photo list for a ZIP download.

    Raises:
        GalleryNotFoundError: slug unknown to both sources
        NoPhotosError: the gallery has no photo with a URL
    """
    gallery: Optional[GalleryClient] = None
    photos: List[GalleryPhoto] = []

    payload = await lookup_studio_gallery(studio, slug)
    if payload is not None:
        try:
            gallery = GalleryClient.model_validate(payload)
            photos = _studio_photos(payload, slug)
        except ValidationError as e:
            logger.warning(f"Studio payload for '{slug}' is not a valid gallery, falling back to legacy DB: {str(e)}")
            gallery = None

    if gallery is None:
        client, rows = await _load_local_gallery(db, slug, "Gallery not found")
        gallery = GalleryClient.model_validate(client)
        photos = [GalleryPhoto.model_validate(row) for row in rows]

    if not any(photo.url for photo in photos):
        logger.warning(f"Download requested for gallery '{slug}' with no downloadable photos")
        raise NoPhotosError()

    return gallery, photos
