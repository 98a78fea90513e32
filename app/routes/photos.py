"""
Photo routes.

Single-photo download proxy (public) plus the authenticated operations used
by the studio dashboard: Cloudinary upload signatures, saving photo records
after an upload, and deleting photos.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from starlette.background import BackgroundTask
from typing import Optional
from urllib.parse import quote, urlsplit
import httpx
import logging
import uuid

from app.config import settings
from app.database import get_db
from app.errors import AppError, ClientNotFoundError, PhotoNotFoundError
from app.http_client import get_http_client
from app.models import Client, Photo
from app.schemas import (
    ErrorResponse,
    SavePhotoRequest,
    SuccessResponse,
    UploadSignatureRequest,
    UploadSignatureResponse,
)
from app.services.cloudinary_service import delete_image, sign_upload_request
from app.services.filenames import resolve_download_filename, resolve_stored_filename
from app.services.media_fetcher import fetch_image_stream
from app.utils.jwt_auth import CurrentUser, require_permission
from app.utils.rate_limit import limiter, RATE_LIMITS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/photos")


def is_allowed_download_url(url: str) -> bool:
    """Only proxy http(s) URLs on configured asset hosts (or their subdomains)."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return False
    host = parts.hostname.lower()
    return any(
        host == allowed.lower() or host.endswith("." + allowed.lower())
        for allowed in settings.ALLOWED_DOWNLOAD_HOSTS
    )


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and an RFC 5987 UTF-8 name."""
    fallback = filename.encode("ascii", "ignore").decode("ascii").replace('"', "").replace("\\", "")
    fallback = fallback.strip() or "photo.jpg"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


async def _get_client_or_404(db: AsyncSession, client_id: str) -> Client:
    try:
        uuid.UUID(str(client_id))
    except ValueError:
        raise ClientNotFoundError()

    result = await db.execute(select(Client).where(Client.id == str(client_id)))
    client = result.scalars().first()
    if client is None:
        raise ClientNotFoundError()
    return client


@router.get(
    "/download",
    response_class=StreamingResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or disallowed URL"},
        502: {"model": ErrorResponse, "description": "Asset host did not return the photo"},
    },
)
@limiter.limit(RATE_LIMITS["download"])
async def download_photo(
    request: Request,
    url: str = Query(..., description="Photo delivery URL"),
    filename: Optional[str] = Query(None, description="Preferred download filename"),
    public_id: Optional[str] = Query(None, description="Cloudinary public ID"),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    """
    Download a single photo as an attachment.

    Uses the same redirect and stale-version handling as gallery ZIP
    downloads, and the same filename rules.
    """
    if not url.strip() or not is_allowed_download_url(url):
        raise AppError("Invalid photo URL", status.HTTP_400_BAD_REQUEST)

    response = await fetch_image_stream(http_client, url, allow_url=is_allowed_download_url)
    if response is None:
        raise AppError("Failed to fetch photo", status.HTTP_502_BAD_GATEWAY)

    name = resolve_download_filename(filename, url, public_id)
    media_type = response.headers.get("content-type", "application/octet-stream")

    return StreamingResponse(
        response.aiter_bytes(),
        media_type=media_type,
        headers={"Content-Disposition": content_disposition(name)},
        background=BackgroundTask(response.aclose),
    )


@router.post("/upload-signature", response_model=UploadSignatureResponse)
async def get_upload_signature(
    body: UploadSignatureRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission("upload_photos", "manage_photos")),
):
    """
    Sign a direct browser-to-Cloudinary upload for a client's folder.

    Raises:
        AppError: 400 if clientId is missing
        ClientNotFoundError: 404 if the client does not exist
        HTTPException: 500 if Cloudinary is not configured
    """
    if not body.clientId:
        raise AppError("Client ID required", status.HTTP_400_BAD_REQUEST)

    await _get_client_or_404(db, body.clientId)

    try:
        signed = sign_upload_request(body.clientId)
    except ValueError as e:
        logger.error(f"Cannot sign upload for client {body.clientId}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Upload signing not configured"}
        )

    logger.info(f"Issued upload signature for client {body.clientId} to user {user.id}")

    return UploadSignatureResponse(
        timestamp=signed["timestamp"],
        signature=signed["signature"],
        folder=signed["folder"],
        cloudName=signed["cloud_name"],
        apiKey=signed["api_key"],
        cloud_name=signed["cloud_name"],
        api_key=signed["api_key"],
    )


@router.post("/save-record", response_model=SuccessResponse)
async def save_photo_record(
    body: SavePhotoRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission()),
):
    """
    Save a photo row after the browser finished uploading it to Cloudinary.
    """
    if not body.clientId or not body.publicId or not body.url:
        raise AppError("Missing required fields", status.HTTP_400_BAD_REQUEST)

    client = await _get_client_or_404(db, body.clientId)

    photo = Photo(
        client_id=client.id,
        url=body.url,
        filename=resolve_stored_filename(body.filename, body.publicId),
        public_id=body.publicId,
    )
    db.add(photo)
    await db.flush()

    logger.info(f"Saved photo {photo.id} ({body.publicId}) for client {body.clientId}")
    return SuccessResponse(success=True)


@router.delete("/{photo_id}", response_model=SuccessResponse)
async def delete_photo(
    photo_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission("manage_photos", "delete_photos")),
):
    """
    Delete a photo from Cloudinary and the database.

    A Cloudinary failure is logged and the database row is still removed.
    """
    try:
        uuid.UUID(photo_id)
    except ValueError:
        raise PhotoNotFoundError()

    result = await db.execute(select(Photo).where(Photo.id == photo_id))
    photo = result.scalars().first()
    if photo is None:
        raise PhotoNotFoundError()

    if photo.public_id:
        try:
            await delete_image(photo.public_id)
        except Exception as e:
            logger.error(f"Failed to delete from Cloudinary: {photo.public_id}: {str(e)}")

    await db.execute(delete(Photo).where(Photo.id == photo_id))

    logger.info(f"Deleted photo {photo_id} (user {user.id})")
    return SuccessResponse(success=True)
