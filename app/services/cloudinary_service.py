"""
Cloudinary service for signed uploads and asset deletion.
Browsers upload directly to Cloudinary with a signature issued here; the
resulting public ID is later used to delete the asset.
"""
import cloudinary
import cloudinary.uploader
import cloudinary.utils
from cloudinary.exceptions import Error as CloudinaryError
from app.config import settings
import logging
import asyncio
import time
from typing import Dict, Any

logger = logging.getLogger(__name__)

# Configure Cloudinary with credentials from settings
cloudinary.config(
    cloud_name=settings.CLOUDINARY_CLOUD_NAME,
    api_key=settings.CLOUDINARY_API_KEY,
    api_secret=settings.CLOUDINARY_API_SECRET,
    secure=True  # Always use HTTPS for secure URLs
)


def upload_folder(client_id: str) -> str:
    """
    Cloudinary folder for a client's photos.
    Non-production uploads go to a separate '-demo' folder.
    """
    base = settings.CLOUDINARY_FOLDER
    if not settings.is_production:
        base = f"{base}-demo"
    return f"{base}/{client_id}"


def sign_upload_request(client_id: str) -> Dict[str, Any]:
    """
    Sign upload parameters for a direct browser-to-Cloudinary upload.

    Args:
        client_id: Client the photos will belong to

    Returns:
        dict: timestamp, signature, folder, cloud_name, api_key

    Raises:
        ValueError: If Cloudinary credentials are not configured
    """
    if not settings.CLOUDINARY_API_SECRET:
        raise ValueError("CLOUDINARY_API_SECRET not configured")

    timestamp = int(time.time())
    folder = upload_folder(client_id)
    signature = cloudinary.utils.api_sign_request(
        {"timestamp": timestamp, "folder": folder},
        settings.CLOUDINARY_API_SECRET,
    )

    return {
        "timestamp": timestamp,
        "signature": signature,
        "folder": folder,
        "cloud_name": settings.CLOUDINARY_CLOUD_NAME,
        "api_key": settings.CLOUDINARY_API_KEY,
    }


async def delete_image(public_id: str, max_retries: int = 3) -> Dict[str, Any]:
    """
    Delete image from Cloudinary with retry logic.

    Args:
        public_id: Cloudinary public ID of the image to delete
        max_retries: Maximum number of retry attempts for transient failures

    Returns:
        dict: Deletion result from Cloudinary

    Raises:
        CloudinaryError: If deletion fails after all retries
    """
    for attempt in range(max_retries):
        try:
            # Invalidate so the CDN stops serving cached copies
            result = await asyncio.to_thread(
                cloudinary.uploader.destroy,
                public_id,
                invalidate=True,
                resource_type="image",
            )

            if result.get("result") in ("ok", "not found"):
                logger.info(f"Deleted from Cloudinary: {public_id} (result: {result.get('result')})")
            else:
                logger.warning(f"Unexpected Cloudinary delete result for {public_id}: {result}")
            return result

        except CloudinaryError as e:
            logger.warning(f"Cloudinary delete error (attempt {attempt + 1}/{max_retries}) for {public_id}: {str(e)}")

            # Retry with exponential backoff for transient failures
            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)  # 1s, 2s, 4s backoff
                continue

            logger.error(f"Cloudinary delete failed after {max_retries} attempts for {public_id}: {str(e)}")
            raise


def validate_cloudinary_config() -> bool:
    """
    Validate that Cloudinary is properly configured.

    Returns:
        bool: True if Cloudinary is configured, False otherwise
    """
    if not settings.CLOUDINARY_CLOUD_NAME:
        logger.warning("CLOUDINARY_CLOUD_NAME not configured")
        return False
    if not settings.CLOUDINARY_API_KEY:
        logger.warning("CLOUDINARY_API_KEY not configured")
        return False
    if not settings.CLOUDINARY_API_SECRET:
        logger.warning("CLOUDINARY_API_SECRET not configured")
        return False

    logger.info("Cloudinary configuration validated successfully")
    return True
