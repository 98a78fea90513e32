"""
Filename helpers for downloaded and uploaded photos.
Pure functions, no I/O.
"""
import re
from typing import Optional
from urllib.parse import unquote, urlsplit

_UNSAFE_ARCHIVE_CHARS = re.compile(r"[^a-zA-Z0-9]")


def _clean(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    trimmed = value.strip()
    return trimmed or None


def _decode(segment: str) -> Optional[str]:
    try:
        return unquote(segment, errors="strict")
    except UnicodeDecodeError:
        return None


def extract_filename_from_url(url: Optional[str]) -> Optional[str]:
    """
    Return the percent-decoded last path segment of a URL.

    Values that do not parse as an absolute URL are split naively on '?'
    and '/'. Returns None when there is no usable segment or it cannot be
    decoded.
    """
    if not url:
        return None

    try:
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"Not an absolute URL: {url}")
        segment = parts.path.split("/")[-1]
    except ValueError:
        segment = url.split("?")[0].split("/")[-1]

    if not segment:
        return None
    return _decode(segment)


def resolve_download_filename(
    filename: Optional[str] = None,
    url: Optional[str] = None,
    public_id: Optional[str] = None,
    fallback_id: Optional[str] = None,
) -> str:
    """
    Pick the name a photo is saved under when downloaded.

    Priority:
        1. explicit filename (blank counts as missing)
        2. last segment of the photo URL
        3. last segment of the Cloudinary public ID
        4. photo_<fallback_id>.jpg

    Always returns a non-empty string.
    """
    direct = _clean(filename)
    if direct:
        return direct

    from_url = _clean(extract_filename_from_url(url))
    if from_url:
        return from_url

    if public_id:
        base = public_id.split("/")[-1]
        return base or public_id

    return f"photo_{fallback_id or 'image'}.jpg"


def resolve_stored_filename(filename: Optional[str], public_id: str) -> str:
    """Filename recorded for a freshly uploaded photo."""
    direct = _clean(filename)
    if direct:
        return direct
    return public_id.split("/")[-1] or "uploaded_file"


def archive_filename(gallery_name: str) -> str:
    """Attachment name for a gallery ZIP, e.g. 'Smith_Wedding_Gallery.zip'."""
    return f"{_UNSAFE_ARCHIVE_CHARS.sub('_', gallery_name or '')}_Gallery.zip"
