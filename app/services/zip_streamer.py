"""
Streaming ZIP archives of gallery photos.

Photos are fetched one at a time and written into a zipfile.ZipFile whose
underlying file only collects bytes; whatever the archive writes is handed
to the HTTP response right away, so the full archive never sits in memory.
"""
import asyncio
import logging
import os
import tempfile
import zipfile
from typing import AsyncIterator, List, Optional, Set

import httpx

from app.config import settings
from app.schemas import GalleryClient, GalleryPhoto
from app.services.filenames import resolve_download_filename
from app.services.media_fetcher import fetch_image_stream

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024
# Entries above this size need zip64 headers up front
_ZIP64_THRESHOLD = (1 << 31) - 1


class _ChunkSink:
    """
    Write-only file object for zipfile.

    Has no tell()/seek(), so ZipFile treats it as unseekable and writes
    data descriptors after each entry instead of seeking back.
    """

    def __init__(self):
        self._chunks: List[bytes] = []

    def write(self, data) -> int:
        self._chunks.append(bytes(data))
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


def _unique_name(name: str, used: Set[str]) -> str:
    if name not in used:
        used.add(name)
        return name
    stem, ext = os.path.splitext(name)
    n = 2
    while f"{stem} ({n}){ext}" in used:
        n += 1
    unique = f"{stem} ({n}){ext}"
    used.add(unique)
    return unique


def _write_block(entry, block: bytes) -> None:
    entry.write(block)


async def _spool_response(response: httpx.Response, spool) -> int:
    """Copy an open response body into the spool file. Always closes the response."""
    size = 0
    try:
        async for chunk in response.aiter_bytes():
            spool.write(chunk)
            size += len(chunk)
    finally:
        await response.aclose()
    return size


async def stream_gallery_archive(
    gallery: GalleryClient,
    photos: List[GalleryPhoto],
    client: httpx.AsyncClient,
    compresslevel: Optional[int] = None,
    spool_max_bytes: Optional[int] = None,
) -> AsyncIterator[bytes]:
    """
    Yield a ZIP archive containing every photo that could be fetched.

    Photos are processed in the given order, strictly one after another.
    A photo without a URL, or whose fetch or body read fails, is skipped;
    the archive is still completed with the remaining entries.

    Args:
        gallery: Gallery the photos belong to (used for logging)
        photos: Photos to include
        client: Shared HTTP client for the asset host
        compresslevel: Deflate level, defaults to ZIP_COMPRESSION_LEVEL
        spool_max_bytes: In-memory spool size per photo before using disk

    Yields:
        Raw ZIP bytes, in order.
    """
    if compresslevel is None:
        compresslevel = settings.ZIP_COMPRESSION_LEVEL
    if spool_max_bytes is None:
        spool_max_bytes = settings.ZIP_SPOOL_MAX_BYTES

    sink = _ChunkSink()
    archive = zipfile.ZipFile(sink, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=compresslevel)
    used_names: Set[str] = set()
    added = 0
    skipped = 0

    try:
        for photo in photos:
            if not photo.url:
                continue

            entry_name = resolve_download_filename(photo.filename, photo.url, photo.public_id, photo.id)

            response = await fetch_image_stream(client, photo.url)
            if response is None:
                logger.error(f"Failed to fetch image: {photo.url}")
                skipped += 1
                continue

            with tempfile.SpooledTemporaryFile(max_size=spool_max_bytes) as spool:
                try:
                    size = await _spool_response(response, spool)
                except (httpx.HTTPError, OSError) as e:
                    logger.error(f"Stream error for {photo.url}: {str(e) or type(e).__name__}")
                    skipped += 1
                    continue

                spool.seek(0)
                name = _unique_name(entry_name, used_names)
                with archive.open(name, mode="w", force_zip64=size >= _ZIP64_THRESHOLD) as entry:
                    while True:
                        block = spool.read(COPY_CHUNK_SIZE)
                        if not block:
                            break
                        # deflate runs in a worker thread
                        await asyncio.to_thread(_write_block, entry, block)
                        data = sink.drain()
                        if data:
                            yield data
                added += 1

            data = sink.drain()
            if data:
                yield data

    except (GeneratorExit, asyncio.CancelledError):
        logger.info(
            f"Download of gallery {gallery.id} aborted by client after {added} of {len(photos)} photos"
        )
        raise

    try:
        archive.close()
    except Exception as e:
        logger.error(f"Failed to finalize archive for gallery {gallery.id}: {str(e)}", exc_info=True)

    data = sink.drain()
    if data:
        yield data

    logger.info(
        f"Streamed gallery {gallery.id} archive: {added} entries, {skipped} failed, "
        f"{len(photos) - added - skipped} without URL"
    )
