"""
Remote image fetching for gallery and single-photo downloads.

Follows redirects by hand so the number of hops is bounded, and retries
Cloudinary URLs whose version segment has gone stale.
"""
import logging
import re
from typing import Callable, Optional

import httpx

logger = logging.getLogger(__name__)

# Redirect and version-retry hops share this budget
MAX_FETCH_ATTEMPTS = 3

_VERSION_SEGMENT = re.compile(r"/upload/v\d+/")


def strip_version_segment(url: str) -> Optional[str]:
    """
    Drop the '/v<digits>/' version from a Cloudinary delivery URL.

    Returns None when the URL carries no version segment.
    """
    if not _VERSION_SEGMENT.search(url):
        return None
    return _VERSION_SEGMENT.sub("/upload/", url, count=1)


async def _discard(response: httpx.Response) -> None:
    try:
        await response.aread()
    except httpx.HTTPError:
        pass
    finally:
        await response.aclose()


async def fetch_image_stream(
    client: httpx.AsyncClient,
    url: str,
    allow_url: Optional[Callable[[str], bool]] = None,
) -> Optional[httpx.Response]:
    """
    GET an image and return the open streaming response.

    Args:
        client: Shared HTTP client
        url: Absolute image URL
        allow_url: Optional check applied to every redirect target and
            version-stripped URL before it is requested

    Returns:
        httpx.Response with an unread body on HTTP 200, or None when the
        image could not be fetched. The caller must close the response.

    Never raises for network, protocol or URL errors; they are logged and
    reported as None.
    """
    attempt = 1
    visited = set()
    current = url

    while True:
        visited.add(current)
        try:
            request = client.build_request("GET", current)
            response = await client.send(request, stream=True, follow_redirects=False)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.error(f"Request error: {str(e) or type(e).__name__} {current}")
            return None

        status_code = response.status_code

        if 300 <= status_code < 400 and response.headers.get("location"):
            location = response.headers["location"]
            await _discard(response)
            if attempt > MAX_FETCH_ATTEMPTS:
                logger.error(f"Too many redirects for {current}")
                return None
            try:
                next_url = str(response.url.join(location))
            except (httpx.InvalidURL, ValueError) as e:
                logger.error(f"Invalid redirect location {location!r} from {current}: {str(e)}")
                return None
            if next_url in visited:
                logger.error(f"Redirect loop detected for {url} at {next_url}")
                return None
            if allow_url is not None and not allow_url(next_url):
                logger.error(f"Redirect to disallowed URL {next_url} from {current}")
                return None
            current = next_url
            attempt += 1
            continue

        if status_code == 200:
            return response

        if status_code == 404:
            unversioned = strip_version_segment(current)
            if unversioned and attempt <= MAX_FETCH_ATTEMPTS and unversioned not in visited:
                await _discard(response)
                if allow_url is not None and not allow_url(unversioned):
                    logger.error(f"Disallowed retry URL {unversioned}")
                    return None
                logger.info(f"Retrying 404 URL without version: {unversioned}")
                current = unversioned
                attempt += 1
                continue

        await _discard(response)
        logger.error(f"Failed to fetch: {status_code} {current}")
        return None
