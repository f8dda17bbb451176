"""Image metadata: size, MIME type and dimensions of an image URL."""

from io import BytesIO
from typing import Any, Mapping, Optional

import httpx
import structlog
from PIL import Image, UnidentifiedImageError

logger = structlog.get_logger()

IMAGE_META_FIELDS = ("url", "alt", "width", "height", "size", "mime")

HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Accept": "image/avif,image/webp,image/*,*/*;q=0.8",
}


def empty_image_meta(base: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
    meta = {field: None for field in IMAGE_META_FIELDS}
    meta.update({k: v for k, v in (base or {}).items() if k in meta})
    return meta


async def make_image_meta(
    url: Optional[str],
    base: Optional[Mapping[str, Any]] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> dict[str, Any]:
    """Download the image at `url` and describe it.

    Values already in `base` (typically `url` and `alt` scraped from the
    page) are kept. Metadata that cannot be read stays None.
    """
    meta = empty_image_meta(base)
    if not url:
        return meta
    meta["url"] = url

    own_client = client is None
    if own_client:
        client = httpx.AsyncClient(headers=HEADERS, timeout=30.0, follow_redirects=True)

    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.debug("Failed to fetch image", url=url, error=str(e))
        return meta
    finally:
        if own_client:
            await client.aclose()

    content = response.content
    meta["size"] = len(content)
    content_type = response.headers.get("content-type")
    if content_type:
        meta["mime"] = content_type.split(";")[0].strip()

    try:
        with Image.open(BytesIO(content)) as img:
            width, height = img.size
            if meta["width"] is None:
                meta["width"] = width
            if meta["height"] is None:
                meta["height"] = height
            if not meta["mime"] and img.format:
                meta["mime"] = Image.MIME.get(img.format)
    except (UnidentifiedImageError, OSError) as e:
        logger.debug("Failed to read image dimensions", url=url, error=str(e))

    return meta


class ImageMetaFetcher:
    """Shares one HTTP client across all image lookups of a crawl."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.client: Optional[httpx.AsyncClient] = None

    async def start(self):
        """Initialize the HTTP client."""
        if self.enabled:
            self.client = httpx.AsyncClient(headers=HEADERS, timeout=30.0, follow_redirects=True)

    async def stop(self):
        """Close the HTTP client."""
        if self.client:
            await self.client.aclose()
            self.client = None

    async def fetch(self, base: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        """Image metadata for an image record found on the page (`{url, alt, ...}`)."""
        base = base or {}
        if not self.enabled:
            return empty_image_meta(base)
        return await make_image_meta(base.get("url"), base, client=self.client)
