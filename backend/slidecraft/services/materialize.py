"""
Background image resolution for exports.

Stored images are re-signed for a short window; external images are
downloaded once and re-hosted in storage so the rendering surface never
depends on a third-party host mid-export. A failure for one image only
drops that image.
"""

import io
import logging
import uuid
from dataclasses import replace
from typing import Optional
from urllib.parse import urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from slidecraft.config import get_settings
from slidecraft.renderer.background import Background, ImageSlot, SingleImage, image_slots, with_slots
from slidecraft.services.storage import LocalStorage, materialized_path

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)
REJECTED_TYPES = ("text/html", "text/plain")
IMAGE_EXTENSIONS = {".jpg": "jpg", ".jpeg": "jpg", ".png": "png", ".webp": "webp", ".gif": "gif"}
FORMAT_TO_EXT = {"JPEG": "jpg", "PNG": "png", "WEBP": "webp", "GIF": "gif"}
CONTENT_TYPES = {"jpg": "image/jpeg", "png": "image/png", "webp": "image/webp", "gif": "image/gif"}


class MaterializeError(Exception):
    pass


def _url_extension(url: str) -> Optional[str]:
    path = urlparse(url).path.lower()
    for suffix, ext in IMAGE_EXTENSIONS.items():
        if path.endswith(suffix):
            return ext
    return None


def validate_image_response(url: str, content_type: str, data: bytes, max_bytes: int) -> str:
    """Check a fetched payload is an image; returns the file extension to store it under."""
    content_type = (content_type or "").split(";")[0].strip().lower()
    if content_type in REJECTED_TYPES:
        raise MaterializeError(f"Not an image ({content_type})")
    if not (content_type.startswith("image/") or content_type == "application/octet-stream"
            or _url_extension(url)):
        raise MaterializeError(f"Unexpected content type {content_type or 'none'}")
    if not data:
        raise MaterializeError("Empty response")
    if len(data) > max_bytes:
        raise MaterializeError(f"Image too large ({len(data)} bytes)")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            image_format = img.format
    except Image.DecompressionBombError as e:
        raise MaterializeError(f"Image dimensions too large: {e}") from e
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise MaterializeError(f"Undecodable image: {e}") from e
    return FORMAT_TO_EXT.get(image_format) or _url_extension(url) or "jpg"


class ImageResolver:
    """Turns background image references into URLs the renderer can load."""

    def __init__(self, storage: LocalStorage, user_id: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.storage = storage
        self.user_id = user_id
        self.transport = transport
        self.settings = get_settings()
        self._cache = {}

    async def materialize(self, url: str) -> str:
        """Download an external image, store it, and return a short-lived signed URL."""
        if url in self._cache:
            return self._cache[url]

        parsed = urlparse(url)
        headers = {
            "User-Agent": BROWSER_USER_AGENT,
            "Accept": "image/*",
            "Referer": f"{parsed.scheme}://{parsed.netloc}/",
        }
        async with httpx.AsyncClient(timeout=self.settings.materialize_timeout, follow_redirects=True,
                                     transport=self.transport) as client:
            response = await client.get(url, headers=headers)
        if response.status_code != 200:
            raise MaterializeError(f"HTTP {response.status_code}")

        ext = validate_image_response(url, response.headers.get("content-type", ""), response.content,
                                      self.settings.materialize_max_bytes)
        path = materialized_path(self.user_id, f"{uuid.uuid4()}.{ext}")
        await self.storage.upload(path, response.content, CONTENT_TYPES[ext])
        signed = self.storage.sign(path, self.settings.image_url_expires)
        self._cache[url] = signed
        logger.info("Materialized %s -> %s", parsed.netloc, path)
        return signed

    async def resolve_slot(self, slot: Optional[ImageSlot]) -> Optional[ImageSlot]:
        """Slot with a loadable URL, or None when the image can't be resolved."""
        if slot is None or not slot.has_reference:
            return None
        try:
            if slot.storage_path:
                if not self.storage.exists(slot.storage_path):
                    raise MaterializeError(f"Missing stored image {slot.storage_path}")
                url = self.storage.sign(slot.storage_path, self.settings.image_url_expires)
            elif slot.url.startswith("data:") or self.storage.is_storage_url(slot.url):
                url = slot.url
            else:
                url = await self.materialize(slot.url)
        except (MaterializeError, httpx.HTTPError) as e:
            logger.warning("Skipping background image %s: %s", slot.storage_path or slot.url, e)
            return None
        return replace(slot, url=url)

    async def resolve_background(self, background: Background) -> Background:
        """Resolve every image of a background, dropping the ones that fail."""
        slots = []
        for slot in image_slots(background):
            resolved = await self.resolve_slot(slot)
            if resolved is not None:
                slots.append(resolved)
        secondary = None
        if isinstance(background, SingleImage) and background.secondary is not None:
            secondary = await self.resolve_slot(background.secondary)
        return with_slots(background, slots, secondary)

    async def resolve_alternate(self, url: str) -> Optional[str]:
        """Video background alternates: same rules as a slot URL."""
        resolved = await self.resolve_slot(ImageSlot(url=url))
        return resolved.url if resolved else None
