"""
Artifact storage.

Files live under `storage_root` on local disk and are handed out as
HMAC-signed, time-limited URLs served by `GET /api/files/{path}`.
"""

import asyncio
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlencode, urlparse

from slidecraft.config import get_settings
from slidecraft.services.errors import UploadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportPaths:
    """Storage layout of one export: user/{u}/exports/{carousel}/{export}/..."""
    user_id: str
    carousel_id: str
    export_id: str

    @property
    def root(self) -> str:
        return f"user/{self.user_id}/exports/{self.carousel_id}/{self.export_id}"

    def slide(self, index: int, ext: str) -> str:
        return f"{self.root}/slides/{index:02d}.{ext}"

    def overlay(self, index: int) -> str:
        return f"{self.root}/overlays/{index:02d}.png"

    def video_background(self, index: int, variant: int) -> str:
        return f"{self.root}/video-bg/{index:02d}/{variant:02d}.png"

    @property
    def archive(self) -> str:
        return f"{self.root}/carousel.zip"


def materialized_path(user_id: str, name: str) -> str:
    return f"user/{user_id}/materialized/{name}"


class LocalStorage:
    def __init__(self, root: str, public_base_url: str, secret: str):
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")
        self._secret = secret.encode("utf-8")

    def _resolve(self, path: str) -> Path:
        target = (self.root / path.lstrip("/")).resolve()
        if target != self.root and self.root not in target.parents:
            raise ValueError(f"Path escapes storage root: {path}")
        return target

    def _write(self, path: str, data: bytes):
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    async def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Persist `data` at `path`. Any failure is an UploadError."""
        try:
            await asyncio.to_thread(self._write, path, data)
        except (OSError, ValueError) as e:
            logger.error("Upload failed for %s: %s", path, e)
            raise UploadError(f"Failed to store {path.rsplit('/', 1)[-1]}") from e
        logger.debug("Stored %s (%d bytes, %s)", path, len(data), content_type)
        return path

    async def download(self, path: str) -> bytes:
        return await asyncio.to_thread(self._resolve(path).read_bytes)

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).is_file()
        except ValueError:
            return False

    def local_path(self, path: str) -> Path:
        return self._resolve(path)

    # ============================================
    # SIGNED URLS
    # ============================================

    def _signature(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def sign(self, path: str, expires_in: int, now: Optional[float] = None) -> str:
        expires = int((now if now is not None else time.time()) + expires_in)
        query = urlencode({"expires": expires, "sig": self._signature(path, expires)})
        return f"{self.public_base_url}/api/files/{quote(path)}?{query}"

    def verify(self, path: str, expires: int, signature: str, now: Optional[float] = None) -> bool:
        if expires < (now if now is not None else time.time()):
            return False
        return hmac.compare_digest(self._signature(path, expires), signature or "")

    def is_storage_url(self, url: str) -> bool:
        """True for URLs this store handed out (same host as the public base URL)."""
        try:
            return urlparse(url).netloc == urlparse(self.public_base_url).netloc
        except ValueError:
            return False


_storage: Optional[LocalStorage] = None


def get_storage() -> LocalStorage:
    global _storage
    if _storage is None:
        settings = get_settings()
        _storage = LocalStorage(settings.storage_root, settings.public_base_url, settings.signing_secret)
    return _storage
