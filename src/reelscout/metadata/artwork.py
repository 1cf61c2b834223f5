"""Disk cache for TMDB artwork.

Layout, one file per (owner id, size variant):

    <root>/posters/<owner>_<variant>.jpg
    <root>/backdrops/<owner>_<variant>.jpg
    <root>/stills/<owner>_<variant>.jpg

Presence on disk is the cache; nothing is held in memory.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import httpx

from reelscout.metadata.errors import CacheFailedError, NetworkError
from reelscout.metadata.ports import ArtworkKind, ArtworkStore, OwnerId
from reelscout.models.artwork import BACKDROP_SIZES, POSTER_SIZES, STILL_SIZES
from reelscout.utils.formatting import human_readable_size
from reelscout.utils.locks import ReadWriteLock
from reelscout.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_IMAGE_BASE_URL = "https://image.tmdb.org/t/p"

VARIANTS = {
    ArtworkKind.POSTER: POSTER_SIZES,
    ArtworkKind.BACKDROP: BACKDROP_SIZES,
    ArtworkKind.STILL: STILL_SIZES,
}

_PARTITIONS = {
    ArtworkKind.POSTER: "posters",
    ArtworkKind.BACKDROP: "backdrops",
    ArtworkKind.STILL: "stills",
}


def image_url(base_url: str, remote_path: str, variant: str) -> str:
    """Build a CDN URL such as https://image.tmdb.org/t/p/w342/abc.jpg."""
    if not remote_path.startswith("/"):
        remote_path = f"/{remote_path}"
    return f"{base_url.rstrip('/')}/{variant}{remote_path}"


class ArtworkCache(ArtworkStore):
    """Artwork blob store with an HTTP downloader."""

    def __init__(
        self,
        root: Path,
        http_client: Optional[httpx.AsyncClient] = None,
        image_base_url: str = DEFAULT_IMAGE_BASE_URL,
        timeout: float = 10.0,
    ):
        """Initialize artwork cache.

        Args:
            root: Cache root directory
            http_client: Shared client; one is created (and owned) if omitted
            image_base_url: TMDB image CDN base URL
            timeout: Download timeout in seconds for an owned client
        """
        self.root = root
        self.image_base_url = image_base_url
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._lock = ReadWriteLock()
        self._ensure_directories()
        logger.info("Initialized artwork cache", root=str(root))

    async def close(self):
        """Close the HTTP client if this cache created it."""
        if self._owns_client:
            await self.client.aclose()

    def _ensure_directories(self):
        for partition in _PARTITIONS.values():
            (self.root / partition).mkdir(parents=True, exist_ok=True)

    def _path(self, owner_id: OwnerId, kind: ArtworkKind, variant: str) -> Path:
        kind = ArtworkKind(kind)
        if variant not in VARIANTS[kind]:
            raise ValueError(f"Unknown {kind.value} size '{variant}'")
        return self.root / _PARTITIONS[kind] / f"{owner_id}_{variant}.jpg"

    def put(self, data: bytes, owner_id: OwnerId, kind: ArtworkKind, variant: str) -> None:
        """Store image bytes atomically.

        Raises:
            CacheFailedError: If the file cannot be written
        """
        path = self._path(owner_id, kind, variant)
        with self._lock.write():
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
                try:
                    with os.fdopen(fd, "wb") as f:
                        f.write(data)
                    os.replace(tmp_name, path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as e:
                raise CacheFailedError(str(e)) from e
        logger.debug("Cached artwork", path=str(path), size=len(data))

    def get(self, owner_id: OwnerId, kind: ArtworkKind, variant: str) -> Optional[bytes]:
        path = self._path(owner_id, kind, variant)
        with self._lock.read():
            try:
                return path.read_bytes()
            except FileNotFoundError:
                return None
            except OSError as e:
                logger.warning("Failed to read cached artwork", path=str(path), error=str(e))
                return None

    def local_path(self, owner_id: OwnerId, kind: ArtworkKind, variant: str) -> Optional[Path]:
        path = self._path(owner_id, kind, variant)
        with self._lock.read():
            return path if path.is_file() else None

    def delete_all(self, owner_id: OwnerId) -> None:
        """Remove every size of every kind cached for an owner."""
        with self._lock.write():
            try:
                for kind, sizes in VARIANTS.items():
                    for variant in sizes:
                        self._path(owner_id, kind, variant).unlink(missing_ok=True)
            except OSError as e:
                raise CacheFailedError(str(e)) from e
        logger.debug("Deleted artwork", owner_id=str(owner_id))

    def delete_everything(self) -> None:
        with self._lock.write():
            try:
                if self.root.exists():
                    shutil.rmtree(self.root)
                self._ensure_directories()
            except OSError as e:
                raise CacheFailedError(str(e)) from e
        logger.info("Cleared artwork cache", root=str(self.root))

    def total_size_bytes(self) -> int:
        """Sum of all file sizes under the cache root."""
        total = 0
        with self._lock.read():
            for path in self.root.rglob("*"):
                if path.is_file():
                    total += path.stat().st_size
        return total

    def human_readable_size(self) -> str:
        return human_readable_size(self.total_size_bytes())

    async def download(
        self,
        remote_path: str,
        owner_id: OwnerId,
        kind: ArtworkKind,
        variant: str,
    ) -> None:
        """Download an image from the CDN and cache it.

        Raises:
            NetworkError: If the request fails
            CacheFailedError: On a non-2xx response or write failure
        """
        url = image_url(self.image_base_url, remote_path, variant)
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise NetworkError(str(e)) from e

        if not response.is_success:
            raise CacheFailedError(f"Image download returned {response.status_code}")

        self.put(response.content, owner_id, kind, variant)
        logger.info(
            "Downloaded artwork",
            owner_id=str(owner_id),
            kind=ArtworkKind(kind).value,
            variant=variant,
        )
