"""Abstract contracts for the resolver's collaborators.

Concrete adapters live beside this module (TMDBClient, DocumentStore,
ArtworkCache, FileKeyStore); tests substitute in-memory doubles.
"""

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Dict, Generic, List, Optional, TypeVar, Union
from uuid import UUID

from reelscout.models.tmdb import (
    MovieDetails,
    SearchCandidate,
    SeasonDetails,
    ShowCandidate,
    ShowDetails,
)

K = TypeVar("K")
V = TypeVar("V")

# Movie posters and episode stills are keyed by file id, show posters by catalog id
OwnerId = Union[UUID, int]


class MetadataFetcher(ABC):
    """Remote metadata provider.

    Every method raises a MetadataError subclass on failure.
    """

    @abstractmethod
    async def search_movies(self, title: str, year: Optional[int] = None) -> List[SearchCandidate]:
        """Search movies by title, optionally narrowed by release year."""

    @abstractmethod
    async def fetch_movie_details(self, catalog_id: int) -> MovieDetails:
        """Fetch full details for one movie."""

    @abstractmethod
    async def search_shows(self, name: str) -> List[ShowCandidate]:
        """Search TV shows by name."""

    @abstractmethod
    async def fetch_show_details(self, catalog_id: int) -> ShowDetails:
        """Fetch full details for one show."""

    @abstractmethod
    async def fetch_season_details(self, series_id: int, season_number: int) -> SeasonDetails:
        """Fetch one season including its episode list."""


class KeyStore(ABC):
    """Secret storage for the TMDB API key."""

    @abstractmethod
    def store(self, key: str) -> None:
        """Persist the key, replacing any previous one."""

    @abstractmethod
    def retrieve(self) -> Optional[str]:
        """Return the stored key, or None."""

    @abstractmethod
    def delete(self) -> None:
        """Remove the stored key; a missing key is not an error."""

    def has_key(self) -> bool:
        """Whether a key is available."""
        return bool(self.retrieve())


class KeyValueStore(ABC, Generic[K, V]):
    """Persistent map of independently stored values."""

    @abstractmethod
    def put(self, key: K, value: V) -> None:
        """Store a value, atomically replacing any previous one."""

    @abstractmethod
    def get(self, key: K) -> Optional[V]:
        """Return the value for key, or None."""

    @abstractmethod
    def exists(self, key: K) -> bool:
        """Whether a value is stored for key."""

    @abstractmethod
    def get_all(self) -> Dict[K, V]:
        """Return every decodable value; undecodable entries are skipped."""

    @abstractmethod
    def delete(self, key: K) -> None:
        """Remove the value for key if present."""

    @abstractmethod
    def delete_all(self) -> None:
        """Remove every value."""


class ArtworkKind(str, Enum):
    """Artwork partitions."""

    POSTER = "poster"
    BACKDROP = "backdrop"
    STILL = "still"


class ArtworkStore(ABC):
    """Binary artwork blobs keyed by (owner id, kind, size variant)."""

    @abstractmethod
    def put(self, data: bytes, owner_id: OwnerId, kind: ArtworkKind, variant: str) -> None:
        """Store image bytes."""

    @abstractmethod
    def get(self, owner_id: OwnerId, kind: ArtworkKind, variant: str) -> Optional[bytes]:
        """Return cached bytes, or None."""

    @abstractmethod
    def local_path(self, owner_id: OwnerId, kind: ArtworkKind, variant: str) -> Optional[Path]:
        """Return the file path when the image is cached, else None."""

    @abstractmethod
    def delete_all(self, owner_id: OwnerId) -> None:
        """Remove every kind and variant cached for one owner."""

    @abstractmethod
    def delete_everything(self) -> None:
        """Remove all cached artwork."""

    @abstractmethod
    def total_size_bytes(self) -> int:
        """Total size of all cached artwork."""

    @abstractmethod
    async def download(
        self,
        remote_path: str,
        owner_id: OwnerId,
        kind: ArtworkKind,
        variant: str,
    ) -> None:
        """Fetch an image from the CDN and store it; raises on failure."""
