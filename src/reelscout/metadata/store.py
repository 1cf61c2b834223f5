"""JSON document storage for metadata records.

Each key is one file under a namespace directory:

    <root>/movies/<file-uuid>.json
    <root>/episodes/<file-uuid>.json
    <root>/shows/<catalog-id>.json
    <root>/seasons/<catalog-id>_s<season>.json

Bulk loading enumerates the directory and derives each key from its
filename, so the one-document-per-key layout must be kept.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generic, List, Optional, Tuple, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError

from reelscout.metadata.errors import StorageFailedError
from reelscout.metadata.ports import KeyValueStore
from reelscout.models.records import EpisodeRecord, MovieRecord, SeasonRecord, ShowRecord
from reelscout.utils.locks import ReadWriteLock
from reelscout.utils.logger import get_logger

logger = get_logger(__name__)

K = TypeVar("K")
M = TypeVar("M", bound=BaseModel)

SeasonKey = Tuple[int, int]

_SEASON_STEM = re.compile(r"^(\d+)_s(\d+)$")


class KeyCodec(Generic[K]):
    """Maps keys to filename stems and back."""

    def __init__(self, encode: Callable[[K], str], decode: Callable[[str], Optional[K]]):
        self.encode = encode
        self.decode = decode


def _decode_uuid(stem: str) -> Optional[UUID]:
    try:
        return UUID(stem)
    except ValueError:
        return None


def _decode_int(stem: str) -> Optional[int]:
    return int(stem) if stem.isascii() and stem.isdigit() else None


def _decode_season(stem: str) -> Optional[SeasonKey]:
    if match := _SEASON_STEM.match(stem):
        return int(match.group(1)), int(match.group(2))
    return None


UUID_KEYS: KeyCodec[UUID] = KeyCodec(str, _decode_uuid)
INT_KEYS: KeyCodec[int] = KeyCodec(str, _decode_int)
SEASON_KEYS: KeyCodec[SeasonKey] = KeyCodec(lambda key: f"{key[0]}_s{key[1]}", _decode_season)


class DocumentStore(KeyValueStore[K, M]):
    """One JSON document per key under a directory.

    Reads share a reader/writer lock; writes hold it exclusively.
    """

    def __init__(self, directory: Path, model: Type[M], codec: KeyCodec[K]):
        """Initialize store.

        Args:
            directory: Namespace directory (created if missing)
            model: Pydantic model stored in each document
            codec: Key to filename mapping
        """
        self.directory = directory
        self.model = model
        self.codec = codec
        self._lock = ReadWriteLock()
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: K) -> Path:
        return self.directory / f"{self.codec.encode(key)}.json"

    def put(self, key: K, value: M) -> None:
        """Write a document atomically (temp file + rename).

        Raises:
            StorageFailedError: If the document cannot be written
        """
        path = self._path(key)
        payload = value.model_dump_json(indent=2)
        with self._lock.write():
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        f.write(payload)
                    os.replace(tmp_name, path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as e:
                logger.error("Failed to write document", path=str(path), error=str(e))
                raise StorageFailedError(str(e)) from e
        logger.debug("Stored document", path=str(path))

    def get(self, key: K) -> Optional[M]:
        """Read a document.

        Raises:
            StorageFailedError: If the document exists but cannot be decoded
        """
        path = self._path(key)
        with self._lock.read():
            try:
                raw = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None
            except OSError as e:
                raise StorageFailedError(str(e)) from e
        try:
            return self.model.model_validate_json(raw)
        except ValidationError as e:
            raise StorageFailedError(f"Corrupt document {path.name}: {e}") from e

    def exists(self, key: K) -> bool:
        with self._lock.read():
            return self._path(key).is_file()

    def get_all(self) -> Dict[K, M]:
        """Load every document whose filename decodes to a key.

        Corrupt or unreadable documents are skipped with a warning.
        """
        result: Dict[K, M] = {}
        with self._lock.read():
            if not self.directory.is_dir():
                return result
            for path in sorted(self.directory.glob("*.json")):
                key = self.codec.decode(path.stem)
                if key is None:
                    continue
                try:
                    result[key] = self.model.model_validate_json(path.read_text(encoding="utf-8"))
                except (OSError, ValidationError) as e:
                    logger.warning("Skipping unreadable document", path=str(path), error=str(e))
        return result

    def delete(self, key: K) -> None:
        with self._lock.write():
            try:
                self._path(key).unlink(missing_ok=True)
            except OSError as e:
                raise StorageFailedError(str(e)) from e

    def delete_all(self) -> None:
        with self._lock.write():
            if not self.directory.is_dir():
                return
            try:
                for path in self.directory.glob("*.json"):
                    path.unlink(missing_ok=True)
            except OSError as e:
                raise StorageFailedError(str(e)) from e
        logger.info("Cleared document store", directory=str(self.directory))


class MetadataStore:
    """The four metadata namespaces used by the resolver."""

    def __init__(
        self,
        movies: KeyValueStore[UUID, MovieRecord],
        episodes: KeyValueStore[UUID, EpisodeRecord],
        shows: KeyValueStore[int, ShowRecord],
        seasons: KeyValueStore[SeasonKey, SeasonRecord],
    ):
        self.movies = movies
        self.episodes = episodes
        self.shows = shows
        self.seasons = seasons

    @classmethod
    def open(cls, root: Path) -> "MetadataStore":
        """Open (creating if needed) the on-disk stores under root."""
        store = cls(
            movies=DocumentStore(root / "movies", MovieRecord, UUID_KEYS),
            episodes=DocumentStore(root / "episodes", EpisodeRecord, UUID_KEYS),
            shows=DocumentStore(root / "shows", ShowRecord, INT_KEYS),
            seasons=DocumentStore(root / "seasons", SeasonRecord, SEASON_KEYS),
        )
        logger.info("Opened metadata store", root=str(root))
        return store

    def seasons_for_show(self, series_catalog_id: int) -> List[SeasonRecord]:
        """All stored seasons of a show, ordered by season number."""
        seasons = [
            record
            for (series_id, _), record in self.seasons.get_all().items()
            if series_id == series_catalog_id
        ]
        return sorted(seasons, key=lambda record: record.season_number)

    def delete_all(self) -> None:
        """Remove every document in every namespace."""
        for namespace in (self.movies, self.episodes, self.shows, self.seasons):
            namespace.delete_all()
