"""TMDB API key storage."""

import os
from pathlib import Path
from typing import Optional

from reelscout.metadata.errors import StorageFailedError
from reelscout.metadata.ports import KeyStore
from reelscout.utils.logger import get_logger

logger = get_logger(__name__)


class FileKeyStore(KeyStore):
    """Stores the key in a single owner-readable file."""

    def __init__(self, path: Path):
        """Initialize key store.

        Args:
            path: File holding the key
        """
        self.path = path

    def store(self, key: str) -> None:
        """Write the key with 0600 permissions.

        Raises:
            StorageFailedError: If the key is blank or cannot be written
        """
        key = key.strip()
        if not key:
            raise StorageFailedError("API key must not be empty")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(key)
            os.chmod(self.path, 0o600)
        except OSError as e:
            raise StorageFailedError(f"Could not store API key: {e}") from e
        logger.info("Stored TMDB API key", path=str(self.path))

    def retrieve(self) -> Optional[str]:
        try:
            key = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageFailedError(f"Could not read API key: {e}") from e
        return key or None

    def delete(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageFailedError(f"Could not delete API key: {e}") from e
        logger.info("Deleted TMDB API key", path=str(self.path))

    def has_key(self) -> bool:
        try:
            return self.retrieve() is not None
        except StorageFailedError:
            return False


class StaticKeyStore(KeyStore):
    """Read-only key supplied by configuration."""

    def __init__(self, key: str):
        self._key = key

    def store(self, key: str) -> None:
        raise StorageFailedError("API key is set in the configuration file")

    def retrieve(self) -> Optional[str]:
        return self._key

    def delete(self) -> None:
        raise StorageFailedError("API key is set in the configuration file")
