"""Structured hints extracted from media filenames."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MovieHint:
    """Movie information parsed from a filename."""

    title: str
    year: Optional[int] = None
    quality: Optional[str] = None  # Normalized label, e.g. "4K", "1080p"

    def __str__(self) -> str:
        """Human-readable representation."""
        year_part = f" ({self.year})" if self.year else ""
        quality_part = f" [{self.quality}]" if self.quality else ""
        return f"{self.title}{year_part}{quality_part}"


@dataclass(frozen=True)
class EpisodeHint:
    """TV episode information parsed from a filename."""

    show_name: str
    season: Optional[int] = None
    episode: Optional[int] = None
    episode_end: Optional[int] = None  # Last episode of a multi-episode file
    quality: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        """Whether both season and episode were found."""
        return self.season is not None and self.episode is not None

    @property
    def is_multi_episode(self) -> bool:
        """Whether the file spans more than one episode."""
        return self.episode_end is not None and self.episode_end != self.episode

    @property
    def formatted_episode(self) -> Optional[str]:
        """Episode code such as "S01E03" or "S01E03-E04"."""
        if not self.is_valid:
            return None
        base = f"S{self.season:02d}E{self.episode:02d}"
        if self.is_multi_episode:
            return f"{base}-E{self.episode_end:02d}"
        return base

    def __str__(self) -> str:
        """Human-readable representation."""
        code = self.formatted_episode
        return f"{self.show_name} {code}" if code else self.show_name
