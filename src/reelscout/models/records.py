"""Persisted metadata records.

Records are replaced whole on every write; there are no partial updates.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from reelscout.models.hints import EpisodeHint, MovieHint
from reelscout.models.tmdb import (
    EpisodeDetails,
    MovieDetails,
    SeasonDetails,
    ShowDetails,
    parse_tmdb_date,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MatchStatus(str, Enum):
    """How a record was obtained."""

    MATCHED = "matched"
    UNMATCHED = "unmatched"


def _format_runtime(minutes: Optional[int]) -> Optional[str]:
    if not minutes or minutes <= 0:
        return None
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if hours else f"{mins}m"


class MovieRecord(BaseModel):
    """Movie metadata for one library file."""

    file_id: UUID
    catalog_id: Optional[int] = None
    title: str
    original_title: Optional[str] = None
    year: Optional[int] = None
    release_date: Optional[date] = None
    runtime: Optional[int] = Field(default=None, description="Runtime in minutes")
    genres: List[str] = Field(default_factory=list)
    synopsis: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    rating: Optional[float] = None
    match_status: MatchStatus = MatchStatus.MATCHED
    fetched_at: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def check_match_status(self) -> "MovieRecord":
        """A record is matched exactly when it carries a catalog id."""
        if (self.match_status == MatchStatus.MATCHED) != (self.catalog_id is not None):
            raise ValueError("match_status 'matched' requires a catalog_id and vice versa")
        return self

    @classmethod
    def from_details(cls, details: MovieDetails, file_id: UUID) -> "MovieRecord":
        """Build a matched record from TMDB movie details."""
        return cls(
            file_id=file_id,
            catalog_id=details.id,
            title=details.title,
            original_title=details.original_title,
            year=details.release_year,
            release_date=parse_tmdb_date(details.release_date),
            runtime=details.runtime,
            genres=details.genre_names,
            synopsis=details.overview,
            poster_path=details.poster_path,
            backdrop_path=details.backdrop_path,
            rating=details.vote_average,
        )

    @classmethod
    def unmatched(cls, file_id: UUID, hint: MovieHint) -> "MovieRecord":
        """Build a negative record that keeps the parsed title and year."""
        return cls(
            file_id=file_id,
            title=hint.title,
            year=hint.year,
            match_status=MatchStatus.UNMATCHED,
        )

    @property
    def is_matched(self) -> bool:
        return self.match_status == MatchStatus.MATCHED

    @property
    def formatted_runtime(self) -> Optional[str]:
        """Runtime such as "2h 16m"."""
        return _format_runtime(self.runtime)

    @property
    def formatted_genres(self) -> Optional[str]:
        return ", ".join(self.genres) if self.genres else None


class ShowRecord(BaseModel):
    """Series metadata shared by every episode file of a show."""

    catalog_id: int
    name: str
    original_name: Optional[str] = None
    overview: Optional[str] = None
    first_air_date: Optional[date] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    season_count: int = 0
    episode_count: int = 0
    genres: List[str] = Field(default_factory=list)
    status: Optional[str] = None
    rating: Optional[float] = None
    fetched_at: datetime = Field(default_factory=_now)

    @classmethod
    def from_details(cls, details: ShowDetails) -> "ShowRecord":
        return cls(
            catalog_id=details.id,
            name=details.name,
            original_name=details.original_name,
            overview=details.overview,
            first_air_date=parse_tmdb_date(details.first_air_date),
            poster_path=details.poster_path,
            backdrop_path=details.backdrop_path,
            season_count=details.number_of_seasons,
            episode_count=details.number_of_episodes,
            genres=details.genre_names,
            status=details.status,
            rating=details.vote_average,
        )

    @property
    def status_text(self) -> Optional[str]:
        """Display status; TMDB's "Returning Series" reads as "Continuing"."""
        if self.status == "Returning Series":
            return "Continuing"
        return self.status


class SeasonRecord(BaseModel):
    """Season metadata keyed by series and season number."""

    series_catalog_id: int
    season_number: int
    name: Optional[str] = None
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    air_date: Optional[date] = None
    episode_count: int = 0
    fetched_at: datetime = Field(default_factory=_now)

    @classmethod
    def from_details(cls, details: SeasonDetails, series_catalog_id: int) -> "SeasonRecord":
        return cls(
            series_catalog_id=series_catalog_id,
            season_number=details.season_number,
            name=details.name,
            overview=details.overview,
            poster_path=details.poster_path,
            air_date=parse_tmdb_date(details.air_date),
            episode_count=len(details.episodes),
        )

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.season_number == 0:
            return "Specials"
        return f"Season {self.season_number}"


class EpisodeRecord(BaseModel):
    """Episode metadata for one library file."""

    file_id: UUID
    series_catalog_id: Optional[int] = None
    episode_catalog_id: Optional[int] = None
    season_number: int = 0
    episode_number: int = 0
    name: str
    overview: Optional[str] = None
    still_path: Optional[str] = None
    air_date: Optional[date] = None
    runtime: Optional[int] = None
    rating: Optional[float] = None
    match_status: MatchStatus = MatchStatus.MATCHED
    fetched_at: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def check_match_status(self) -> "EpisodeRecord":
        """A matched episode always belongs to a series."""
        if self.match_status == MatchStatus.MATCHED and self.series_catalog_id is None:
            raise ValueError("matched episodes require a series_catalog_id")
        return self

    @classmethod
    def from_details(
        cls,
        episode: EpisodeDetails,
        file_id: UUID,
        series_catalog_id: int,
    ) -> "EpisodeRecord":
        return cls(
            file_id=file_id,
            series_catalog_id=series_catalog_id,
            episode_catalog_id=episode.id,
            season_number=episode.season_number,
            episode_number=episode.episode_number,
            name=episode.name,
            overview=episode.overview,
            still_path=episode.still_path,
            air_date=parse_tmdb_date(episode.air_date),
            runtime=episode.runtime,
            rating=episode.vote_average,
        )

    @classmethod
    def unmatched(cls, file_id: UUID, hint: EpisodeHint) -> "EpisodeRecord":
        """Negative record keeping the parsed show name and numbering."""
        return cls(
            file_id=file_id,
            season_number=hint.season or 0,
            episode_number=hint.episode or 0,
            name=hint.show_name,
            match_status=MatchStatus.UNMATCHED,
        )

    @property
    def is_matched(self) -> bool:
        return self.match_status == MatchStatus.MATCHED

    @property
    def formatted_episode(self) -> str:
        return f"S{self.season_number:02d}E{self.episode_number:02d}"

    @property
    def formatted_runtime(self) -> Optional[str]:
        return _format_runtime(self.runtime)
