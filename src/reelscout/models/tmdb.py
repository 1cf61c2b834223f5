"""Pydantic models for TMDB API payloads.

Field names follow the TMDB JSON keys so responses validate directly;
unknown keys are ignored.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


def parse_tmdb_date(value: Optional[str]) -> Optional[date]:
    """Parse a TMDB "YYYY-MM-DD" string; TMDB sends "" for unknown dates."""
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _year_of(value: Optional[str]) -> Optional[int]:
    if not value or len(value) < 4 or not value[:4].isdigit():
        return None
    return int(value[:4])


class Genre(BaseModel):
    """TMDB genre."""

    id: int
    name: str


class SearchCandidate(BaseModel):
    """Movie search result."""

    id: int = Field(..., description="TMDB movie ID")
    title: str
    original_title: Optional[str] = None
    overview: Optional[str] = None
    release_date: Optional[str] = None
    poster_path: Optional[str] = None
    popularity: Optional[float] = None

    @property
    def release_year(self) -> Optional[int]:
        """Year taken from the release date."""
        return _year_of(self.release_date)


class ShowCandidate(BaseModel):
    """TV show search result."""

    id: int = Field(..., description="TMDB series ID")
    name: str
    original_name: Optional[str] = None
    overview: Optional[str] = None
    first_air_date: Optional[str] = None
    poster_path: Optional[str] = None
    popularity: Optional[float] = None

    @property
    def first_air_year(self) -> Optional[int]:
        """Year the show first aired."""
        return _year_of(self.first_air_date)


class MovieDetails(BaseModel):
    """Movie details from /movie/{id}."""

    id: int
    title: str
    original_title: Optional[str] = None
    overview: Optional[str] = None
    release_date: Optional[str] = None
    runtime: Optional[int] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    vote_average: Optional[float] = None
    genres: List[Genre] = Field(default_factory=list)
    status: Optional[str] = None
    tagline: Optional[str] = None
    imdb_id: Optional[str] = None

    @property
    def release_year(self) -> Optional[int]:
        return _year_of(self.release_date)

    @property
    def genre_names(self) -> List[str]:
        return [genre.name for genre in self.genres]


class ShowDetails(BaseModel):
    """Series details from /tv/{id}."""

    id: int
    name: str
    original_name: Optional[str] = None
    overview: Optional[str] = None
    first_air_date: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    vote_average: Optional[float] = None
    number_of_seasons: int = 0
    number_of_episodes: int = 0
    genres: List[Genre] = Field(default_factory=list)
    status: Optional[str] = None

    @property
    def genre_names(self) -> List[str]:
        return [genre.name for genre in self.genres]


class EpisodeDetails(BaseModel):
    """Episode entry inside a season response."""

    id: int
    episode_number: int
    season_number: int
    name: str = ""
    overview: Optional[str] = None
    still_path: Optional[str] = None
    air_date: Optional[str] = None
    runtime: Optional[int] = None
    vote_average: Optional[float] = None


class SeasonDetails(BaseModel):
    """Season details from /tv/{id}/season/{n}, including its episodes."""

    id: Optional[int] = None
    season_number: int
    name: Optional[str] = None
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    air_date: Optional[str] = None
    episodes: List[EpisodeDetails] = Field(default_factory=list)

    def find_episode(self, episode_number: int) -> Optional[EpisodeDetails]:
        """Return the episode with the given number, if listed."""
        for episode in self.episodes:
            if episode.episode_number == episode_number:
                return episode
        return None
