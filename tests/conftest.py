"""Shared pytest fixtures for ReelScout tests."""

import pytest

from reelscout.metadata.resolver import MetadataResolver
from reelscout.metadata.store import MetadataStore
from reelscout.models.tmdb import (
    EpisodeDetails,
    Genre,
    MovieDetails,
    SearchCandidate,
    SeasonDetails,
    ShowCandidate,
    ShowDetails,
)

from tests.fakes import FakeArtworkStore, FakeFetcher, InMemoryKeyStore, InMemoryStore


@pytest.fixture
def fetcher():
    """Remote catalog preloaded with one movie and one show."""
    fake = FakeFetcher()
    fake.movie_results = [
        SearchCandidate(id=604, title="The Matrix Reloaded", release_date="2003-05-15"),
        SearchCandidate(id=603, title="The Matrix", release_date="1999-03-30"),
    ]
    fake.movie_details = {
        603: MovieDetails(
            id=603,
            title="The Matrix",
            original_title="The Matrix",
            overview="A hacker learns the truth about reality.",
            release_date="1999-03-30",
            runtime=136,
            poster_path="/matrix.jpg",
            backdrop_path="/matrix-bg.jpg",
            genres=[Genre(id=28, name="Action"), Genre(id=878, name="Science Fiction")],
            vote_average=8.2,
        ),
        604: MovieDetails(id=604, title="The Matrix Reloaded", release_date="2003-05-15"),
    }
    fake.show_results = [
        ShowCandidate(id=1399, name="Game of Thrones", first_air_date="2011-04-17"),
    ]
    fake.show_details = {
        1399: ShowDetails(
            id=1399,
            name="Game of Thrones",
            overview="Noble families fight for the Iron Throne.",
            first_air_date="2011-04-17",
            poster_path="/got.jpg",
            number_of_seasons=8,
            number_of_episodes=73,
            status="Ended",
            vote_average=8.4,
        ),
    }
    fake.seasons = {
        (1399, 1): SeasonDetails(
            id=3624,
            season_number=1,
            name="Season 1",
            air_date="2011-04-17",
            episodes=[
                EpisodeDetails(id=63056, episode_number=1, season_number=1, name="Winter Is Coming"),
                EpisodeDetails(id=63057, episode_number=2, season_number=1, name="The Kingsroad"),
                EpisodeDetails(
                    id=63058,
                    episode_number=3,
                    season_number=1,
                    name="Lord Snow",
                    still_path="/lord-snow.jpg",
                    air_date="2011-05-01",
                    runtime=58,
                    vote_average=7.9,
                ),
            ],
        ),
    }
    return fake


@pytest.fixture
def key_store():
    return InMemoryKeyStore("test-api-key")


@pytest.fixture
def memory_store():
    return MetadataStore(
        movies=InMemoryStore(),
        episodes=InMemoryStore(),
        shows=InMemoryStore(),
        seasons=InMemoryStore(),
    )


@pytest.fixture
def artwork_store(tmp_path):
    return FakeArtworkStore(tmp_path / "artwork")


@pytest.fixture
def resolver(fetcher, memory_store, artwork_store, key_store):
    """Resolver over in-memory doubles with no batch delay."""
    return MetadataResolver(
        fetcher,
        memory_store,
        artwork_store,
        key_store,
        batch_delay=0,
    )
