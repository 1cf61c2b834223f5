"""Unit tests for the JSON document store."""

from datetime import date, datetime, timezone
from uuid import uuid4

import pytest

from reelscout.metadata.errors import StorageFailedError
from reelscout.metadata.store import INT_KEYS, UUID_KEYS, DocumentStore, MetadataStore
from reelscout.models.records import MatchStatus, MovieRecord, SeasonRecord, ShowRecord


@pytest.fixture
def store(tmp_path):
    """Create a metadata store in a temporary directory."""
    return MetadataStore.open(tmp_path / "metadata")


@pytest.fixture
def movie_record():
    return MovieRecord(
        file_id=uuid4(),
        catalog_id=603,
        title="The Matrix",
        original_title="The Matrix",
        year=1999,
        release_date=date(1999, 3, 30),
        runtime=136,
        genres=["Action", "Science Fiction"],
        synopsis="A hacker learns the truth about reality.",
        poster_path="/matrix.jpg",
        backdrop_path=None,
        rating=8.217,
        fetched_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )


class TestDocumentStore:
    """Test DocumentStore class."""

    def test_put_get_round_trip(self, store, movie_record):
        store.movies.put(movie_record.file_id, movie_record)

        loaded = store.movies.get(movie_record.file_id)

        assert loaded == movie_record
        assert loaded.genres == ["Action", "Science Fiction"]
        assert loaded.rating == 8.217
        assert loaded.backdrop_path is None

    def test_one_document_per_key(self, tmp_path, store, movie_record):
        store.movies.put(movie_record.file_id, movie_record)

        assert (tmp_path / "metadata" / "movies" / f"{movie_record.file_id}.json").is_file()

    def test_get_missing(self, store):
        assert store.movies.get(uuid4()) is None
        assert not store.movies.exists(uuid4())

    def test_put_overwrites(self, store, movie_record):
        store.movies.put(movie_record.file_id, movie_record)
        replacement = movie_record.model_copy(update={"title": "The Matrix (Remastered)"})

        store.movies.put(movie_record.file_id, replacement)

        assert store.movies.get(movie_record.file_id).title == "The Matrix (Remastered)"
        assert list((store.movies.directory).glob("*.tmp")) == []

    def test_get_all_skips_corrupt_documents(self, store, movie_record):
        store.movies.put(movie_record.file_id, movie_record)
        (store.movies.directory / f"{uuid4()}.json").write_text("{not json")
        (store.movies.directory / "not-a-uuid.json").write_text("{}")

        loaded = store.movies.get_all()

        assert list(loaded) == [movie_record.file_id]

    def test_get_corrupt_document_raises(self, store):
        key = uuid4()
        (store.movies.directory / f"{key}.json").write_text("[]")

        with pytest.raises(StorageFailedError):
            store.movies.get(key)

    def test_delete(self, store, movie_record):
        store.movies.put(movie_record.file_id, movie_record)

        store.movies.delete(movie_record.file_id)
        store.movies.delete(movie_record.file_id)

        assert not store.movies.exists(movie_record.file_id)

    def test_put_failure_raises_storage_error(self, tmp_path, movie_record):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        documents = DocumentStore(tmp_path / "movies", MovieRecord, UUID_KEYS)
        documents.directory = blocker / "movies"

        with pytest.raises(StorageFailedError):
            documents.put(movie_record.file_id, movie_record)

    def test_int_keys(self, tmp_path):
        shows = DocumentStore(tmp_path / "shows", ShowRecord, INT_KEYS)
        shows.put(1399, ShowRecord(catalog_id=1399, name="Game of Thrones"))

        assert shows.get_all() == {1399: shows.get(1399)}

    def test_int_keys_ignore_non_ascii_digits(self, tmp_path):
        shows = DocumentStore(tmp_path / "shows", ShowRecord, INT_KEYS)
        shows.put(1399, ShowRecord(catalog_id=1399, name="Game of Thrones"))
        (tmp_path / "shows" / "².json").write_text("{}", encoding="utf-8")

        assert list(shows.get_all()) == [1399]


class TestMetadataStore:
    """Test MetadataStore class."""

    def test_seasons_for_show_sorted(self, store):
        for number in (3, 1, 2):
            store.seasons.put((1399, number), SeasonRecord(series_catalog_id=1399, season_number=number))
        store.seasons.put((1400, 1), SeasonRecord(series_catalog_id=1400, season_number=1))

        seasons = store.seasons_for_show(1399)

        assert [season.season_number for season in seasons] == [1, 2, 3]

    def test_season_file_layout(self, store):
        store.seasons.put((1399, 2), SeasonRecord(series_catalog_id=1399, season_number=2))

        assert (store.seasons.directory / "1399_s2.json").is_file()
        assert store.seasons.get_all().keys() == {(1399, 2)}

    def test_delete_all(self, store, movie_record):
        unmatched = MovieRecord(file_id=uuid4(), title="Unknown", match_status=MatchStatus.UNMATCHED)
        store.movies.put(movie_record.file_id, movie_record)
        store.movies.put(unmatched.file_id, unmatched)
        store.shows.put(1399, ShowRecord(catalog_id=1399, name="Game of Thrones"))

        store.delete_all()

        assert not store.movies.exists(movie_record.file_id)
        assert not store.movies.exists(unmatched.file_id)
        assert not store.shows.exists(1399)
