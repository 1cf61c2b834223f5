"""Unit tests for metadata records and hints."""

from datetime import date
from uuid import uuid4

import pytest
from pydantic import ValidationError

from reelscout.models.hints import EpisodeHint, MovieHint
from reelscout.models.records import EpisodeRecord, MatchStatus, MovieRecord, SeasonRecord, ShowRecord
from reelscout.models.tmdb import EpisodeDetails, Genre, MovieDetails, SeasonDetails, ShowDetails


class TestMovieRecord:
    """Test MovieRecord model."""

    def test_from_details(self):
        """Test building a matched record from TMDB details."""
        file_id = uuid4()
        details = MovieDetails(
            id=27205,
            title="Inception",
            release_date="2010-07-15",
            runtime=148,
            genres=[Genre(id=28, name="Action"), Genre(id=53, name="Thriller")],
            vote_average=8.4,
        )

        record = MovieRecord.from_details(details, file_id)

        assert record.file_id == file_id
        assert record.catalog_id == 27205
        assert record.year == 2010
        assert record.release_date == date(2010, 7, 15)
        assert record.is_matched
        assert record.formatted_runtime == "2h 28m"
        assert record.formatted_genres == "Action, Thriller"
        assert record.fetched_at.tzinfo is not None

    def test_empty_release_date(self):
        record = MovieRecord.from_details(MovieDetails(id=1, title="Untitled", release_date=""), uuid4())

        assert record.year is None
        assert record.release_date is None

    def test_unmatched_keeps_hint(self):
        """Test a negative record keeps the parsed title and year."""
        record = MovieRecord.unmatched(uuid4(), MovieHint(title="Obscure Film", year=1971))

        assert record.match_status == MatchStatus.UNMATCHED
        assert record.catalog_id is None
        assert record.title == "Obscure Film"
        assert record.year == 1971
        assert not record.is_matched

    def test_matched_requires_catalog_id(self):
        with pytest.raises(ValidationError):
            MovieRecord(file_id=uuid4(), title="Inception")

        with pytest.raises(ValidationError):
            MovieRecord(file_id=uuid4(), catalog_id=1, title="Inception", match_status=MatchStatus.UNMATCHED)

    @pytest.mark.parametrize("minutes,expected", [(None, None), (0, None), (45, "45m"), (60, "1h 0m")])
    def test_formatted_runtime(self, minutes, expected):
        record = MovieRecord(file_id=uuid4(), catalog_id=1, title="X", runtime=minutes)

        assert record.formatted_runtime == expected

    def test_json_round_trip(self):
        record = MovieRecord(
            file_id=uuid4(),
            catalog_id=603,
            title="The Matrix",
            genres=["Action", "Science Fiction"],
            rating=8.217,
        )

        assert MovieRecord.model_validate_json(record.model_dump_json()) == record


class TestShowAndSeasonRecords:
    """Test ShowRecord and SeasonRecord models."""

    def test_show_from_details(self):
        details = ShowDetails(
            id=1396,
            name="Breaking Bad",
            first_air_date="2008-01-20",
            number_of_seasons=5,
            number_of_episodes=62,
            status="Ended",
        )

        record = ShowRecord.from_details(details)

        assert record.catalog_id == 1396
        assert record.first_air_date == date(2008, 1, 20)
        assert record.season_count == 5
        assert record.status_text == "Ended"

    def test_returning_series_reads_as_continuing(self):
        record = ShowRecord(catalog_id=1, name="Show", status="Returning Series")

        assert record.status_text == "Continuing"

    def test_season_from_details(self):
        details = SeasonDetails(
            season_number=2,
            episodes=[
                EpisodeDetails(id=1, episode_number=1, season_number=2),
                EpisodeDetails(id=2, episode_number=2, season_number=2),
            ],
        )

        record = SeasonRecord.from_details(details, 1396)

        assert record.series_catalog_id == 1396
        assert record.episode_count == 2
        assert record.display_name == "Season 2"

    def test_specials_display_name(self):
        assert SeasonRecord(series_catalog_id=1, season_number=0).display_name == "Specials"


class TestEpisodeRecord:
    """Test EpisodeRecord model."""

    def test_from_details(self):
        episode = EpisodeDetails(
            id=62085,
            episode_number=14,
            season_number=5,
            name="Ozymandias",
            air_date="2013-09-15",
            runtime=47,
        )

        record = EpisodeRecord.from_details(episode, uuid4(), 1396)

        assert record.formatted_episode == "S05E14"
        assert record.air_date == date(2013, 9, 15)
        assert record.formatted_runtime == "47m"
        assert record.is_matched

    def test_unmatched_has_no_series(self):
        record = EpisodeRecord.unmatched(uuid4(), EpisodeHint(show_name="Home Video"))

        assert record.series_catalog_id is None
        assert record.match_status == MatchStatus.UNMATCHED
        assert record.formatted_episode == "S00E00"

    def test_matched_requires_series(self):
        with pytest.raises(ValidationError):
            EpisodeRecord(file_id=uuid4(), name="Pilot")
