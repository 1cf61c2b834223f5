"""Integration tests for the command-line interface."""

import uuid

import httpx
import pytest
import respx
from click.testing import CliRunner

from reelscout import __version__
from reelscout.cli import cli, find_video_files, open_resolver
from reelscout.config import Config, load_config

API = "https://api.themoviedb.org/3"
IMAGES = "https://image.tmdb.org/t/p"


@pytest.fixture
def runner():
    return CliRunner()


def write_config(tmp_path, api_key=None):
    """Write a config that keeps every cache under tmp_path."""
    lines = [
        "storage:",
        f"  base_dir: {tmp_path / 'data'}",
        "resolution:",
        "  batch_delay_seconds: 0",
        "logging:",
        "  level: error",
    ]
    if api_key:
        lines += ["tmdb:", f"  api_key: {api_key}"]
    config_file = tmp_path / "config.yaml"
    config_file.write_text("\n".join(lines) + "\n")
    return str(config_file)


def mock_matrix(router):
    router.get(f"{API}/search/movie").mock(
        return_value=httpx.Response(
            200, json={"results": [{"id": 603, "title": "The Matrix", "release_date": "1999-03-30"}]}
        )
    )
    router.get(f"{API}/movie/603").mock(
        return_value=httpx.Response(
            200,
            json={
                "id": 603,
                "title": "The Matrix",
                "release_date": "1999-03-30",
                "runtime": 136,
                "poster_path": "/matrix.jpg",
                "genres": [{"id": 28, "name": "Action"}],
            },
        )
    )
    router.get(f"{IMAGES}/w342/matrix.jpg").mock(return_value=httpx.Response(200, content=b"jpeg"))


class TestBasicCommands:
    """Commands that need no network."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["version"], obj={})

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_parse_movie(self, runner):
        result = runner.invoke(cli, ["parse", "Dune.2021.2160p.UHD.BluRay.mkv"], obj={})

        assert result.exit_code == 0
        assert "Title:    Dune" in result.output
        assert "Year:     2021" in result.output
        assert "Quality:  4K" in result.output

    def test_parse_episode(self, runner):
        result = runner.invoke(cli, ["parse", "Show.Name.S01E03-E04.mkv"], obj={})

        assert result.exit_code == 0
        assert "Show:     Show Name" in result.output
        assert "Episode:  S01E03-E04" in result.output

    def test_bad_config(self, runner, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("logging:\n  format: xml\n")

        result = runner.invoke(cli, ["--config", str(config_file), "version"], obj={})

        assert result.exit_code == 1
        assert "Error loading configuration" in result.output


class TestKeyCommands:
    """API key management."""

    def test_set_status_remove(self, runner, tmp_path):
        config = write_config(tmp_path)

        assert runner.invoke(cli, ["-c", config, "key", "status"], obj={}).exit_code == 1

        result = runner.invoke(cli, ["-c", config, "key", "set", "abc123"], obj={})
        assert result.exit_code == 0
        assert (tmp_path / "data" / "tmdb_api_key").read_text() == "abc123"

        result = runner.invoke(cli, ["-c", config, "key", "status"], obj={})
        assert result.exit_code == 0
        assert "API key configured" in result.output

        result = runner.invoke(cli, ["-c", config, "key", "remove"], obj={})
        assert result.exit_code == 0
        assert not (tmp_path / "data" / "tmdb_api_key").exists()

    def test_config_key_is_read_only(self, runner, tmp_path):
        config = write_config(tmp_path, api_key="from-config")

        result = runner.invoke(cli, ["-c", config, "key", "set", "other"], obj={})

        assert result.exit_code == 1

    def test_status_check(self, runner, tmp_path):
        config = write_config(tmp_path, api_key="from-config")

        with respx.mock() as router:
            router.get(f"{API}/authentication").mock(return_value=httpx.Response(401, json={}))
            result = runner.invoke(cli, ["-c", config, "key", "status", "--check"], obj={})

        assert result.exit_code == 1
        assert "invalid" in result.output


class TestResolveCommands:
    """Commands that talk to TMDB (mocked with respx)."""

    def test_resolve_without_key(self, runner, tmp_path):
        config = write_config(tmp_path)

        result = runner.invoke(cli, ["-c", config, "resolve", "The Matrix (1999).mkv"], obj={})

        assert result.exit_code == 1
        assert "not configured" in result.output

    def test_resolve_movie_then_cached(self, runner, tmp_path):
        config = write_config(tmp_path, api_key="secret")
        file_id = str(uuid.uuid4())
        args = ["-c", config, "resolve", "The Matrix (1999).mkv", "--file-id", file_id]

        with respx.mock() as router:
            mock_matrix(router)
            result = runner.invoke(cli, args, obj={})
            assert router.calls.call_count == 3

            cached = runner.invoke(cli, args, obj={})
            assert router.calls.call_count == 3

        assert result.exit_code == 0
        assert "The Matrix (1999) [tmdb:603]" in result.output
        assert cached.exit_code == 0
        assert "The Matrix (1999)" in cached.output
        assert (tmp_path / "data" / "metadata" / "movies" / f"{file_id}.json").is_file()
        assert (tmp_path / "data" / "artwork" / "posters" / f"{file_id}_w342.jpg").read_bytes() == b"jpeg"

    def test_scan(self, runner, tmp_path):
        config = write_config(tmp_path, api_key="secret")
        library = tmp_path / "library"
        (library / "movies").mkdir(parents=True)
        (library / "movies" / "The.Matrix.1999.1080p.mkv").write_bytes(b"")
        (library / "notes.txt").write_text("not a video")

        with respx.mock() as router:
            mock_matrix(router)
            result = runner.invoke(cli, ["-c", config, "scan", str(library), "--type", "movie"], obj={})

        assert result.exit_code == 0
        assert "Found 1 file(s)" in result.output
        assert "[1/1] The.Matrix.1999.1080p.mkv" in result.output
        assert "Matched:  1" in result.output

    def test_cache_size_and_clear(self, runner, tmp_path):
        config = write_config(tmp_path, api_key="secret")
        with respx.mock() as router:
            mock_matrix(router)
            runner.invoke(cli, ["-c", config, "resolve", "The Matrix (1999).mkv"], obj={})

        size = runner.invoke(cli, ["-c", config, "cache", "size"], obj={})
        assert size.exit_code == 0
        assert "Artwork cache: 4 bytes" in size.output

        cleared = runner.invoke(cli, ["-c", config, "cache", "clear"], obj={})
        assert cleared.exit_code == 0
        assert list((tmp_path / "data" / "metadata" / "movies").glob("*.json")) == []

        size = runner.invoke(cli, ["-c", config, "cache", "size"], obj={})
        assert "Artwork cache: 0 bytes" in size.output


def test_find_video_files(tmp_path):
    (tmp_path / "b").mkdir()
    (tmp_path / "b" / "Show.S01E01.MKV").write_bytes(b"")
    (tmp_path / "a.mp4").write_bytes(b"")
    (tmp_path / "cover.jpg").write_bytes(b"")

    assert [path.name for path in find_video_files(tmp_path)] == ["a.mp4", "Show.S01E01.MKV"]


@pytest.mark.asyncio
async def test_open_resolver_applies_resolution_settings(tmp_path):
    config = Config.model_validate({"storage": {"base_dir": str(tmp_path)}})

    async with open_resolver(config) as resolver:
        assert resolver.batch_delay == 0.25

    config = load_config(write_config(tmp_path))
    async with open_resolver(config) as resolver:
        assert resolver.batch_delay == 0
