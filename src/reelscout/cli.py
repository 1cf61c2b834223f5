"""Command-line interface for ReelScout."""

import asyncio
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional
from uuid import UUID

import click
import httpx

from reelscout import __version__
from reelscout.config import Config, load_config
from reelscout.metadata import heuristic
from reelscout.metadata.artwork import ArtworkCache
from reelscout.metadata.errors import MetadataError
from reelscout.metadata.keystore import FileKeyStore, StaticKeyStore
from reelscout.metadata.ports import KeyStore
from reelscout.metadata.resolver import MediaFile, MetadataResolver, ResolveResult
from reelscout.metadata.store import MetadataStore
from reelscout.metadata.tmdb import TMDBClient
from reelscout.models.records import EpisodeRecord, MovieRecord
from reelscout.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def make_key_store(config: Config) -> KeyStore:
    """A key set in the configuration wins over the stored key file."""
    if config.tmdb.api_key:
        return StaticKeyStore(config.tmdb.api_key)
    return FileKeyStore(config.storage.key_file)


@asynccontextmanager
async def open_resolver(config: Config) -> AsyncIterator[MetadataResolver]:
    """Build a resolver wired to TMDB and the on-disk caches.

    Pending artwork downloads are awaited before the HTTP client closes.
    """
    key_store = make_key_store(config)
    async with httpx.AsyncClient(
        timeout=config.tmdb.timeout_seconds, follow_redirects=True
    ) as http_client:
        fetcher = TMDBClient(
            key_store,
            http_client=http_client,
            base_url=config.tmdb.base_url,
            include_adult=config.tmdb.include_adult,
        )
        artwork = ArtworkCache(
            config.storage.artwork_dir,
            http_client=http_client,
            image_base_url=config.tmdb.image_base_url,
        )
        resolver = MetadataResolver(
            fetcher,
            MetadataStore.open(config.storage.metadata_dir),
            artwork,
            key_store,
            batch_delay=config.resolution.batch_delay_seconds,
            poster_variant=config.resolution.poster_variant,
            still_variant=config.resolution.still_variant,
        )
        try:
            yield resolver
        finally:
            await resolver.wait_for_background()


def find_video_files(directory: Path) -> List[Path]:
    """Video files under a directory, recursively, in path order."""
    extensions = {f".{ext}" for ext in heuristic.VIDEO_EXTENSIONS}
    return sorted(
        path
        for path in directory.rglob("*")
        if path.is_file() and path.suffix.lower() in extensions
    )


def describe_record(record) -> str:
    """One-line summary of a movie or episode record."""
    if isinstance(record, MovieRecord):
        text = record.title
        if record.year:
            text += f" ({record.year})"
        if record.catalog_id is not None:
            text += f" [tmdb:{record.catalog_id}]"
        extras = [part for part in (record.formatted_runtime, record.formatted_genres) if part]
        if extras:
            text += " - " + ", ".join(extras)
        return text

    if isinstance(record, EpisodeRecord):
        text = f"{record.formatted_episode} {record.name}"
        if record.series_catalog_id is not None:
            text += f" [show tmdb:{record.series_catalog_id}]"
        return text

    return str(record)


def echo_result(filename: str, result: ResolveResult, indent: str = "") -> None:
    """Print a resolve outcome with the same markers as the rest of the CLI."""
    if result.status == "matched" and result.record is not None and result.record.is_matched:
        click.secho(f"{indent}✓ {describe_record(result.record)}", fg="green")
    elif result.status in ("matched", "not_found"):
        click.secho(f"{indent}⊘ No match for {filename}", fg="yellow")
    elif result.status == "api_key_missing":
        click.secho(f"{indent}✗ TMDB API key is not configured (run 'reelscout key set')", fg="red", err=True)
    else:
        click.secho(f"{indent}✗ {result.error}", fg="red", err=True)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (defaults to built-in defaults)",
)
@click.pass_context
def cli(ctx, config):
    """ReelScout - Movie and TV metadata resolver backed by TMDB."""
    try:
        cfg = load_config(config)
        ctx.ensure_object(dict)
        ctx.obj["config"] = cfg

        setup_logging(cfg.logging)

    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("filename")
@click.option("--tv", is_flag=True, default=False, help="Parse as a TV episode")
def parse(filename, tv):
    """Show what the filename parser extracts, without any lookup."""
    if tv or heuristic.is_tv_show(filename):
        hint = heuristic.parse_show(filename)
        click.echo("Type:     tv")
        click.echo(f"Show:     {hint.show_name}")
        click.echo(f"Episode:  {hint.formatted_episode or '-'}")
        click.echo(f"Quality:  {hint.quality or '-'}")
        click.echo(f"Valid:    {'yes' if hint.is_valid else 'no'}")
    else:
        hint = heuristic.parse_movie(filename)
        click.echo("Type:     movie")
        click.echo(f"Title:    {hint.title}")
        click.echo(f"Year:     {hint.year or '-'}")
        click.echo(f"Quality:  {hint.quality or '-'}")


@cli.command()
@click.argument("filename")
@click.option("--file-id", type=click.UUID, default=None, help="Cache key (defaults to an id derived from the path)")
@click.option("--tv", is_flag=True, default=False, help="Resolve as a TV episode")
@click.option("--force", is_flag=True, default=False, help="Ignore cached metadata")
@click.pass_context
def resolve(ctx, filename, file_id: Optional[UUID], tv, force):
    """Resolve metadata for a single file."""
    config = ctx.obj["config"]
    media_file = MediaFile.from_path(Path(filename))
    if file_id is not None:
        media_file = MediaFile(file_id, media_file.filename)
    as_tv = tv or heuristic.is_tv_show(media_file.filename)

    async def _resolve() -> ResolveResult:
        async with open_resolver(config) as resolver:
            if as_tv:
                return await resolver.resolve_episode(media_file.file_id, media_file.filename, force)
            return await resolver.resolve_movie(media_file.file_id, media_file.filename, force)

    result = asyncio.run(_resolve())
    echo_result(media_file.filename, result)

    if result.status in ("api_key_missing", "error"):
        sys.exit(1)


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--type",
    "media_type",
    type=click.Choice(["movie", "tv", "auto"]),
    default="auto",
    show_default=True,
    help="How to treat the files found",
)
@click.pass_context
def scan(ctx, directory, media_type):
    """Resolve metadata for every video file under DIRECTORY."""
    config = ctx.obj["config"]

    files = [MediaFile.from_path(path) for path in find_video_files(directory)]
    if not files:
        click.secho("⊘ No video files found", fg="yellow")
        sys.exit(0)

    click.echo(f"Found {len(files)} file(s)")

    def on_progress(current: int, total: int) -> None:
        click.echo(f"[{current}/{total}] {files[current - 1].filename}")

    async def _scan():
        async with open_resolver(config) as resolver:
            if not resolver.is_api_key_configured:
                return None
            return await resolver.resolve_batch(files, on_progress=on_progress, media_type=media_type)

    results = asyncio.run(_scan())
    if results is None:
        click.secho("✗ TMDB API key is not configured (run 'reelscout key set')", fg="red", err=True)
        sys.exit(1)

    matched = sum(1 for result in results.values() if result.is_matched and result.record.is_matched)
    errors = sum(1 for result in results.values() if result.status == "error")
    click.echo("")
    click.echo("Summary:")
    click.secho(f"  ✓ Matched:  {matched}", fg="green")
    click.secho(f"  ⊘ No match: {len(results) - matched - errors}", fg="yellow")
    click.secho(f"  ✗ Errors:   {errors}", fg="red")
    click.echo(f"  Cached:     {len(files) - len(results)}")
    click.echo(f"  Total:      {len(files)}")

    if errors:
        sys.exit(1)


@cli.group()
def cache():
    """Inspect or clear the local caches."""


@cache.command("size")
@click.pass_context
def cache_size(ctx):
    """Show the artwork cache size."""
    config = ctx.obj["config"]

    async def _size() -> str:
        async with open_resolver(config) as resolver:
            return resolver.formatted_artwork_cache_size()

    click.echo(f"Artwork cache: {asyncio.run(_size())}")


@cache.command("clear")
@click.option("--artwork-only", is_flag=True, default=False, help="Keep metadata, drop artwork")
@click.pass_context
def cache_clear(ctx, artwork_only):
    """Delete cached metadata and artwork."""
    config = ctx.obj["config"]

    async def _clear() -> None:
        async with open_resolver(config) as resolver:
            if artwork_only:
                resolver.clear_artwork_cache()
            else:
                resolver.clear_cache()

    try:
        asyncio.run(_clear())
    except MetadataError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)
    click.secho("✓ Artwork cache cleared" if artwork_only else "✓ Cache cleared", fg="green")


@cli.group()
def key():
    """Manage the TMDB API key."""


@key.command("set")
@click.argument("api_key")
@click.pass_context
def key_set(ctx, api_key):
    """Store a TMDB API key."""
    try:
        make_key_store(ctx.obj["config"]).store(api_key)
    except MetadataError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)
    click.secho("✓ API key stored", fg="green")


@key.command("remove")
@click.pass_context
def key_remove(ctx):
    """Delete the stored TMDB API key."""
    try:
        make_key_store(ctx.obj["config"]).delete()
    except MetadataError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)
    click.secho("✓ API key removed", fg="green")


@key.command("status")
@click.option("--check", is_flag=True, default=False, help="Validate the key against TMDB")
@click.pass_context
def key_status(ctx, check):
    """Show whether an API key is configured."""
    config = ctx.obj["config"]
    key_store = make_key_store(config)

    if not key_store.has_key():
        click.secho("⊘ No API key configured", fg="yellow")
        sys.exit(1)

    source = "configuration" if isinstance(key_store, StaticKeyStore) else str(config.storage.key_file)
    click.echo(f"API key configured ({source})")
    if not check:
        return

    async def _validate() -> bool:
        client = TMDBClient(
            key_store,
            base_url=config.tmdb.base_url,
            timeout=config.tmdb.timeout_seconds,
        )
        try:
            return await client.validate_api_key()
        finally:
            await client.close()

    try:
        asyncio.run(_validate())
    except MetadataError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)
    click.secho("✓ API key accepted by TMDB", fg="green")


@cli.command()
def version():
    """Show version information."""
    click.echo(f"ReelScout v{__version__}")


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
