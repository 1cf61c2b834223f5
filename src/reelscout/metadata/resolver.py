"""Metadata resolver that orchestrates parsing, remote lookup and caching.

Lookups go through three tiers: the in-memory maps loaded at startup,
the on-disk document store, then the remote catalog. Only "no candidate
found" is persisted as a negative (unmatched) record; transient failures
are reported to the caller and leave every tier untouched.
"""

import asyncio
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Dict, Hashable, List, Literal, Optional, Sequence, Union
from uuid import UUID

from reelscout.metadata import heuristic
from reelscout.metadata.errors import MetadataError, NetworkError
from reelscout.metadata.ports import ArtworkKind, ArtworkStore, KeyStore, MetadataFetcher, OwnerId
from reelscout.metadata.selector import select_movie, select_show
from reelscout.metadata.store import MetadataStore
from reelscout.models.artwork import BACKDROP_DEFAULT, POSTER_GRID, STILL_ROW
from reelscout.models.hints import EpisodeHint
from reelscout.models.records import EpisodeRecord, MovieRecord, SeasonRecord, ShowRecord
from reelscout.utils.formatting import human_readable_size
from reelscout.utils.logger import get_logger

logger = get_logger(__name__)

ResolveStatus = Literal["matched", "not_found", "api_key_missing", "error"]
MediaType = Literal["movie", "tv", "auto"]
ProgressCallback = Callable[[int, int], None]


@dataclass
class ResolveResult:
    """Outcome of a single resolve call."""

    status: ResolveStatus
    record: Optional[Union[MovieRecord, EpisodeRecord]] = None
    error: Optional[MetadataError] = None

    @classmethod
    def matched(cls, record: Union[MovieRecord, EpisodeRecord]) -> "ResolveResult":
        return cls("matched", record=record)

    @classmethod
    def not_found(cls, record: Optional[Union[MovieRecord, EpisodeRecord]] = None) -> "ResolveResult":
        return cls("not_found", record=record)

    @classmethod
    def api_key_missing(cls) -> "ResolveResult":
        return cls("api_key_missing")

    @classmethod
    def failed(cls, error: MetadataError) -> "ResolveResult":
        return cls("error", error=error)

    @property
    def is_matched(self) -> bool:
        return self.status == "matched"


@dataclass(frozen=True)
class MediaFile:
    """A library file as seen by the resolver: a stable id and a filename."""

    file_id: UUID
    filename: str

    @classmethod
    def from_path(cls, path: Path) -> "MediaFile":
        """Derive a stable id from the absolute path."""
        absolute = path.expanduser().resolve()
        return cls(uuid.uuid5(uuid.NAMESPACE_URL, absolute.as_uri()), absolute.name)


class MetadataResolver:
    """Resolves movie and episode metadata for library files.

    Intended for use from a single event loop. Collaborators are injected
    so tests can substitute in-memory doubles.
    """

    def __init__(
        self,
        fetcher: MetadataFetcher,
        store: MetadataStore,
        artwork: ArtworkStore,
        key_store: KeyStore,
        batch_delay: float = 0.25,
        poster_variant: str = POSTER_GRID,
        still_variant: str = STILL_ROW,
    ):
        """Initialize metadata resolver.

        Args:
            fetcher: Remote metadata provider
            store: Persistent metadata namespaces
            artwork: Artwork blob store and downloader
            key_store: API key storage
            batch_delay: Seconds to wait after each remote lookup in a batch
            poster_variant: Size downloaded for movie and show posters
            still_variant: Size downloaded for episode stills
        """
        self.fetcher = fetcher
        self.store = store
        self.artwork = artwork
        self.key_store = key_store
        self.batch_delay = batch_delay
        self.poster_variant = poster_variant
        self.still_variant = still_variant

        self._movies: Dict[UUID, MovieRecord] = store.movies.get_all()
        self._episodes: Dict[UUID, EpisodeRecord] = store.episodes.get_all()
        self._shows: Dict[int, ShowRecord] = store.shows.get_all()

        self._inflight: Dict[Hashable, asyncio.Task] = {}
        self._background: set[asyncio.Task] = set()

        logger.info(
            "Initialized metadata resolver",
            movies=len(self._movies),
            episodes=len(self._episodes),
            shows=len(self._shows),
        )

    # API key management

    @property
    def is_api_key_configured(self) -> bool:
        return self.key_store.has_key()

    def configure_api_key(self, key: str) -> None:
        """Store a new API key.

        Raises:
            StorageFailedError: If the key cannot be stored
        """
        self.key_store.store(key)

    def remove_api_key(self) -> None:
        """Delete the stored API key.

        Raises:
            StorageFailedError: If the key cannot be removed
        """
        self.key_store.delete()

    # Parsing

    def parse_show(self, filename: str) -> EpisodeHint:
        return heuristic.parse_show(filename)

    def is_tv_show(self, filename: str) -> bool:
        return heuristic.is_tv_show(filename)

    # Movies

    async def resolve_movie(
        self,
        file_id: UUID,
        filename: str,
        force_refresh: bool = False,
    ) -> ResolveResult:
        """Resolve movie metadata for one file.

        Args:
            file_id: Owning file id (cache key)
            filename: File name to parse
            force_refresh: Skip the memory and store tiers

        Returns:
            ResolveResult; this never raises for lookup failures
        """
        if not force_refresh:
            if cached := self.cached_movie(file_id):
                logger.debug("Movie cache hit", file_id=str(file_id))
                return ResolveResult.matched(cached)

        if not self.is_api_key_configured:
            return ResolveResult.api_key_missing()

        return await self._single_flight(
            ("movie", file_id),
            lambda: self._fetch_movie(file_id, filename),
        )

    async def _fetch_movie(self, file_id: UUID, filename: str) -> ResolveResult:
        hint = heuristic.parse_movie(filename)
        logger.debug("Resolving movie", file_id=str(file_id), hint=str(hint))

        try:
            candidates = await self.fetcher.search_movies(hint.title, hint.year)
            candidate = select_movie(candidates, hint)
            if candidate is None:
                record = MovieRecord.unmatched(file_id, hint)
                self._remember_unmatched_movie(record)
                logger.info("No movie match found", file_id=str(file_id), title=hint.title)
                return ResolveResult.not_found(record)

            details = await self.fetcher.fetch_movie_details(candidate.id)
            record = MovieRecord.from_details(details, file_id)
            self.store.movies.put(file_id, record)
            self._movies[file_id] = record
        except MetadataError as e:
            logger.warning("Movie resolution failed", file_id=str(file_id), error=str(e))
            return ResolveResult.failed(e)
        except Exception as e:
            logger.error("Unexpected error resolving movie", file_id=str(file_id), error=str(e))
            return ResolveResult.failed(NetworkError(str(e)))

        logger.info(
            "Resolved movie",
            file_id=str(file_id),
            catalog_id=record.catalog_id,
            title=record.title,
        )
        if record.poster_path:
            self._spawn_download(record.poster_path, file_id, ArtworkKind.POSTER, self.poster_variant)
        return ResolveResult.matched(record)

    def _remember_unmatched_movie(self, record: MovieRecord) -> None:
        self._movies[record.file_id] = record
        try:
            self.store.movies.put(record.file_id, record)
        except MetadataError as e:
            logger.warning("Failed to persist unmatched movie", file_id=str(record.file_id), error=str(e))

    def cached_movie(self, file_id: UUID) -> Optional[MovieRecord]:
        """Memory then store; never touches the network."""
        if record := self._movies.get(file_id):
            return record
        try:
            record = self.store.movies.get(file_id)
        except MetadataError as e:
            logger.warning("Failed to load stored movie", file_id=str(file_id), error=str(e))
            return None
        if record is not None:
            self._movies[file_id] = record
        return record

    # TV episodes

    async def resolve_episode(
        self,
        file_id: UUID,
        filename: str,
        force_refresh: bool = False,
    ) -> ResolveResult:
        """Resolve episode metadata for one file.

        On a miss this searches the show, fetches show details when the
        show is not cached yet, and always refreshes the season.

        Args:
            file_id: Owning file id (cache key)
            filename: File name to parse
            force_refresh: Skip the memory and store tiers

        Returns:
            ResolveResult; this never raises for lookup failures
        """
        if not force_refresh:
            if cached := self.cached_episode(file_id):
                logger.debug("Episode cache hit", file_id=str(file_id))
                return ResolveResult.matched(cached)

        if not self.is_api_key_configured:
            return ResolveResult.api_key_missing()

        return await self._single_flight(
            ("episode", file_id),
            lambda: self._fetch_episode(file_id, filename),
        )

    async def _fetch_episode(self, file_id: UUID, filename: str) -> ResolveResult:
        hint = heuristic.parse_show(filename)
        logger.debug("Resolving episode", file_id=str(file_id), hint=str(hint))

        if not hint.is_valid:
            record = EpisodeRecord.unmatched(file_id, hint)
            self._remember_unmatched_episode(record)
            logger.info("Filename has no episode numbering", file_id=str(file_id), filename=filename)
            return ResolveResult.not_found(record)

        try:
            candidates = await self.fetcher.search_shows(hint.show_name)
            candidate = select_show(candidates, hint)
            if candidate is None:
                record = EpisodeRecord.unmatched(file_id, hint)
                self._remember_unmatched_episode(record)
                logger.info("No show match found", file_id=str(file_id), show=hint.show_name)
                return ResolveResult.not_found(record)

            show = self.cached_show(candidate.id)
            if show is None:
                show = ShowRecord.from_details(await self.fetcher.fetch_show_details(candidate.id))
                self._remember_show(show)

            season_details = await self.fetcher.fetch_season_details(show.catalog_id, hint.season)
            season = SeasonRecord.from_details(season_details, show.catalog_id)
            self._remember_season(season)

            episode = season_details.find_episode(hint.episode)
            if episode is None:
                record = EpisodeRecord.unmatched(file_id, hint)
                self._remember_unmatched_episode(record)
                logger.info(
                    "Episode not in season",
                    file_id=str(file_id),
                    catalog_id=show.catalog_id,
                    episode=hint.formatted_episode,
                )
                return ResolveResult.not_found(record)

            record = EpisodeRecord.from_details(episode, file_id, show.catalog_id)
            self.store.episodes.put(file_id, record)
            self._episodes[file_id] = record
        except MetadataError as e:
            logger.warning("Episode resolution failed", file_id=str(file_id), error=str(e))
            return ResolveResult.failed(e)
        except Exception as e:
            logger.error("Unexpected error resolving episode", file_id=str(file_id), error=str(e))
            return ResolveResult.failed(NetworkError(str(e)))

        logger.info(
            "Resolved episode",
            file_id=str(file_id),
            catalog_id=record.series_catalog_id,
            episode=record.formatted_episode,
        )
        if record.still_path:
            self._spawn_download(record.still_path, file_id, ArtworkKind.STILL, self.still_variant)
        return ResolveResult.matched(record)

    def _remember_show(self, show: ShowRecord) -> None:
        self._shows[show.catalog_id] = show
        try:
            self.store.shows.put(show.catalog_id, show)
        except MetadataError as e:
            logger.warning("Failed to persist show", catalog_id=show.catalog_id, error=str(e))
        if show.poster_path:
            self._spawn_download(show.poster_path, show.catalog_id, ArtworkKind.POSTER, self.poster_variant)

    def _remember_season(self, season: SeasonRecord) -> None:
        try:
            self.store.seasons.put((season.series_catalog_id, season.season_number), season)
        except MetadataError as e:
            logger.warning(
                "Failed to persist season",
                catalog_id=season.series_catalog_id,
                season=season.season_number,
                error=str(e),
            )

    def _remember_unmatched_episode(self, record: EpisodeRecord) -> None:
        self._episodes[record.file_id] = record
        try:
            self.store.episodes.put(record.file_id, record)
        except MetadataError as e:
            logger.warning("Failed to persist unmatched episode", file_id=str(record.file_id), error=str(e))

    def cached_episode(self, file_id: UUID) -> Optional[EpisodeRecord]:
        """Memory then store; never touches the network."""
        if record := self._episodes.get(file_id):
            return record
        try:
            record = self.store.episodes.get(file_id)
        except MetadataError as e:
            logger.warning("Failed to load stored episode", file_id=str(file_id), error=str(e))
            return None
        if record is not None:
            self._episodes[file_id] = record
        return record

    def cached_show(self, catalog_id: int) -> Optional[ShowRecord]:
        if record := self._shows.get(catalog_id):
            return record
        try:
            record = self.store.shows.get(catalog_id)
        except MetadataError as e:
            logger.warning("Failed to load stored show", catalog_id=catalog_id, error=str(e))
            return None
        if record is not None:
            self._shows[catalog_id] = record
        return record

    def all_cached_shows(self) -> List[ShowRecord]:
        """Cached shows ordered by name."""
        return sorted(self._shows.values(), key=lambda show: show.name)

    def episodes_for_show(self, catalog_id: int) -> List[EpisodeRecord]:
        """Cached episodes of one show ordered by season then episode."""
        episodes = [
            record for record in self._episodes.values() if record.series_catalog_id == catalog_id
        ]
        return sorted(episodes, key=lambda record: (record.season_number, record.episode_number))

    def seasons_for_show(self, catalog_id: int) -> List[SeasonRecord]:
        return self.store.seasons_for_show(catalog_id)

    # Batch

    async def resolve_batch(
        self,
        files: Sequence[MediaFile],
        on_progress: Optional[ProgressCallback] = None,
        media_type: MediaType = "movie",
    ) -> Dict[UUID, ResolveResult]:
        """Resolve every file that is not cached yet, one at a time.

        Cached files are skipped without a progress callback. After each
        remote lookup ``on_progress(index + 1, total)`` is called and the
        batch sleeps for ``batch_delay`` seconds.

        Args:
            files: Files in processing order
            on_progress: Optional progress callback
            media_type: "movie", "tv", or "auto" to detect per filename

        Returns:
            Results for the files that were looked up
        """
        results: Dict[UUID, ResolveResult] = {}
        if not self.is_api_key_configured:
            logger.warning("Skipping batch resolution, no API key configured")
            return results

        total = len(files)
        logger.info("Starting batch resolution", total=total, media_type=media_type)

        for index, media_file in enumerate(files):
            as_tv = self._treat_as_tv(media_file.filename, media_type)
            if self._is_known(media_file.file_id, as_tv):
                continue

            if as_tv:
                result = await self.resolve_episode(media_file.file_id, media_file.filename)
            else:
                result = await self.resolve_movie(media_file.file_id, media_file.filename)
            results[media_file.file_id] = result

            if on_progress:
                on_progress(index + 1, total)

            await asyncio.sleep(self.batch_delay)

        logger.info("Finished batch resolution", total=total, resolved=len(results))
        return results

    def _treat_as_tv(self, filename: str, media_type: MediaType) -> bool:
        if media_type == "auto":
            return self.is_tv_show(filename)
        return media_type == "tv"

    def _is_known(self, file_id: UUID, as_tv: bool) -> bool:
        if as_tv:
            return file_id in self._episodes or self.store.episodes.exists(file_id)
        return file_id in self._movies or self.store.movies.exists(file_id)

    # Cache management

    def clear_cache(self) -> None:
        """Delete every stored record and all artwork, and empty memory.

        Raises:
            StorageFailedError: If the store cannot be cleared
            CacheFailedError: If the artwork cannot be removed
        """
        self.store.delete_all()
        self.artwork.delete_everything()
        self._movies.clear()
        self._episodes.clear()
        self._shows.clear()
        logger.info("Cleared metadata cache")

    def invalidate(self, file_id: UUID) -> None:
        """Forget one file's movie or episode record and its artwork."""
        self._movies.pop(file_id, None)
        self._episodes.pop(file_id, None)
        self.store.movies.delete(file_id)
        self.store.episodes.delete(file_id)
        self.artwork.delete_all(file_id)
        logger.info("Invalidated cached metadata", file_id=str(file_id))

    def artwork_cache_size(self) -> int:
        return self.artwork.total_size_bytes()

    def formatted_artwork_cache_size(self) -> str:
        return human_readable_size(self.artwork_cache_size())

    def clear_artwork_cache(self) -> None:
        self.artwork.delete_everything()

    # Artwork

    def poster_path(self, owner_id: OwnerId, variant: str = POSTER_GRID) -> Optional[Path]:
        """Local poster file for a movie file id or show catalog id, if cached."""
        return self.artwork.local_path(owner_id, ArtworkKind.POSTER, variant)

    def backdrop_path(self, owner_id: OwnerId, variant: str = BACKDROP_DEFAULT) -> Optional[Path]:
        return self.artwork.local_path(owner_id, ArtworkKind.BACKDROP, variant)

    def still_path(self, file_id: UUID, variant: str = STILL_ROW) -> Optional[Path]:
        return self.artwork.local_path(file_id, ArtworkKind.STILL, variant)

    async def ensure_poster_cached(self, record: Union[MovieRecord, ShowRecord]) -> None:
        """Download the poster unless it is already on disk."""
        if not record.poster_path:
            return
        owner_id = record.file_id if isinstance(record, MovieRecord) else record.catalog_id
        if self.poster_path(owner_id, self.poster_variant) is not None:
            return
        await self._download_quietly(record.poster_path, owner_id, ArtworkKind.POSTER, self.poster_variant)

    async def ensure_still_cached(self, record: EpisodeRecord) -> None:
        """Download the episode still unless it is already on disk."""
        if not record.still_path:
            return
        if self.still_path(record.file_id, self.still_variant) is not None:
            return
        await self._download_quietly(record.still_path, record.file_id, ArtworkKind.STILL, self.still_variant)

    def _spawn_download(
        self,
        remote_path: str,
        owner_id: OwnerId,
        kind: ArtworkKind,
        variant: str,
    ) -> None:
        task = asyncio.create_task(self._download_quietly(remote_path, owner_id, kind, variant))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _download_quietly(
        self,
        remote_path: str,
        owner_id: OwnerId,
        kind: ArtworkKind,
        variant: str,
    ) -> None:
        try:
            await self.artwork.download(remote_path, owner_id, kind, variant)
        except Exception as e:
            logger.warning(
                "Artwork download failed",
                owner_id=str(owner_id),
                kind=kind.value,
                remote_path=remote_path,
                error=str(e),
            )

    async def wait_for_background(self) -> None:
        """Wait until every background artwork download has finished."""
        while self._background:
            await asyncio.gather(*list(self._background))

    # Concurrency

    async def _single_flight(
        self,
        key: Hashable,
        factory: Callable[[], Awaitable[ResolveResult]],
    ) -> ResolveResult:
        """Share one in-progress lookup between overlapping calls for a key."""
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget_inflight(key, done))
        else:
            logger.debug("Joining in-flight lookup", key=str(key))
        return await asyncio.shield(task)

    def _forget_inflight(self, key: Hashable, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
