"""TMDB API client with retry logic."""

from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from reelscout.metadata.errors import (
    ApiKeyNotConfiguredError,
    InvalidApiKeyError,
    NetworkError,
    NotFoundRemoteError,
    ParsingFailedError,
    RateLimitedError,
    RemoteApiError,
)
from reelscout.metadata.ports import KeyStore, MetadataFetcher
from reelscout.models.tmdb import (
    MovieDetails,
    SearchCandidate,
    SeasonDetails,
    ShowCandidate,
    ShowDetails,
)
from reelscout.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.themoviedb.org/3"

T = TypeVar("T", bound=BaseModel)


class TMDBClient(MetadataFetcher):
    """TMDB API client.

    The API key is read from the key store on every request, so keys
    configured or removed at runtime take effect immediately.
    """

    def __init__(
        self,
        key_store: KeyStore,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        include_adult: bool = False,
        retry_attempts: int = 3,
        retry_wait_seconds: float = 1.0,
    ):
        """Initialize TMDB client.

        Args:
            key_store: Source of the API key
            http_client: Shared client; one is created (and owned) if omitted
            base_url: API base URL
            timeout: Request timeout for an owned client
            include_adult: Include adult titles in searches
            retry_attempts: Attempts for transport failures
            retry_wait_seconds: Base of the exponential backoff between attempts
        """
        self.key_store = key_store
        self.base_url = base_url.rstrip("/")
        self.include_adult = include_adult
        self.retry_attempts = retry_attempts
        self.retry_wait_seconds = retry_wait_seconds
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(timeout=timeout)
        logger.info("Initialized TMDB client", base_url=self.base_url)

    async def close(self):
        """Close HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def search_movies(self, title: str, year: Optional[int] = None) -> List[SearchCandidate]:
        """Search for movies on TMDB.

        Args:
            title: Search query (movie title)
            year: Optional year to filter results

        Returns:
            Candidates in TMDB relevance order (may be empty)
        """
        params: Dict[str, Any] = {"query": title, "include_adult": self._adult_flag()}
        if year:
            params["year"] = year

        data = await self._get("/search/movie", params)
        results = self._parse_list(data.get("results", []), SearchCandidate)
        logger.info("Searched TMDB for movie", query=title, year=year, result_count=len(results))
        return results

    async def fetch_movie_details(self, catalog_id: int) -> MovieDetails:
        data = await self._get(f"/movie/{catalog_id}")
        details = self._parse(data, MovieDetails)
        logger.info("Fetched movie from TMDB", tmdb_id=catalog_id, title=details.title)
        return details

    async def search_shows(self, name: str) -> List[ShowCandidate]:
        """Search for TV shows on TMDB.

        Args:
            name: Search query (show name)

        Returns:
            Candidates in TMDB relevance order (may be empty)
        """
        data = await self._get("/search/tv", {"query": name, "include_adult": self._adult_flag()})
        results = self._parse_list(data.get("results", []), ShowCandidate)
        logger.info("Searched TMDB for TV show", query=name, result_count=len(results))
        return results

    async def fetch_show_details(self, catalog_id: int) -> ShowDetails:
        data = await self._get(f"/tv/{catalog_id}")
        details = self._parse(data, ShowDetails)
        logger.info("Fetched TV show from TMDB", tmdb_id=catalog_id, name=details.name)
        return details

    async def fetch_season_details(self, series_id: int, season_number: int) -> SeasonDetails:
        data = await self._get(f"/tv/{series_id}/season/{season_number}")
        details = self._parse(data, SeasonDetails)
        logger.info(
            "Fetched TV season from TMDB",
            tmdb_id=series_id,
            season=season_number,
            episode_count=len(details.episodes),
        )
        return details

    async def validate_api_key(self) -> bool:
        """Check the stored key against /authentication.

        Returns:
            True when TMDB accepts the key

        Raises:
            InvalidApiKeyError: If TMDB rejects the key
            MetadataError: For any other failure
        """
        await self._get("/authentication")
        return True

    def _adult_flag(self) -> str:
        return "true" if self.include_adult else "false"

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> dict:
        """Perform a GET and map failures to MetadataError subclasses."""
        api_key = self.key_store.retrieve()
        if not api_key:
            raise ApiKeyNotConfiguredError()

        url = f"{self.base_url}{path}"
        query = {"api_key": api_key, **(params or {})}

        try:
            response = await self._send(url, query)
        except httpx.HTTPError as e:
            logger.error("TMDB request failed", path=path, error=str(e))
            raise NetworkError(str(e)) from e

        status = response.status_code
        if status == 401:
            raise InvalidApiKeyError()
        if status == 404:
            raise NotFoundRemoteError()
        if status == 429:
            logger.warning("TMDB rate limit hit", path=path)
            raise RateLimitedError()
        if not response.is_success:
            detail = self._error_message(response)
            logger.error("TMDB API error", path=path, status_code=status, error=detail)
            raise RemoteApiError(status, detail)

        try:
            data = response.json()
        except ValueError as e:
            raise ParsingFailedError(str(e)) from e
        if not isinstance(data, dict):
            raise ParsingFailedError("Expected a JSON object")
        return data

    async def _send(self, url: str, params: Dict[str, Any]) -> httpx.Response:
        """GET with retries on transport errors (timeouts, refused connections)."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_wait_seconds, max=10),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                return await self.client.get(url, params=params)
        raise NetworkError("Request was not attempted")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return "Unknown error"
        if isinstance(body, dict) and body.get("status_message"):
            return str(body["status_message"])
        return "Unknown error"

    @staticmethod
    def _parse(data: dict, model: Type[T]) -> T:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ParsingFailedError(str(e)) from e

    @staticmethod
    def _parse_list(items: list, model: Type[T]) -> List[T]:
        try:
            return [model.model_validate(item) for item in items]
        except ValidationError as e:
            raise ParsingFailedError(str(e)) from e
