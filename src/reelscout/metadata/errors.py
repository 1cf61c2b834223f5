"""Errors raised by metadata collaborators."""

from typing import Optional


class MetadataError(Exception):
    """Base exception for metadata resolution errors."""

    kind = "metadata_error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message())

    def default_message(self) -> str:
        return "Metadata operation failed"


class ApiKeyNotConfiguredError(MetadataError):
    kind = "api_key_not_configured"

    def default_message(self) -> str:
        return "TMDB API key is not configured"


class InvalidApiKeyError(MetadataError):
    kind = "invalid_api_key"

    def default_message(self) -> str:
        return "The TMDB API key is invalid"


class RateLimitedError(MetadataError):
    kind = "rate_limited"

    def default_message(self) -> str:
        return "TMDB rate limit exceeded, try again later"


class NotFoundRemoteError(MetadataError):
    """A details fetch returned 404 for a specific catalog id."""

    kind = "not_found_remote"

    def default_message(self) -> str:
        return "Not found on TMDB"


class _DetailedError(MetadataError):
    prefix = "Error"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"{self.prefix}: {detail}")


class NetworkError(_DetailedError):
    kind = "network_error"
    prefix = "Network error"


class ParsingFailedError(_DetailedError):
    kind = "parsing_failed"
    prefix = "Failed to parse response"


class StorageFailedError(_DetailedError):
    kind = "storage_failed"
    prefix = "Failed to save metadata"


class CacheFailedError(_DetailedError):
    kind = "cache_failed"
    prefix = "Failed to cache artwork"


class RemoteApiError(MetadataError):
    """Non-2xx response other than 401, 404 and 429."""

    kind = "remote_api_error"

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"TMDB API error ({status_code}): {detail}")
