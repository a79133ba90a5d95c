"""Error taxonomy for playlist generation."""

from __future__ import annotations


class PlaylistGenerationError(Exception):
    """Base class for every classified playlist-generation failure."""

    status_code = 500


class ParseFailure(PlaylistGenerationError):
    """OCR text could not be turned into a structured profile."""

    status_code = 400


class NoMatch(PlaylistGenerationError):
    """A song or artist query produced no usable candidate."""

    status_code = 404


class RateLimited(PlaylistGenerationError):
    """Spotify kept throttling after the retry budget was spent."""

    status_code = 429

    def __init__(self, message: str = "Spotify rate limit exceeded", *, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class ExternalServiceError(PlaylistGenerationError):
    """Network failure or non-2xx response from Spotify."""

    status_code = 500

    def __init__(self, message: str, *, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class TokenExchangeError(ExternalServiceError):
    """Spotify refused or failed the access-token exchange."""


class ValidationError(PlaylistGenerationError):
    """Malformed or empty top-level input."""

    status_code = 400

    def __init__(self, message: str, *, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class RequestTimeout(PlaylistGenerationError):
    """The request deadline passed before generation finished."""

    status_code = 504
