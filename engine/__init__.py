from .edit_distance import levenshtein, relevance_threshold, truncation_aware_distance
from .errors import (
    ExternalServiceError,
    NoMatch,
    ParseFailure,
    PlaylistGenerationError,
    RateLimited,
    RequestTimeout,
    TokenExchangeError,
    ValidationError,
)
from .runtime import get_runtime_info

__all__ = [
    "ExternalServiceError",
    "NoMatch",
    "ParseFailure",
    "PlaylistGenerationError",
    "RateLimited",
    "RequestTimeout",
    "TokenExchangeError",
    "ValidationError",
    "get_runtime_info",
    "levenshtein",
    "relevance_threshold",
    "truncation_aware_distance",
]
