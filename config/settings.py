"""Application settings constants."""

from __future__ import annotations

import os


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


SPOTIFY_CLIENT_ID = os.environ.get("SPOTIFY_CLIENT_ID")
SPOTIFY_CLIENT_SECRET = os.environ.get("SPOTIFY_CLIENT_SECRET")
# Optional user-scoped refresh token; playlists are created for this user.
SPOTIFY_REFRESH_TOKEN = os.environ.get("SPOTIFY_REFRESH_TOKEN")

# Market used for artist top-tracks lookups.
SPOTIFY_MARKET = os.environ.get("SPOTIFY_MARKET", "US")
SPOTIFY_TIMEOUT_SECONDS = _env_int("SPOTIFY_TIMEOUT_SECONDS", 20)

# 429 handling: retries after the first attempt, and the backoff base used when
# Spotify omits Retry-After.
SPOTIFY_MAX_RATE_LIMIT_RETRIES = _env_int("SPOTIFY_MAX_RATE_LIMIT_RETRIES", 3)
SPOTIFY_BACKOFF_BASE_SECONDS = _env_float("SPOTIFY_BACKOFF_BASE_SECONDS", 1.0)

SEARCH_RESULT_LIMIT = 20
ARTIST_TOP_TRACKS_LIMIT = 5
TRACKS_PER_ARTIST = 3
# Spotify rejects more than 100 URIs per add-tracks call.
ADD_TRACKS_BATCH_SIZE = 100

PLAYLIST_MAX_WORKERS = max(1, _env_int("PLAYLIST_MAX_WORKERS", 4))
PLAYLIST_REQUEST_TIMEOUT_SECONDS = _env_float("PLAYLIST_REQUEST_TIMEOUT_SECONDS", 120.0)
PLAYLIST_NAME = os.environ.get("PLAYLIST_NAME", "Squad Spotify Wrapped Playlist")
PLAYLIST_DESCRIPTION = os.environ.get("PLAYLIST_DESCRIPTION", "Generated with Squad Spotify Wrapped")
