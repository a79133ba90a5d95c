"""Spotify Web API client for catalog search and playlist mutation."""

from __future__ import annotations

import logging
import threading
import time
import urllib.parse
from dataclasses import dataclass
from typing import Any

import requests

from config import settings
from engine.errors import ExternalServiceError, RateLimited, RequestTimeout, TokenExchangeError
from spotify.oauth_client import refresh_access_token, request_client_credentials_token

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateTrack:
    id: str
    uri: str
    name: str
    artists: tuple[str, ...] = ()

    @classmethod
    def from_api(cls, item: Any) -> "CandidateTrack | None":
        if not isinstance(item, dict) or not item.get("id"):
            return None
        track_id = str(item["id"])
        artists = tuple(
            str(artist.get("name")).strip()
            for artist in item.get("artists") or []
            if isinstance(artist, dict) and artist.get("name")
        )
        return cls(
            id=track_id,
            uri=str(item.get("uri") or f"spotify:track:{track_id}"),
            name=str(item.get("name") or ""),
            artists=artists,
        )


@dataclass(frozen=True)
class ArtistHit:
    id: str
    name: str


class SpotifyCatalogClient:
    """Client for search, artist top tracks and playlist creation.

    One instance serves one playlist request: the access token is fetched
    once, shared by every call, and refreshed once on HTTP 401. A failed
    token exchange is remembered, so later calls fail fast with the same
    error. Once a deadline is set no call starts, and no rate-limit wait
    runs, past it.
    """

    _API_BASE = "https://api.spotify.com/v1"

    def __init__(
        self,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        refresh_token: str | None = None,
        access_token: str | None = None,
        timeout_sec: float | None = None,
        market: str | None = None,
        max_rate_limit_retries: int | None = None,
        backoff_base_sec: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.client_id = client_id or settings.SPOTIFY_CLIENT_ID
        self.client_secret = client_secret or settings.SPOTIFY_CLIENT_SECRET
        self.refresh_token = refresh_token or settings.SPOTIFY_REFRESH_TOKEN
        self.timeout_sec = timeout_sec if timeout_sec is not None else settings.SPOTIFY_TIMEOUT_SECONDS
        self.market = market or settings.SPOTIFY_MARKET
        self.max_rate_limit_retries = (
            max_rate_limit_retries
            if max_rate_limit_retries is not None
            else settings.SPOTIFY_MAX_RATE_LIMIT_RETRIES
        )
        self.backoff_base_sec = (
            backoff_base_sec if backoff_base_sec is not None else settings.SPOTIFY_BACKOFF_BASE_SECONDS
        )
        self._session = session or requests.Session()
        self._provided_access_token = (access_token or "").strip() or None
        self._access_token: str | None = None
        self._token_error: TokenExchangeError | None = None
        self._token_lock = threading.Lock()
        self.deadline: float | None = None

    def set_deadline(self, deadline: float | None) -> None:
        """Bound every later call by ``deadline``, a ``time.monotonic()`` value."""
        self.deadline = deadline

    def _remaining_sec(self) -> float | None:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def _get_access_token(self) -> str:
        if self._provided_access_token:
            return self._provided_access_token
        with self._token_lock:
            if self._access_token:
                return self._access_token
            if self._token_error is not None:
                raise TokenExchangeError(
                    str(self._token_error),
                    upstream_status=self._token_error.upstream_status,
                ) from self._token_error
            try:
                if self.refresh_token:
                    payload = refresh_access_token(
                        self.client_id,
                        self.client_secret,
                        self.refresh_token,
                        timeout=self.timeout_sec,
                    )
                else:
                    payload = request_client_credentials_token(
                        self.client_id,
                        self.client_secret,
                        timeout=self.timeout_sec,
                    )
            except TokenExchangeError as exc:
                _LOG.error("Spotify token exchange failed: %s", exc)
                self._token_error = exc
                raise
            self._access_token = str(payload["access_token"])
            return self._access_token

    def _invalidate_token(self) -> None:
        with self._token_lock:
            self._access_token = None

    def _backoff_seconds(self, response: requests.Response, attempt: int) -> float:
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return max(0.0, float(retry_after))
            except (TypeError, ValueError):
                pass
        return self.backoff_base_sec * (2 ** (attempt - 1))

    def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Perform an API call, retrying on 429 and refreshing once on 401."""
        url = path if path.startswith("http") else f"{self._API_BASE}{path}"
        unauthorized_retry_used = False
        attempts = 0
        while True:
            attempts += 1
            remaining = self._remaining_sec()
            if remaining is not None and remaining <= 0:
                raise RequestTimeout(f"Request deadline passed before {method} {path}")
            headers = {"Authorization": f"Bearer {self._get_access_token()}"}
            try:
                response = self._session.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    headers=headers,
                    timeout=self.timeout_sec,
                )
            except requests.Timeout as exc:
                raise ExternalServiceError(f"Spotify request timed out: {method} {path}") from exc
            except requests.RequestException as exc:
                raise ExternalServiceError(f"Spotify request failed: {method} {path}: {exc}") from exc

            if response.status_code == 401 and not unauthorized_retry_used and not self._provided_access_token:
                unauthorized_retry_used = True
                self._invalidate_token()
                continue

            if response.status_code == 429:
                sleep_sec = self._backoff_seconds(response, attempts)
                if attempts > self.max_rate_limit_retries:
                    raise RateLimited(
                        f"Spotify rate limit exceeded after {attempts} attempts ({method} {path})",
                        retry_after=sleep_sec,
                    )
                remaining = self._remaining_sec()
                if remaining is not None and sleep_sec >= remaining:
                    raise RateLimited(
                        f"Spotify asked to wait {sleep_sec:.1f}s, past the request deadline ({method} {path})",
                        retry_after=sleep_sec,
                    )
                _LOG.warning(
                    "Spotify rate limited %s %s; retrying in %.1fs (attempt %d)",
                    method,
                    path,
                    sleep_sec,
                    attempts,
                )
                time.sleep(sleep_sec)
                continue

            if not 200 <= response.status_code < 300:
                raise ExternalServiceError(
                    f"Spotify request failed ({response.status_code}): {method} {path}",
                    upstream_status=response.status_code,
                )
            if not response.content:
                return {}
            try:
                payload = response.json()
            except ValueError as exc:
                raise ExternalServiceError(
                    f"Spotify returned a non-JSON body: {method} {path}",
                    upstream_status=response.status_code,
                ) from exc
            if not isinstance(payload, dict):
                raise ExternalServiceError(
                    f"Spotify returned an unexpected body: {method} {path}",
                    upstream_status=response.status_code,
                )
            return payload

    def search(self, query: str, search_type: str = "track", limit: int | None = None) -> list[dict[str, Any]]:
        """Return raw search items for ``query`` of ``search_type`` (track or artist)."""
        if search_type not in {"track", "artist"}:
            raise ValueError(f"unsupported search type: {search_type}")
        payload = self._request_json(
            "GET",
            "/search",
            params={
                "q": query,
                "type": search_type,
                "limit": limit or settings.SEARCH_RESULT_LIMIT,
            },
        )
        container = payload.get(f"{search_type}s")
        if not isinstance(container, dict):
            return []
        return [item for item in container.get("items") or [] if isinstance(item, dict)]

    def search_tracks(self, query: str, limit: int | None = None) -> list[CandidateTrack]:
        tracks = (CandidateTrack.from_api(item) for item in self.search(query, "track", limit))
        return [track for track in tracks if track is not None]

    def search_artists(self, query: str, limit: int | None = None) -> list[ArtistHit]:
        return [
            ArtistHit(id=str(item["id"]), name=str(item.get("name") or ""))
            for item in self.search(f"artist:{query}", "artist", limit)
            if item.get("id")
        ]

    def get_artist_top_tracks(self, artist_id: str, market: str | None = None) -> list[CandidateTrack]:
        encoded_id = urllib.parse.quote(artist_id, safe="")
        payload = self._request_json(
            "GET",
            f"/artists/{encoded_id}/top-tracks",
            params={"market": market or self.market},
        )
        tracks = (CandidateTrack.from_api(item) for item in payload.get("tracks") or [])
        return [track for track in tracks if track is not None]

    def create_playlist(self, name: str, description: str, *, public: bool = True) -> str:
        payload = self._request_json(
            "POST",
            "/me/playlists",
            json_body={
                "name": name,
                "description": description,
                "public": public,
                "collaborative": False,
            },
        )
        playlist_id = payload.get("id")
        if not playlist_id:
            raise ExternalServiceError("Spotify create-playlist response missing id")
        return str(playlist_id)

    def add_tracks(self, playlist_id: str, uris: list[str]) -> str | None:
        """Append ``uris`` to a playlist and return the new ``snapshot_id``."""
        encoded_id = urllib.parse.quote(playlist_id, safe="")
        payload = self._request_json(
            "POST",
            f"/playlists/{encoded_id}/tracks",
            json_body={"uris": list(uris)},
        )
        return payload.get("snapshot_id")
