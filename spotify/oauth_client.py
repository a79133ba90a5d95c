"""Spotify token exchange helpers."""

from __future__ import annotations

import base64

import requests

from engine.errors import RateLimited, TokenExchangeError

SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
PLAYLIST_SCOPE = "playlist-modify-public playlist-modify-private"


def _basic_auth_header(client_id: str, client_secret: str) -> str:
    auth_payload = f"{client_id}:{client_secret}".encode("utf-8")
    return "Basic " + base64.b64encode(auth_payload).decode("ascii")


def _exchange(client_id: str, client_secret: str, data: dict, timeout: float) -> dict:
    if not client_id or not client_secret:
        raise TokenExchangeError("Spotify credentials are required")
    try:
        response = requests.post(
            SPOTIFY_TOKEN_URL,
            data=data,
            headers={"Authorization": _basic_auth_header(client_id, client_secret)},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise TokenExchangeError(f"Spotify token request failed: {exc}") from exc
    if response.status_code == 429:
        raise RateLimited("Spotify token endpoint rate limited")
    if response.status_code != 200:
        detail = (response.text or "").strip() or f"status={response.status_code}"
        raise TokenExchangeError(
            f"Spotify token request failed: {detail}",
            upstream_status=response.status_code,
        )
    try:
        payload = response.json()
    except ValueError as exc:
        raise TokenExchangeError(
            "Spotify token response was not JSON",
            upstream_status=response.status_code,
        ) from exc
    if not isinstance(payload, dict) or not payload.get("access_token"):
        raise TokenExchangeError("Spotify token response missing access_token")
    return payload


def refresh_access_token(
    client_id: str,
    client_secret: str,
    refresh_token: str,
    *,
    timeout: float = 20,
) -> dict:
    """Exchange a user refresh token for a new access token payload.

    Returns:
        Parsed JSON token response from Spotify.

    Raises:
        TokenExchangeError: When the request fails or the response is not 200.
    """
    return _exchange(
        client_id,
        client_secret,
        {"grant_type": "refresh_token", "refresh_token": refresh_token},
        timeout,
    )


def request_client_credentials_token(
    client_id: str,
    client_secret: str,
    *,
    timeout: float = 20,
) -> dict:
    """App-only token; enough for search and top tracks."""
    return _exchange(
        client_id,
        client_secret,
        {"grant_type": "client_credentials", "scope": PLAYLIST_SCOPE},
        timeout,
    )
