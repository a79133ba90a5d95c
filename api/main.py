#!/usr/bin/env python3
import logging
import os
from typing import Any

import anyio
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import settings
from engine.errors import (
    ExternalServiceError,
    PlaylistGenerationError,
    RateLimited,
    RequestTimeout,
    ValidationError,
)
from engine.paths import DATA_DIR, LOG_DIR, ensure_dir, log_file_path
from engine.runtime import get_runtime_info
from playlist.generator import generate_playlist
from spotify.client import SpotifyCatalogClient
from spotify.oauth_client import request_client_credentials_token
from wrapped.profile import Structured, profile_from_payload
from wrapped.text_normalizer import normalize_columns, normalize_single

APP_NAME = "Squad Wrapped API"
PLAYLIST_FAILED_MESSAGE = "Failed to create playlist"
RATE_LIMITED_MESSAGE = "Spotify is rate limiting requests; please try again in a minute"


def _setup_logging(log_dir):
    ensure_dir(log_dir)
    root = logging.getLogger("")
    log_path = log_file_path(log_dir)
    root.setLevel(logging.INFO)
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler):
            if os.path.abspath(getattr(handler, "baseFilename", "")) == os.path.abspath(log_path):
                return
    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    file_handler.setLevel(logging.INFO)
    root.addHandler(file_handler)


def _build_catalog_client() -> SpotifyCatalogClient:
    # A fresh client per request keeps the access token request-scoped.
    return SpotifyCatalogClient()


def _error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=headers)


class PlaylistCreatePayload(BaseModel):
    data: list[Any] | None = None


class WrappedTextPayload(BaseModel):
    text: str | None = None
    left_text: str | None = None
    right_text: str | None = None


app = FastAPI(
    title=APP_NAME,
    description="Builds a shared Spotify playlist from several users' Wrapped top artists and songs.",
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _error_response(400, "Malformed request body")


@app.on_event("startup")
async def startup():
    ensure_dir(DATA_DIR)
    _setup_logging(LOG_DIR)
    app.state.log_path = log_file_path(LOG_DIR)
    logging.info("%s started (market=%s workers=%d)", APP_NAME, settings.SPOTIFY_MARKET, settings.PLAYLIST_MAX_WORKERS)


@app.get("/api/health")
async def health():
    return {"status": "ok", **get_runtime_info()}


@app.post("/api/wrapped/parse")
async def parse_wrapped_text(payload: WrappedTextPayload):
    if payload.left_text is not None or payload.right_text is not None:
        parsed = normalize_columns(payload.left_text, payload.right_text)
    elif payload.text is not None:
        parsed = normalize_single(payload.text)
    else:
        return _error_response(400, "Provide text, or left_text and right_text")

    if isinstance(parsed, Structured):
        return {"structured": True, "profile": parsed.profile.to_payload()}
    return {"structured": False, "text": parsed.text}


@app.post("/api/spotify/token")
async def spotify_token():
    try:
        token = await anyio.to_thread.run_sync(
            lambda: request_client_credentials_token(
                settings.SPOTIFY_CLIENT_ID,
                settings.SPOTIFY_CLIENT_SECRET,
                timeout=settings.SPOTIFY_TIMEOUT_SECONDS,
            )
        )
    except PlaylistGenerationError:
        logging.exception("Spotify token generation failed")
        return _error_response(500, "Failed to generate token")
    return {"access_token": token["access_token"]}


@app.post("/api/spotify/playlist")
async def create_playlist(payload: PlaylistCreatePayload):
    if not payload.data:
        return _error_response(400, "No input data provided")
    try:
        profiles = [profile_from_payload(entry) for entry in payload.data]
    except ValueError as exc:
        return _error_response(400, f"Invalid profile: {exc}")

    catalog = _build_catalog_client()
    try:
        result = await anyio.to_thread.run_sync(generate_playlist, catalog, profiles)
    except RateLimited as exc:
        logging.warning("Playlist generation rate limited: %s", exc)
        headers = None
        if exc.retry_after is not None:
            headers = {"Retry-After": str(int(max(1, exc.retry_after)))}
        return _error_response(429, RATE_LIMITED_MESSAGE, headers)
    except ValidationError as exc:
        return _error_response(exc.status_code, str(exc))
    except RequestTimeout as exc:
        logging.warning("Playlist generation timed out: %s", exc)
        return _error_response(504, str(exc))
    except ExternalServiceError:
        logging.exception("Spotify call failed while creating playlist")
        return _error_response(500, PLAYLIST_FAILED_MESSAGE)
    except Exception:
        logging.exception("Error creating playlist")
        return _error_response(500, PLAYLIST_FAILED_MESSAGE)

    logging.info(
        "Created playlist %s with %d tracks from %d profiles",
        result.playlist_id,
        len(result.generation.uris),
        result.generation.profiles_used,
    )
    return {"playlistId": result.playlist_id}


if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("SQUAD_WRAPPED_HOST", "127.0.0.1")
    port = int(os.environ.get("SQUAD_WRAPPED_PORT", "8000"))
    uvicorn.run("api.main:app", host=host, port=port, reload=False)
