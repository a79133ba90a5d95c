"""Create the destination playlist and submit resolved track URIs."""

from __future__ import annotations

import logging
from typing import Iterator, Sequence

from config import settings
from engine.errors import ValidationError
from engine.events import log_event


def chunked(uris: Sequence[str], size: int) -> Iterator[list[str]]:
    if size <= 0:
        raise ValueError("batch size must be positive")
    for start in range(0, len(uris), size):
        yield list(uris[start:start + size])


def assemble_playlist(
    catalog,
    uris: Sequence[str],
    *,
    name: str | None = None,
    description: str | None = None,
    batch_size: int | None = None,
) -> str:
    """Create a playlist, add ``uris`` in batches, and return the playlist id.

    Failures from Spotify propagate: a half-built playlist is a request failure.
    """
    if not uris:
        raise ValidationError("No tracks could be resolved", status_code=422)

    name = name or settings.PLAYLIST_NAME
    description = description or settings.PLAYLIST_DESCRIPTION
    batch_size = batch_size or settings.ADD_TRACKS_BATCH_SIZE

    playlist_id = catalog.create_playlist(name, description)
    log_event(logging.INFO, "playlist_created", playlist_id=playlist_id, name=name)

    batches = 0
    for batch in chunked(list(uris), batch_size):
        catalog.add_tracks(playlist_id, batch)
        batches += 1

    log_event(
        logging.INFO,
        "playlist_tracks_added",
        playlist_id=playlist_id,
        tracks=len(uris),
        batches=batches,
    )
    return playlist_id
