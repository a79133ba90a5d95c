from __future__ import annotations

import pytest

from engine.errors import ExternalServiceError, ValidationError
from playlist.assembly import assemble_playlist, chunked


def test_chunked_splits_into_batches() -> None:
    assert list(chunked(["a", "b", "c"], 2)) == [["a", "b"], ["c"]]
    assert list(chunked([], 100)) == []


def test_assemble_playlist_batches_at_one_hundred(catalog_factory) -> None:
    catalog = catalog_factory()
    uris = [f"spotify:track:{i}" for i in range(250)]

    playlist_id = assemble_playlist(catalog, uris)

    assert playlist_id == "playlist-1"
    assert catalog.created == [("Squad Spotify Wrapped Playlist", "Generated with Squad Spotify Wrapped")]
    assert [len(batch) for _, batch in catalog.added] == [100, 100, 50]
    assert [uri for _, batch in catalog.added for uri in batch] == uris


def test_assemble_playlist_requires_tracks(catalog_factory) -> None:
    catalog = catalog_factory()

    with pytest.raises(ValidationError) as excinfo:
        assemble_playlist(catalog, [])

    assert excinfo.value.status_code == 422
    assert catalog.created == []


def test_add_tracks_failure_is_fatal(catalog_factory) -> None:
    catalog = catalog_factory()

    def _fail(playlist_id, uris):
        raise ExternalServiceError("add failed", upstream_status=500)

    catalog.add_tracks = _fail

    with pytest.raises(ExternalServiceError):
        assemble_playlist(catalog, ["spotify:track:1"], name="Custom", description="Desc")

    assert catalog.created == [("Custom", "Desc")]
