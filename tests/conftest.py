import sys
import threading
from pathlib import Path

import pytest


# Ensure tests can import project packages regardless of how pytest is invoked.
ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)

from spotify.client import ArtistHit, CandidateTrack  # noqa: E402
from wrapped.profile import UserMusicProfile  # noqa: E402


def track(track_id, name, *artists):
    return CandidateTrack(id=track_id, uri=f"spotify:track:{track_id}", name=name, artists=tuple(artists))


class FakeCatalog:
    """In-memory stand-in for SpotifyCatalogClient keyed by query text."""

    def __init__(self, *, tracks=None, artists=None, top_tracks=None, errors=None):
        self.tracks = tracks or {}
        self.artists = artists or {}
        self.top_tracks = top_tracks or {}
        self.errors = errors or {}
        self.calls = []
        self.created = []
        self.added = []
        self.deadline = None
        self._lock = threading.Lock()

    def set_deadline(self, deadline):
        self.deadline = deadline

    def _record(self, kind, value):
        with self._lock:
            self.calls.append((kind, value))
        error = self.errors.get(value)
        if error is not None:
            raise error

    def search_tracks(self, query, limit=None):
        self._record("track", query)
        return list(self.tracks.get(query, []))

    def search_artists(self, query, limit=None):
        self._record("artist", query)
        hits = self.artists.get(query)
        if hits is None and query in self.top_tracks:
            hits = [ArtistHit(id=query, name=query)]
        return list(hits or [])

    def get_artist_top_tracks(self, artist_id, market=None):
        self._record("top_tracks", artist_id)
        return list(self.top_tracks.get(artist_id, []))

    def create_playlist(self, name, description):
        self.created.append((name, description))
        return "playlist-1"

    def add_tracks(self, playlist_id, uris):
        self.added.append((playlist_id, list(uris)))
        return "snapshot-1"


def make_profile(prefix, *, artists=None, songs=None, truncated=()):
    return UserMusicProfile(
        top_artists=tuple(artists or [f"{prefix} Artist {i}" for i in range(1, 6)]),
        top_songs=tuple(songs or [f"{prefix} Song {i}" for i in range(1, 6)]),
        truncated_songs=frozenset(truncated),
    )


@pytest.fixture
def catalog_factory():
    return FakeCatalog
