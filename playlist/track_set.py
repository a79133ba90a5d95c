"""Request-scoped duplicate tracker for generated playlists."""

from __future__ import annotations

import threading

from spotify.client import CandidateTrack


class TrackSet:
    """Track ids committed to one playlist, in acceptance order.

    ``add_if_absent`` is the only mutation and is atomic, so two concurrent
    commits of the same id cannot both win.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids: set[str] = set()
        self._uris: list[str] = []

    def add_if_absent(self, track: CandidateTrack) -> bool:
        with self._lock:
            if track.id in self._ids:
                return False
            self._ids.add(track.id)
            self._uris.append(track.uri)
            return True

    def __contains__(self, track_id: object) -> bool:
        with self._lock:
            return track_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)

    def uris(self) -> list[str]:
        with self._lock:
            return list(self._uris)
