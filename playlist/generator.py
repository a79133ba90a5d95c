"""Aggregate several users' profiles into one deduplicated track list.

Songs are resolved for every profile before artist top tracks are committed,
so every song-derived URI precedes every artist-derived URI. Resolution runs
on a bounded thread pool; commits happen afterwards in profile/rank order
through the request's ``TrackSet``.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Sequence

from config import settings
from engine.errors import NoMatch, RequestTimeout, ValidationError
from engine.events import log_event
from playlist.assembly import assemble_playlist
from playlist.track_set import TrackSet
from spotify.resolve import resolve_artist_top_tracks, resolve_song
from wrapped.profile import UserMusicProfile

_LOG = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    uris: list[str]
    song_count: int = 0
    artist_count: int = 0
    skipped: list[str] = field(default_factory=list)
    profiles_used: int = 0


@dataclass
class PlaylistResult:
    playlist_id: str
    generation: GenerationResult


class PlaylistGenerator:
    def __init__(
        self,
        catalog,
        *,
        max_workers: int | None = None,
        timeout_sec: float | None = None,
        tracks_per_artist: int | None = None,
        market: str | None = None,
    ) -> None:
        self.catalog = catalog
        self.max_workers = max_workers or settings.PLAYLIST_MAX_WORKERS
        self.timeout_sec = timeout_sec if timeout_sec is not None else settings.PLAYLIST_REQUEST_TIMEOUT_SECONDS
        self.tracks_per_artist = tracks_per_artist or settings.TRACKS_PER_ARTIST
        self.market = market

    def collect_track_uris(self, profiles: Sequence[UserMusicProfile]) -> GenerationResult:
        """Resolve and deduplicate tracks for ``profiles``.

        Raises:
            ValidationError: No profiles, or none with five artists and five songs.
            RateLimited: Spotify throttling outlasted the retry budget.
            RequestTimeout: The request deadline passed.
        """
        usable = self._usable_profiles(profiles)
        deadline = time.monotonic() + self.timeout_sec
        self.catalog.set_deadline(deadline)
        track_set = TrackSet()
        result = GenerationResult(uris=[], profiles_used=len(usable))

        log_event(logging.INFO, "playlist_generation_started", profiles=len(usable))
        pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="resolver")
        try:
            song_jobs = [
                (
                    f"song:{title}",
                    pool.submit(
                        resolve_song,
                        self.catalog,
                        title,
                        top_artists=profile.top_artists,
                        truncated=profile.is_truncated(index),
                    ),
                )
                for profile in usable
                for index, title in enumerate(profile.top_songs)
            ]
            artist_jobs = [
                (
                    f"artist:{artist}",
                    pool.submit(resolve_artist_top_tracks, self.catalog, artist, market=self.market),
                )
                for profile in usable
                for artist in profile.top_artists
            ]

            self._wait_for(song_jobs, deadline)
            for label, future in song_jobs:
                track = self._result_or_skip(label, future, result)
                if track is not None and track_set.add_if_absent(track):
                    result.song_count += 1

            self._wait_for(artist_jobs, deadline)
            for label, future in artist_jobs:
                tracks = self._result_or_skip(label, future, result) or []
                added = 0
                for track in tracks:
                    if added >= self.tracks_per_artist:
                        break
                    if track_set.add_if_absent(track):
                        added += 1
                result.artist_count += added
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        result.uris = track_set.uris()
        log_event(
            logging.INFO,
            "playlist_generation_completed",
            profiles=len(usable),
            tracks=len(result.uris),
            song_tracks=result.song_count,
            artist_tracks=result.artist_count,
            skipped=len(result.skipped),
        )
        return result

    def generate(self, profiles: Sequence[UserMusicProfile]) -> PlaylistResult:
        generation = self.collect_track_uris(profiles)
        playlist_id = assemble_playlist(self.catalog, generation.uris)
        return PlaylistResult(playlist_id=playlist_id, generation=generation)

    def _usable_profiles(self, profiles: Sequence[UserMusicProfile]) -> list[UserMusicProfile]:
        if not profiles:
            raise ValidationError("No input data provided")
        usable = []
        for position, profile in enumerate(profiles):
            if profile.is_valid():
                usable.append(profile)
            else:
                _LOG.warning("Skipping profile %d: expected 5 artists and 5 songs", position)
        if not usable:
            raise ValidationError("No profile has 5 top artists and 5 top songs")
        return usable

    def _wait_for(self, jobs: list[tuple[str, Future]], deadline: float) -> None:
        remaining = max(0.0, deadline - time.monotonic())
        _, pending = wait([future for _, future in jobs], timeout=remaining)
        if pending:
            for future in pending:
                future.cancel()
            raise RequestTimeout(f"Playlist generation exceeded {self.timeout_sec:.0f}s")

    @staticmethod
    def _result_or_skip(label: str, future: Future, result: GenerationResult):
        try:
            return future.result()
        except NoMatch as exc:
            _LOG.info("Skipping %s: %s", label, exc)
            result.skipped.append(label)
            return None


def generate_playlist(catalog, profiles: Sequence[UserMusicProfile], **options) -> PlaylistResult:
    return PlaylistGenerator(catalog, **options).generate(profiles)
