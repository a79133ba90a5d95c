"""Listening-profile records recovered from Wrapped screenshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from engine.errors import ParseFailure

PROFILE_SIZE = 5
ARTISTS_KEY = "Top Artists"
SONGS_KEY = "Top Songs"
ELLIPSIS_MARKERS = ("...", "…")


@dataclass(frozen=True)
class UserMusicProfile:
    top_artists: tuple[str, ...]
    top_songs: tuple[str, ...]
    truncated_songs: frozenset[int] = field(default_factory=frozenset)

    def is_valid(self) -> bool:
        """True when both lists hold exactly five non-empty entries."""
        return (
            len(self.top_artists) == PROFILE_SIZE
            and len(self.top_songs) == PROFILE_SIZE
            and all(isinstance(value, str) and value.strip() for value in self.top_artists)
            and all(isinstance(value, str) and value.strip() for value in self.top_songs)
        )

    def is_truncated(self, index: int) -> bool:
        return index in self.truncated_songs

    def to_payload(self) -> dict[str, list[str]]:
        songs = [
            f"{song}..." if self.is_truncated(index) else song
            for index, song in enumerate(self.top_songs)
        ]
        return {ARTISTS_KEY: list(self.top_artists), SONGS_KEY: songs}


@dataclass(frozen=True)
class Structured:
    profile: UserMusicProfile


@dataclass(frozen=True)
class Unstructured:
    text: str


NormalizedText = Union[Structured, Unstructured]


def split_ellipsis(title: str) -> tuple[str, bool]:
    """Strip a trailing OCR ellipsis and report whether one was present."""
    text = str(title or "").strip()
    for marker in ELLIPSIS_MARKERS:
        if text.endswith(marker):
            return text[: -len(marker)].rstrip(), True
    return text, False


def profile_from_payload(payload: Any) -> UserMusicProfile:
    """Build a profile from ``{"Top Artists": [...], "Top Songs": [...]}``.

    Entries are stripped; songs ending in an ellipsis are flagged as truncated.
    The returned profile may be invalid; callers check ``is_valid()``.
    """
    if not isinstance(payload, dict):
        raise ValueError("profile must be an object")
    raw_artists = payload.get(ARTISTS_KEY)
    raw_songs = payload.get(SONGS_KEY)
    if not isinstance(raw_artists, list) or not isinstance(raw_songs, list):
        raise ValueError(f"profile requires '{ARTISTS_KEY}' and '{SONGS_KEY}' lists")

    artists = tuple(str(value or "").strip() for value in raw_artists)
    songs: list[str] = []
    truncated: set[int] = set()
    for index, value in enumerate(raw_songs):
        title, was_truncated = split_ellipsis(value)
        songs.append(title)
        if was_truncated:
            truncated.add(index)
    return UserMusicProfile(
        top_artists=artists,
        top_songs=tuple(songs),
        truncated_songs=frozenset(truncated),
    )


def require_profile(result: NormalizedText) -> UserMusicProfile:
    """Unwrap a normalizer result, raising ``ParseFailure`` for raw text."""
    if isinstance(result, Structured) and result.profile.is_valid():
        return result.profile
    raise ParseFailure("Wrapped text did not contain 5 top artists and 5 top songs")
