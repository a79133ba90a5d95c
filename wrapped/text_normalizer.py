"""Recover ranked top-artist / top-song lists from Wrapped OCR text.

Two card layouts are supported:

- ``SINGLE``: one OCR region with the combined header ``Top Artists Top Songs``
  and rows shaped like ``1 <artist> 1 <song>``.
- ``DUAL``: two side-by-side regions, the left headed ``Top Artists`` and the
  right headed ``Top Songs``, each with rows shaped like ``1 <name>``.

Normalization never raises. When five artists and five songs cannot be
recovered the whitespace-collapsed text is returned as ``Unstructured``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from wrapped.profile import (
    PROFILE_SIZE,
    NormalizedText,
    Structured,
    Unstructured,
    UserMusicProfile,
    split_ellipsis,
)

_LOG = logging.getLogger(__name__)

ARTISTS_HEADER = "Top Artists"
SONGS_HEADER = "Top Songs"
COMBINED_HEADER = f"{ARTISTS_HEADER} {SONGS_HEADER}"

# Rank 6 (or the minutes-listened panel) closes the list.
END_RANK = PROFILE_SIZE + 1

_WS_RE = re.compile(r"\s+")
_LEADING_RANK_RE = re.compile(r"^\d+\s*")
_END_OF_LIST_RE = re.compile(r"\s*Minutes Listened")


class Layout(Enum):
    SINGLE = "single"
    DUAL = "dual"


@dataclass(frozen=True)
class RawExtraction:
    text: str
    layout: Layout = Layout.SINGLE
    right_text: str = ""


def clean_text(text: str | None) -> str:
    return _WS_RE.sub(" ", str(text or "")).strip()


def normalize_extraction(extraction: RawExtraction) -> NormalizedText:
    if extraction.layout is Layout.DUAL:
        return normalize_columns(extraction.text, extraction.right_text)
    return normalize_single(extraction.text)


def normalize_single(text: str | None) -> NormalizedText:
    """Parse a one-region card with the combined header."""
    cleaned = clean_text(text)
    if COMBINED_HEADER not in cleaned:
        return Unstructured(cleaned)

    try:
        artists: list[str] = []
        songs: list[str] = []
        truncated: set[int] = set()
        lines = _ranked_lines(cleaned, COMBINED_HEADER, repeated_rank=True)
        for rank, line in _rank_rows(lines):
            parts = _split_combined_row(line, rank)
            if parts is None:
                continue
            artist, song = parts
            title, was_truncated = split_ellipsis(song)
            if not artist or not title:
                continue
            if was_truncated:
                truncated.add(len(songs))
            artists.append(artist)
            songs.append(title)
        return _finish(artists, songs, truncated, cleaned)
    except Exception:
        _LOG.exception("Failed to parse single-column Wrapped text")
        return Unstructured(cleaned)


def normalize_columns(left_text: str | None, right_text: str | None) -> NormalizedText:
    """Parse a two-region card: artists on the left, songs on the right."""
    cleaned_left = clean_text(left_text)
    cleaned_right = clean_text(right_text)
    fallback = f"{cleaned_left}\n\n{cleaned_right}"
    if ARTISTS_HEADER not in cleaned_left or SONGS_HEADER not in cleaned_right:
        return Unstructured(fallback)

    try:
        artists = [
            _strip_rank(line)
            for _, line in _rank_rows(_ranked_lines(cleaned_left, ARTISTS_HEADER))
        ]
        songs: list[str] = []
        truncated: set[int] = set()
        for _, line in _rank_rows(_ranked_lines(cleaned_right, SONGS_HEADER)):
            title, was_truncated = split_ellipsis(_strip_rank(line))
            if was_truncated:
                truncated.add(len(songs))
            songs.append(title)
        artists = [artist for artist in artists if artist]
        if any(not song for song in songs):
            return Unstructured(fallback)
        return _finish(artists, songs, truncated, fallback)
    except Exception:
        _LOG.exception("Failed to parse dual-column Wrapped text")
        return Unstructured(fallback)


def _finish(artists, songs, truncated, fallback) -> NormalizedText:
    if len(artists) == PROFILE_SIZE and len(songs) == PROFILE_SIZE:
        return Structured(
            UserMusicProfile(
                top_artists=tuple(artists),
                top_songs=tuple(songs),
                truncated_songs=frozenset(truncated),
            )
        )
    _LOG.debug(
        "Wrapped text yielded %d artists and %d songs; keeping raw text",
        len(artists),
        len(songs),
    )
    return Unstructured(fallback)


def _rank_marker(rank: int) -> re.Pattern[str]:
    # Whitespace-bounded so digits inside names ("Blink-182") are not markers.
    return re.compile(rf"(?<!\S){rank}(?=\s|$)")


def _list_end(body: str, cursor: int) -> int:
    boundary = _END_OF_LIST_RE.search(body, cursor)
    return boundary.start() if boundary is not None else len(body)


def _ranked_lines(text: str, header: str, *, repeated_rank: bool = False) -> list[str]:
    """Break ``text`` into the header line followed by one line per rank.

    Markers are searched left to right, each rank after the previous one, so a
    rank number that appears inside an earlier name cannot steal a later break.
    A bare number inside a title ("Mambo No. 5") is told apart from the real
    marker by what follows it: with ``repeated_rank`` a row is ``r <artist> r
    <song>`` and needs a non-empty artist between its two markers; otherwise
    the last marker before the next rank that still has text after it wins.
    """
    body = text[text.find(header) + len(header):]
    breaks: list[int] = []
    cursor = 0
    for rank in range(1, END_RANK + 1):
        list_end = _list_end(body, cursor)
        if repeated_rank:
            found = _paired_marker(body, rank, cursor, list_end)
        else:
            found = _last_marker(body, rank, cursor, list_end)
        if found is None:
            continue
        start, cursor = found
        breaks.append(start)
    list_end = _list_end(body, cursor)
    if list_end < len(body):
        breaks.append(list_end)

    pieces = [body[start:end] for start, end in zip(breaks, breaks[1:] + [len(body)])]
    return [header] + [piece.strip() for piece in pieces if piece.strip()]


def _paired_marker(body: str, rank: int, cursor: int, end: int) -> tuple[int, int] | None:
    matches = list(_rank_marker(rank).finditer(body, cursor, end))
    if not matches:
        return None
    if rank == END_RANK:
        # The closing rank has no repeat.
        return matches[0].start(), matches[0].end()
    for first, second in zip(matches, matches[1:]):
        if body[first.end():second.start()].strip():
            return first.start(), second.end()
    return None


def _last_marker(body: str, rank: int, cursor: int, end: int) -> tuple[int, int] | None:
    marker = _rank_marker(rank)
    first = marker.search(body, cursor, end)
    if first is None:
        return None
    if rank == END_RANK:
        return first.start(), first.end()
    following = _rank_marker(rank + 1).search(body, first.end(), end)
    limit = following.start() if following is not None else end
    candidates = [first] + list(marker.finditer(body, first.end(), limit))
    stops = [match.start() for match in candidates[1:]] + [limit]
    for match, stop in reversed(list(zip(candidates, stops))):
        if body[match.end():stop].strip():
            return match.start(), match.end()
    return first.start(), first.end()


def _rank_rows(lines: list[str]):
    # lines[0] is the header; row ``rank`` sits at the same index.
    for rank in range(1, PROFILE_SIZE + 1):
        if rank >= len(lines):
            break
        line = lines[rank]
        if not _rank_marker(rank).match(line):
            continue
        yield rank, line


def _split_combined_row(line: str, rank: int) -> tuple[str, str] | None:
    markers = list(_rank_marker(rank).finditer(line))
    if len(markers) < 2:
        return None
    artist = line[markers[0].end():markers[1].start()].strip()
    song = line[markers[1].end():].strip()
    return artist, song


def _strip_rank(line: str) -> str:
    return _LEADING_RANK_RE.sub("", line or "").strip()
