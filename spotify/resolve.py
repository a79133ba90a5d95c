"""Resolve OCR song titles and artist names to Spotify tracks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from config import settings
from engine.edit_distance import relevance_threshold, truncation_aware_distance
from engine.errors import ExternalServiceError, NoMatch, TokenExchangeError
from spotify.client import CandidateTrack

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    track: CandidateTrack
    distance: int
    is_relevant: bool


def log_resolution(query: str, track: CandidateTrack, reason: str) -> None:
    _LOG.info(
        "resolver query=%r track_id=%s name=%r reason=%s",
        query,
        track.id,
        track.name,
        reason,
    )


def score_candidates(
    query: str,
    candidates: Iterable[CandidateTrack],
    *,
    truncated: bool = False,
) -> list[MatchResult]:
    """Score each candidate against ``query``, preserving search order.

    A candidate is relevant when its truncation-aware distance is at most 10%
    of the query length, rounded down.
    """
    threshold = relevance_threshold(query)
    results: list[MatchResult] = []
    for track in candidates:
        distance = truncation_aware_distance(query, track.name, truncated)
        results.append(MatchResult(track=track, distance=distance, is_relevant=distance <= threshold))
    return results


def select_best_candidate(
    matches: list[MatchResult],
    top_artists: Iterable[str] = (),
) -> tuple[CandidateTrack, str] | None:
    """Pick the best track and the rule that chose it.

    Priority:
    - the first relevant candidate by one of the user's own top artists,
      regardless of distance;
    - otherwise the relevant candidate with the smallest distance, earliest
      search position on ties;
    - otherwise the first search result.
    """
    if not matches:
        return None

    favourite_artists = {str(name).casefold().strip() for name in top_artists if str(name or "").strip()}
    relevant = [match for match in matches if match.is_relevant]

    for match in relevant:
        if any(artist.casefold().strip() in favourite_artists for artist in match.track.artists):
            return match.track, "top_artist"

    if relevant:
        # min() keeps the first of equal distances.
        best = min(relevant, key=lambda match: match.distance)
        return best.track, "closest_title"

    return matches[0].track, "first_result"


def resolve_song(
    catalog,
    title: str,
    *,
    top_artists: Iterable[str] = (),
    truncated: bool = False,
) -> CandidateTrack:
    """Resolve one song title to a single track.

    Raises:
        NoMatch: Search returned nothing or failed for this title.
        RateLimited: Spotify kept throttling; propagated to the request.
        TokenExchangeError: No access token; propagated to the request.
    """
    query = str(title or "").strip()
    if not query:
        raise NoMatch("empty song title")
    try:
        candidates = catalog.search_tracks(query, limit=settings.SEARCH_RESULT_LIMIT)
    except TokenExchangeError:
        raise
    except ExternalServiceError as exc:
        _LOG.warning("Track search failed for query=%r: %s", query, exc)
        raise NoMatch(f"track search failed for {query!r}") from exc

    if not candidates:
        _LOG.info("No search results for song query=%r", query)
        raise NoMatch(f"no tracks found for {query!r}")

    selection = select_best_candidate(
        score_candidates(query, candidates, truncated=truncated),
        top_artists,
    )
    if selection is None:
        raise NoMatch(f"no candidate selected for {query!r}")
    track, reason = selection
    log_resolution(query, track, reason)
    return track


def resolve_artist_top_tracks(catalog, artist_name: str, *, market: str | None = None) -> list[CandidateTrack]:
    """Return up to five top tracks of the best artist hit for ``artist_name``."""
    query = str(artist_name or "").strip()
    if not query:
        raise NoMatch("empty artist name")
    try:
        artists = catalog.search_artists(query, limit=settings.SEARCH_RESULT_LIMIT)
        if not artists:
            _LOG.info("No artist found for query=%r", query)
            raise NoMatch(f"no artist found for {query!r}")
        artist = artists[0]
        tracks = catalog.get_artist_top_tracks(artist.id, market=market)
    except TokenExchangeError:
        raise
    except ExternalServiceError as exc:
        _LOG.warning("Artist lookup failed for query=%r: %s", query, exc)
        raise NoMatch(f"artist lookup failed for {query!r}") from exc

    _LOG.info(
        "resolver artist_query=%r artist_id=%s top_tracks=%d",
        query,
        artist.id,
        len(tracks),
    )
    return tracks[: settings.ARTIST_TOP_TRACKS_LIMIT]
