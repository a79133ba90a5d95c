"""Spotify integration modules."""

from spotify.client import CandidateTrack, SpotifyCatalogClient
from spotify.resolve import resolve_artist_top_tracks, resolve_song

__all__ = ["CandidateTrack", "SpotifyCatalogClient", "resolve_artist_top_tracks", "resolve_song"]
