from __future__ import annotations

import json
import time
from typing import Any

import pytest
import requests

from engine.errors import ExternalServiceError, NoMatch, RateLimited, RequestTimeout, TokenExchangeError
from spotify.client import CandidateTrack, SpotifyCatalogClient
from spotify.resolve import resolve_song


class _FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, headers: dict[str, str] | None = None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.content = b"" if payload is None else json.dumps(payload).encode("utf-8")

    def json(self):
        return self._payload


class _FakeSession:
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _client(responses, **kwargs) -> tuple[SpotifyCatalogClient, _FakeSession]:
    session = _FakeSession(responses)
    client = SpotifyCatalogClient(access_token="token-1", session=session, backoff_base_sec=0.5, **kwargs)
    return client, session


@pytest.fixture
def slept(monkeypatch) -> list[float]:
    calls: list[float] = []
    monkeypatch.setattr("spotify.client.time.sleep", lambda seconds: calls.append(seconds))
    return calls


def test_search_tracks_normalizes_items() -> None:
    client, session = _client(
        [
            _FakeResponse(
                200,
                {
                    "tracks": {
                        "items": [
                            {"id": "t1", "uri": "spotify:track:t1", "name": "Song", "artists": [{"name": "Artist"}]},
                            {"name": "missing id"},
                            {"id": "t2", "name": "No Uri", "artists": []},
                        ]
                    }
                },
            )
        ]
    )

    tracks = client.search_tracks("Song")

    assert tracks == [
        CandidateTrack(id="t1", uri="spotify:track:t1", name="Song", artists=("Artist",)),
        CandidateTrack(id="t2", uri="spotify:track:t2", name="No Uri", artists=()),
    ]
    assert session.calls[0]["params"] == {"q": "Song", "type": "track", "limit": 20}
    assert session.calls[0]["headers"] == {"Authorization": "Bearer token-1"}


def test_search_artists_uses_artist_field_filter() -> None:
    client, session = _client([_FakeResponse(200, {"artists": {"items": [{"id": "a1", "name": "SZA"}]}})])

    hits = client.search_artists("SZA")

    assert [hit.id for hit in hits] == ["a1"]
    assert session.calls[0]["params"]["q"] == "artist:SZA"
    assert session.calls[0]["params"]["type"] == "artist"


def test_get_artist_top_tracks_passes_market() -> None:
    client, session = _client(
        [_FakeResponse(200, {"tracks": [{"id": "t1", "name": "Hit", "artists": [{"name": "SZA"}]}]})],
        market="GB",
    )

    tracks = client.get_artist_top_tracks("a1")

    assert [t.id for t in tracks] == ["t1"]
    assert session.calls[0]["url"].endswith("/artists/a1/top-tracks")
    assert session.calls[0]["params"] == {"market": "GB"}


def test_rate_limit_retries_using_retry_after(slept) -> None:
    client, session = _client(
        [
            _FakeResponse(429, headers={"Retry-After": "2"}),
            _FakeResponse(200, {"tracks": {"items": []}}),
        ]
    )

    assert client.search_tracks("Song") == []
    assert slept == [2.0]
    assert len(session.calls) == 2


def test_rate_limit_uses_exponential_backoff_then_gives_up(slept) -> None:
    client, _ = _client([_FakeResponse(429) for _ in range(4)], max_rate_limit_retries=3)

    with pytest.raises(RateLimited) as excinfo:
        client.search_tracks("Song")

    assert slept == [0.5, 1.0, 2.0]
    assert excinfo.value.retry_after == 4.0


def test_unauthorized_refreshes_token_once(monkeypatch) -> None:
    tokens = iter(["first", "second"])
    monkeypatch.setattr(
        "spotify.client.request_client_credentials_token",
        lambda client_id, client_secret, timeout: {"access_token": next(tokens)},
    )
    session = _FakeSession([_FakeResponse(401, {}), _FakeResponse(200, {"tracks": {"items": []}})])
    client = SpotifyCatalogClient(client_id="id", client_secret="secret", refresh_token="", session=session)
    client.refresh_token = None

    client.search_tracks("Song")

    assert [call["headers"]["Authorization"] for call in session.calls] == ["Bearer first", "Bearer second"]


def test_token_is_fetched_once_per_client(monkeypatch) -> None:
    calls = []

    def _refresh(client_id, client_secret, refresh_token, timeout):
        calls.append(refresh_token)
        return {"access_token": "user-token"}

    monkeypatch.setattr("spotify.client.refresh_access_token", _refresh)
    session = _FakeSession([_FakeResponse(200, {"tracks": {"items": []}}) for _ in range(3)])
    client = SpotifyCatalogClient(client_id="id", client_secret="secret", refresh_token="refresh-1", session=session)

    for _ in range(3):
        client.search_tracks("Song")

    assert calls == ["refresh-1"]


def test_non_success_status_raises_external_service_error() -> None:
    client, _ = _client([_FakeResponse(502, {"error": "bad gateway"})])

    with pytest.raises(ExternalServiceError) as excinfo:
        client.search_tracks("Song")

    assert excinfo.value.upstream_status == 502


def test_network_failure_raises_external_service_error() -> None:
    client, _ = _client([requests.ConnectionError("boom")])

    with pytest.raises(ExternalServiceError):
        client.search_tracks("Song")


def test_create_playlist_and_add_tracks() -> None:
    client, session = _client(
        [
            _FakeResponse(201, {"id": "pl-1"}),
            _FakeResponse(201, {"snapshot_id": "snap-1"}),
        ]
    )

    playlist_id = client.create_playlist("Name", "Description")
    snapshot = client.add_tracks(playlist_id, ["spotify:track:t1"])

    assert playlist_id == "pl-1"
    assert snapshot == "snap-1"
    assert session.calls[0]["method"] == "POST"
    assert session.calls[0]["url"].endswith("/me/playlists")
    assert session.calls[0]["json"]["name"] == "Name"
    assert session.calls[1]["url"].endswith("/playlists/pl-1/tracks")
    assert session.calls[1]["json"] == {"uris": ["spotify:track:t1"]}


def test_create_playlist_without_id_is_an_error() -> None:
    client, _ = _client([_FakeResponse(201, {})])

    with pytest.raises(ExternalServiceError):
        client.create_playlist("Name", "Description")


class _HtmlResponse:
    status_code = 200
    headers: dict[str, str] = {}
    content = b"<html>gateway</html>"

    def json(self):
        return json.loads(self.content)


def test_non_json_body_raises_external_service_error() -> None:
    client, _ = _client([_HtmlResponse()])

    with pytest.raises(ExternalServiceError) as excinfo:
        client.search_tracks("Kill Bill")

    assert excinfo.value.upstream_status == 200


def test_non_json_search_body_degrades_to_no_match() -> None:
    client, _ = _client([_HtmlResponse()])

    with pytest.raises(NoMatch):
        resolve_song(client, "Kill Bill")


def test_list_body_raises_external_service_error() -> None:
    client, _ = _client([_FakeResponse(200, ["unexpected"])])

    with pytest.raises(ExternalServiceError):
        client.search_tracks("Song")


def test_failed_token_exchange_is_remembered(monkeypatch) -> None:
    calls = []

    def _refuse(client_id, client_secret, timeout):
        calls.append(client_id)
        raise TokenExchangeError("Spotify token request failed: invalid_client", upstream_status=400)

    monkeypatch.setattr("spotify.client.request_client_credentials_token", _refuse)
    session = _FakeSession([])
    client = SpotifyCatalogClient(client_id="id", client_secret="bad", session=session)
    client.refresh_token = None

    for _ in range(3):
        with pytest.raises(TokenExchangeError) as excinfo:
            client.search_tracks("Song")
        assert excinfo.value.upstream_status == 400

    assert calls == ["id"]
    assert session.calls == []


def test_token_failure_is_not_downgraded_to_no_match(monkeypatch) -> None:
    def _refuse(client_id, client_secret, timeout):
        raise TokenExchangeError("Spotify credentials are required")

    monkeypatch.setattr("spotify.client.request_client_credentials_token", _refuse)
    client = SpotifyCatalogClient(client_id="id", client_secret="bad", session=_FakeSession([]))
    client.refresh_token = None

    with pytest.raises(TokenExchangeError):
        resolve_song(client, "Kill Bill")


def test_retry_after_past_deadline_gives_up_without_sleeping(slept) -> None:
    client, session = _client([_FakeResponse(429, headers={"Retry-After": "60"})])
    client.set_deadline(time.monotonic() + 5)

    with pytest.raises(RateLimited) as excinfo:
        client.search_tracks("Song")

    assert slept == []
    assert excinfo.value.retry_after == 60.0
    assert len(session.calls) == 1


def test_no_call_is_made_after_deadline() -> None:
    client, session = _client([_FakeResponse(200, {"tracks": {"items": []}})])
    client.set_deadline(time.monotonic() - 1)

    with pytest.raises(RequestTimeout):
        client.search_tracks("Song")

    assert session.calls == []
