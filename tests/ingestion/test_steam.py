from unittest.mock import MagicMock

import pytest
import requests

from PlayLog.config import Settings
from PlayLog.errors import UpstreamError
from PlayLog.ingestion.steam import SteamClient


@pytest.fixture
def steam_settings():
    return Settings(steam_api_key="test-key", steam_id="76561198000000000")


def make_client(settings, payload=None, raise_exc=None):
    session = MagicMock()
    response = MagicMock()
    response.json.return_value = payload
    if raise_exc is not None:
        response.raise_for_status.side_effect = raise_exc
    session.get.return_value = response
    return SteamClient(settings, session=session), session


def test_fetch_owned_games_maps_counters(steam_settings):
    payload = {"response": {"game_count": 2, "games": [
        {"appid": 570, "name": "Dota 2", "playtime_forever": 1228},
        {"appid": 10, "name": "Counter-Strike", "playtime_forever": 0},
    ]}}
    client, session = make_client(steam_settings, payload)

    counters = client.fetch_owned_games()

    assert [(c.game_id, c.game_name, c.cumulative_minutes) for c in counters] == [
        ("570", "Dota 2", 1228),
        ("10", "Counter-Strike", 0),
    ]
    _, kwargs = session.get.call_args
    assert kwargs["params"]["steamid"] == "76561198000000000"
    assert kwargs["params"]["include_appinfo"] == 1
    assert kwargs["timeout"] == steam_settings.steam_request_timeout_s


def test_fetch_owned_games_skips_malformed_entries(steam_settings):
    payload = {"response": {"games": [{"name": "No appid"}, {"appid": 570, "name": "Dota 2", "playtime_forever": 5}]}}
    client, _ = make_client(steam_settings, payload)
    assert [c.game_id for c in client.fetch_owned_games()] == ["570"]


def test_missing_games_is_an_upstream_error(steam_settings):
    client, _ = make_client(steam_settings, {"response": {}})
    with pytest.raises(UpstreamError):
        client.fetch_owned_games()


def test_http_error_is_an_upstream_error(steam_settings):
    error = requests.exceptions.HTTPError(response=MagicMock(status_code=503))
    client, _ = make_client(steam_settings, raise_exc=error)
    with pytest.raises(UpstreamError, match="503"):
        client.fetch_owned_games()


def test_transport_error_is_an_upstream_error(steam_settings):
    client, session = make_client(steam_settings)
    session.get.side_effect = requests.exceptions.ConnectTimeout("timed out")
    with pytest.raises(UpstreamError):
        client.fetch_owned_games()


def test_missing_credentials_fail_before_request():
    client, session = make_client(Settings(steam_api_key="", steam_id=""))
    with pytest.raises(UpstreamError):
        client.fetch_owned_games()
    session.get.assert_not_called()
