"""
Steam upstream client.
Reads the per-game cumulative playtime counter from the GetOwnedGames endpoint.
"""
import logging
from typing import Any, Dict, List

import requests

from PlayLog.config import Settings
from PlayLog.errors import UpstreamError
from PlayLog.models import GameCounter

log = logging.getLogger(__name__)


class SteamClient:
    """Thin wrapper around IPlayerService/GetOwnedGames."""

    def __init__(self, settings: Settings, session: requests.Session | None = None):
        self.settings = settings
        self.session = session or requests.Session()

    def _params(self) -> Dict[str, Any]:
        return {
            "key": self.settings.steam_api_key,
            "steamid": self.settings.steam_id,
            "include_appinfo": 1,
            "include_played_free_games": 1 if self.settings.steam_include_free_games else 0,
            "format": "json",
        }

    def fetch_owned_games(self) -> List[GameCounter]:
        if not self.settings.steam_api_key or not self.settings.steam_id:
            raise UpstreamError("Steam API key or Steam id not configured (PLAYLOG_STEAM_API_KEY / PLAYLOG_STEAM_ID).")

        log.debug(f"Fetching owned games from {self.settings.steam_api_url}")
        try:
            response = self.session.get(
                self.settings.steam_api_url,
                params=self._params(),
                timeout=self.settings.steam_request_timeout_s,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as e:
            raise UpstreamError(f"Steam API returned HTTP {e.response.status_code}") from e
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"Steam API request failed: {e}") from e
        except ValueError as e:
            raise UpstreamError(f"Steam API returned a non-JSON body: {e}") from e

        games = (data.get("response") or {}).get("games") if isinstance(data, dict) else None
        if games is None:
            raise UpstreamError("No games data in Steam response")

        counters = []
        for game in games:
            try:
                counters.append(GameCounter(
                    game_id=str(game["appid"]),
                    game_name=game.get("name") or str(game["appid"]),
                    cumulative_minutes=game.get("playtime_forever", 0),
                ))
            except (KeyError, ValueError) as e:
                log.warning(f"Skipping malformed game entry {game!r}: {e}")
        log.info(f"Fetched {len(counters)} games from Steam")
        return counters
