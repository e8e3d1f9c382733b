from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_ROOT = Path(__file__).parent


class Settings(BaseSettings):
    # --- Core Paths ---
    db_path: Path = PACKAGE_ROOT / "storage" / "playlog.db"

    # --- Timezone ---
    local_tz: str = "America/New_York" # Single target zone for local dates

    # --- Steam Upstream ---
    steam_api_key: str = ""
    steam_id: str = ""
    steam_api_url: str = "https://api.steampowered.com/IPlayerService/GetOwnedGames/v0001/"
    steam_request_timeout_s: int = 30
    steam_include_free_games: bool = True

    # --- Prober ---
    poll_interval_minutes: int = 30

    # --- Segmentation ---
    block_minutes: int = 30 # Canonical block size probes are snapped to
    merge_gap_minutes: int = 90 # Max gap (block end -> next block start) merged into one session
    segmentation_workers: int = 4
    segmentation_hour_local: int = 3 # Daily run for the previous local day

    # --- Query API ---
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"

    model_config = SettingsConfigDict(
        env_prefix="PLAYLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra='ignore'
    )
