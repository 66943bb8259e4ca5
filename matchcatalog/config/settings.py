import logging
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from matchcatalog.models.enums import IdentityPolicy


class AppSettings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # Reconciliation
    identity_policy: IdentityPolicy = Field(
        IdentityPolicy.DIGEST,
        description="How identity keys are derived: 'digest' (stable across runs) or 'composite'.",
    )
    status_window_hours: float = Field(
        3.0, gt=0, description="Hours after kick-off during which a match counts as live."
    )

    # Output
    output_path: str = Field(
        "sports-data-latest.json", description="Where the published snapshot is written."
    )

    # HTTP
    http_timeout: float = Field(10.0, gt=0, description="Per-request timeout in seconds.")
    request_attempts: int = Field(
        3, ge=1, description="Total attempts per request (first try plus retries)."
    )

    # Sources toggles
    enable_migu: bool = True
    enable_playlist: bool = True
    enable_douyin: bool = True

    # Migu video portal
    migu_match_list_url: str = Field(
        "https://vms-sc.miguvideo.com/vms-match/v6/staticcache/basic/match-list/normal-match-list/0/all/default/1/miguvideo",
        description="Day-keyed match list endpoint.",
    )
    migu_basic_data_url: str = Field(
        "https://vms-sc.miguvideo.com/vms-match/v6/staticcache/basic/basic-data/{mgdb_id}/miguvideo",
        description="Per-match node list endpoint; '{mgdb_id}' is substituted.",
    )
    migu_node_url_template: str = Field(
        "https://www.miguvideo.com/p/live/{mgdb_id}?pid={pid}",
        description="Playable URL built for a portal node.",
    )
    migu_embedded_pages: List[str] = Field(
        default_factory=lambda: [
            "https://www.miguvideo.com/p/home/16ed73096e0244d1ba1034d973a020fe",
        ],
        description="HTML pages carrying embedded schedule JSON.",
    )
    migu_embedded_competition: str = "全运会"
    migu_embedded_cover: str = ""
    migu_today_only: bool = True
    migu_request_delay: float = Field(
        0.5, ge=0, description="Pause between per-match node requests (seconds)."
    )

    # M3U playlist
    playlist_urls: List[str] = Field(
        default_factory=list, description="M3U playlists carrying scheduled channels."
    )

    # Douyin replay API
    douyin_api_base_url: str = "https://www.douyin.com/aweme/v1/web/show/episode"
    douyin_episode_id: str = "7584406015685301302"
    douyin_room_id: str = "7584078467029846836"
    douyin_ms_token: Optional[str] = Field(None, description="msToken query parameter.")
    douyin_a_bogus: Optional[str] = Field(None, description="a_bogus query signature.")
    douyin_max_pages: int = Field(5, ge=1)
    douyin_competition_name: str = "CBA"

    # Logging Configuration
    log_level: str = Field(
        "INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


def load_settings() -> AppSettings:
    """Loads and validates application settings."""
    try:
        settings = AppSettings()
        log_level_upper = settings.log_level.upper()
        # Validate log_level even if loaded from .env
        if log_level_upper not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            logging.warning(
                f"Invalid LOG_LEVEL '{settings.log_level}' found in .env or default. Using INFO."
            )
            settings.log_level = "INFO"
        else:
            settings.log_level = log_level_upper
        return settings
    except Exception as e:
        logging.exception(f"Error loading application settings: {e}")
        raise SystemExit("Failed to load application settings. Exiting.")


settings: AppSettings = load_settings()
