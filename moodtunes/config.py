"""
Runtime configuration for the MoodTunes service.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, PositiveInt

# Load .env before any settings are read
load_dotenv()


def _env(name: str, default: str) -> str:
    return os.getenv(name) or default


class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.

    Values are read from the environment when the instance is created, so a
    ``.env`` file or exported variables both apply.
    """

    model_config = ConfigDict(validate_default=True)

    SPOTIFY_CLIENT_ID: str = Field(default_factory=lambda: _env("SPOTIFY_CLIENT_ID", ""))
    SPOTIFY_CLIENT_SECRET: str = Field(
        default_factory=lambda: _env("SPOTIFY_CLIENT_SECRET", "")
    )
    SPOTIFY_TOKEN_URL: str = Field(
        default_factory=lambda: _env(
            "SPOTIFY_TOKEN_URL", "https://accounts.spotify.com/api/token"
        )
    )
    SPOTIFY_API_BASE: str = Field(
        default_factory=lambda: _env("SPOTIFY_API_BASE", "https://api.spotify.com/v1")
    )

    HOST: str = Field(default_factory=lambda: _env("HOST", "0.0.0.0"))
    PORT: PositiveInt = Field(default_factory=lambda: _env("PORT", "8000"))
    LOG_LEVEL: str = Field(default_factory=lambda: _env("LOG_LEVEL", "info").lower())

    MOOD_HISTORY_LEN: PositiveInt = Field(
        default_factory=lambda: _env("MOOD_HISTORY_LEN", "10")
    )
    MOOD_SEND_INTERVAL_MS: PositiveFloat = Field(
        default_factory=lambda: _env("MOOD_SEND_INTERVAL_MS", "4000")
    )
    TOKEN_REFRESH_INTERVAL_S: PositiveFloat = Field(
        default_factory=lambda: _env("TOKEN_REFRESH_INTERVAL_S", "1800")
    )
    TOKEN_EXPIRY_MARGIN_S: float = Field(
        default_factory=lambda: _env("TOKEN_EXPIRY_MARGIN_S", "60"), ge=0
    )
    PLAYLIST_SEARCH_LIMIT: PositiveInt = Field(
        default_factory=lambda: _env("PLAYLIST_SEARCH_LIMIT", "12")
    )
    PLAYLIST_TRACKS_LIMIT: PositiveInt = Field(
        default_factory=lambda: _env("PLAYLIST_TRACKS_LIMIT", "50")
    )
    PROVIDER_TIMEOUT_S: PositiveFloat = Field(
        default_factory=lambda: _env("PROVIDER_TIMEOUT_S", "10")
    )

    @property
    def has_credentials(self) -> bool:
        return bool(self.SPOTIFY_CLIENT_ID and self.SPOTIFY_CLIENT_SECRET)
