"""Application settings loaded from .env via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Spotify endpoints, login and HTTP limits, read from env or .env."""

    # Spotify
    spotify_client_id: str = ""
    spotify_auth_url: str = "https://accounts.spotify.com/authorize"
    spotify_token_url: str = "https://accounts.spotify.com/api/token"
    spotify_api_base: str = "https://api.spotify.com/v1"

    # App
    base_url: str = "http://localhost:8000"
    secret_key: str = "change-me"
    log_level: str = "INFO"

    # Login / HTTP
    login_ttl_seconds: int = 600
    session_ttl_seconds: int = 3600  # idle time before a session is dropped
    max_sessions: int = 1000
    http_timeout: float = 30.0  # seconds

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def redirect_uri(self) -> str:
        """Where Spotify sends the user back after authorizing."""
        return f"{self.base_url.rstrip('/')}/callback"


@lru_cache
def get_settings() -> Settings:
    """Cached singleton so .env is read only once."""
    return Settings()
