"""Client configuration values loaded from the environment."""
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

HOME_DIR = Path.home()


class Settings(BaseSettings):
    """Sync client settings, overridable through ``ROOMSYNC_*`` variables or ``.env``."""

    model_config = SettingsConfigDict(env_prefix="ROOMSYNC_", env_file=".env", extra="ignore")

    # Server
    homeserver_url: str = "https://matrix.org"
    verify_tls: bool = True
    request_timeout: float = 10.0

    # Sync loop
    poll_timeout_ms: int = 30000
    request_timeout_margin: float = 10.0
    initial_sync_limit: int = 20

    # Credentials
    use_saved_token: bool = True
    credentials_file: Path = HOME_DIR / ".roomsync_credentials.json"

    # Logging
    log_file: Path = HOME_DIR / ".roomsync.log"
    log_level: str = "INFO"

    @property
    def retry_delay_ms(self) -> float:
        return self.poll_timeout_ms / 2


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
