from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Land Registry Verification Service"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"
    device_id_header: str = "X-Device-Id"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── JWT / AUTH ───────────
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_minutes: int = 1440  # 24 hours
    government_email_domain: str = "gov.in"

    # ─────────── SYNC BRIDGE / CONTENT STORE ───────────
    sync_bridge_url: str = "http://127.0.0.1:8600"
    sync_bridge_timeout_seconds: float = 30.0
    ipfs_api_url: str = "http://127.0.0.1:5001"
    ipfs_timeout_seconds: float = 60.0

    # ─────────── DASHBOARD ───────────
    recent_activity_window_hours: int = 24
    recent_activity_limit: int = 50

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() in {"dev", "development", "local"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
