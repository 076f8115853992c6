from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Volunteer Opportunity Engine"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── JWT / AUTH ───────────
    # Tokens are issued by the identity provider; we only verify them.
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_minutes: int = 1440  # 24 hours

    # ─────────── TRANSACTIONS ───────────
    transaction_max_attempts: int = 5
    transaction_retry_backoff_ms: int = 20

    # ─────────── DISCOVERY ───────────
    available_window_days: int = 30


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
