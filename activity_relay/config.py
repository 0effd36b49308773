"""Application configuration via pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    # API key (optional): if set, required on the read API and webhook registration
    api_key: str = ""
    events_rate_limit: str = "120/minute"

    # Database
    database_url: str = "sqlite+aiosqlite:///./activity.db"

    # Asana
    asana_pat: str = ""  # long-lived personal access token, used when no account token is available
    asana_client_id: str = ""
    asana_client_secret: str = ""
    asana_redirect_uri: str = ""
    webhook_target_url: str = ""  # public URL of POST /webhook
    http_timeout: float = 10.0


settings = Settings()
