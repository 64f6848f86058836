from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"
    log_file: str | None = None

    base_url: str = "http://localhost:8000"
    client_url: str = "http://localhost:8001"
    cors_origins: str = "http://localhost:8001,http://localhost:5173"

    database_url: str = "postgresql+psycopg://app:app@db:5432/tasksetu"
    redis_url: str = "redis://redis:6379/0"

    jwt_secret: str = "dev-secret-change-me"
    jwt_issuer: str = "tasksetu"
    jwt_audience: str = "tasksetu"
    jwt_expires_minutes: int = 60

    magic_link_expires_minutes: int = 15
    magic_link_pepper: str = "dev-pepper-change-me"

    STRIPE_WEBHOOK_SECRET: str | None = None

    # licensing
    trial_days: int = 15
    default_license_code: str = "EXPLORE"

    # rate limiting (redis)
    rate_limit_enabled: bool = True
    rate_limit_auth_request_link_per_min: int = 20
    rate_limit_auth_redeem_per_min: int = 30
    rate_limit_webhooks_per_min: int = 60
    rate_limit_quick_task_create_per_min: int = 10
    rate_limit_public_form_submit_per_min: int = 30

    # google calendar
    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_token_url: str = "https://oauth2.googleapis.com/token"
    google_calendar_api: str = "https://www.googleapis.com/calendar/v3"
    calendar_timezone: str = "Asia/Kolkata"
    calendar_http_timeout: float = 10.0

    @property
    def google_redirect_uri(self) -> str:
        return f"{self.client_url}/google-calendar-callback"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

settings = Settings()
