from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List

DEFAULT_SESSION_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Used by the weekly summary job to read across families

    # Session
    session_secret: str = DEFAULT_SESSION_SECRET
    session_ttl_seconds: int = 7 * 24 * 60 * 60  # 1 week
    session_cookie_name: str = "kindora_session"

    # OIDC login
    oidc_issuer_url: str = "https://replit.com/oidc"
    oidc_client_id: Optional[str] = None
    oidc_client_secret: Optional[str] = None
    oidc_scopes: str = "openid email profile offline_access"

    # Demo accounts
    demo_user_prefix: str = "demo-"

    # Cron
    cron_secret: Optional[str] = None

    # Email (Resend)
    resend_api_key: Optional[str] = None
    email_from_address: Optional[str] = None

    # AWS S3 (will read from uppercase env vars automatically)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    s3_bucket_name: Optional[str] = None
    upload_url_ttl_seconds: int = 900
    download_url_ttl_seconds: int = 3600

    # App
    app_name: str = "kindora-backend"
    app_base_url: str = "http://localhost:5000"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5000,http://localhost:5173,http://127.0.0.1:5173"
    rate_limit: str = "200/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def has_database(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


def ensure_session_secret(config: Settings) -> None:
    """Refuse to start a production app that signs cookies with the default key"""
    if config.is_production and config.session_secret == DEFAULT_SESSION_SECRET:
        raise RuntimeError("SESSION_SECRET must be set in production")


settings = Settings()
