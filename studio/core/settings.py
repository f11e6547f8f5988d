from typing import Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Supabase project (set via .env; avoid hardcoding keys here)
    SUPABASE_URL: str = ""  # e.g. https://<project>.supabase.co
    SUPABASE_ANON_KEY: str = ""  # public key, read access for the site
    SUPABASE_SERVICE_KEY: str = ""  # privileged; only used by scripts/create_admin.py
    STORAGE_BUCKET: str = "media"

    # Admin account used by the bootstrap and batch-upload scripts
    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD: str = ""

    # Security
    SECRET_KEY: str = "CHANGE_THIS_TO_A_SECRET_KEY"
    ADMIN_SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 8

    # App/Base URL
    BASE_URL: str = "http://localhost:8000"
    SITE_NAME: str = "frebo media"

    # Galleries
    PORTFOLIO_LIMIT: int = 6

    # Mail (contact form)
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    CONTACT_EMAIL_TO: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_JSON: bool = True
    LOG_FILE: str = "logs/app.log"
    LOG_MAX_BYTES: int = 5_000_000  # 5 MB
    LOG_BACKUP_COUNT: int = 5

    # Sentry
    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.0

    # Upload/security
    MAX_UPLOAD_BYTES: int = 25_000_000  # 25 MB per file default
    ALLOWED_UPLOAD_MIME_PREFIXES: Tuple[str, ...] = ("image/",)
    COOKIE_SECURE: bool = False  # override to True in prod; or auto-detected from BASE_URL
    # Auth rate-limiting
    RATE_LIMIT_LOGIN_ATTEMPTS: int = 5
    RATE_LIMIT_LOGIN_WINDOW_SECONDS: int = 15 * 60  # 15 minutes
    # Contact rate limiting
    CONTACT_RATE_LIMIT_WINDOW_SECONDS: int = 60  # 1 minute window
    CONTACT_RATE_LIMIT_ATTEMPTS: int = 3

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def public_storage_base(self) -> str:
        """Public object URL prefix for the media bucket."""
        origin = (self.SUPABASE_URL or "").rstrip("/")
        return f"{origin}/storage/v1/object/public/{self.STORAGE_BUCKET}/"


settings = Settings()

# Basic validation for required settings to prevent confusing runtime errors
_missing = []
if not settings.SUPABASE_URL:
    _missing.append("SUPABASE_URL")
if not settings.SUPABASE_ANON_KEY:
    _missing.append("SUPABASE_ANON_KEY")
if settings.SECRET_KEY == "CHANGE_THIS_TO_A_SECRET_KEY" or not settings.SECRET_KEY:
    _missing.append("SECRET_KEY")

if _missing:
    # Do not crash imports in some tools; instead, provide a helpful message.
    import warnings

    warnings.warn(
        "Missing required settings in .env: "
        + ", ".join(_missing)
        + ". Update .env and restart the app."
    )

# Auto-detect secure cookies when running under HTTPS
try:
    if not getattr(settings, "COOKIE_SECURE", False) and str(
        getattr(settings, "BASE_URL", "")
    ).lower().startswith("https"):
        settings.COOKIE_SECURE = True  # type: ignore[attr-defined]
except Exception:
    # Best-effort only; ignore if settings are missing
    pass
