"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from powercrm.core.exceptions import InvalidConfigurationError

BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_JWT_SECRET = "change-me"
MIN_JWT_SECRET_LEN = 32


class Settings(BaseSettings):
    APP_NAME: str = "Power CRM"
    ENV: str = "development"

    DATABASE_URL: str = "postgresql+psycopg://postgres@localhost:5432/power_crm"

    JWT_SECRET: str = DEFAULT_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    COOKIE_NAME: str = "power-crm-auth"
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Asia/Tehran"

    CORS_ORIGINS: str = "http://localhost:3000"
    ALLOWED_HOSTS: str = "*"

    # one-time codes sent over SMS
    OTP_REQUIRED: bool = False
    OTP_LENGTH: int = 6
    OTP_EXPIRE_MINUTES: int = 5
    OTP_MAX_ATTEMPTS: int = 5
    SMS_API_URL: str = ""
    SMS_API_KEY: str = ""
    SMS_SENDER: str = "PowerCRM"

    # workspace backend
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_TIMEOUT_SECONDS: float = 10.0

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 900
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_AUTH_MAX_REQUESTS: int = 10

    model_config = SettingsConfigDict(env_file=str(BASE_DIR / ".env"), env_file_encoding="utf-8")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def allowed_hosts(self) -> list[str]:
        hosts = [host.strip() for host in self.ALLOWED_HOSTS.split(",") if host.strip()]
        return hosts or ["*"]

    @property
    def is_production(self) -> bool:
        return self.ENV.strip().lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENV.strip().lower() == "development"

    @property
    def sms_ready(self) -> bool:
        return bool(self.SMS_API_URL.strip() and self.SMS_API_KEY.strip())

    @property
    def supabase_ready(self) -> bool:
        return bool(self.SUPABASE_URL.strip() and self.SUPABASE_SERVICE_ROLE_KEY.strip())

    def validate_runtime_security(self) -> None:
        if not self.is_production:
            return
        if self.JWT_SECRET == DEFAULT_JWT_SECRET:
            raise InvalidConfigurationError("default_jwt_secret_in_production", setting="JWT_SECRET")
        if len(self.JWT_SECRET) < MIN_JWT_SECRET_LEN:
            raise InvalidConfigurationError("jwt_secret_too_short", setting="JWT_SECRET")


settings = Settings()
