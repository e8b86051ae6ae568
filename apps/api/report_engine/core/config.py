"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Proxy/Load Balancer Settings
    # Set to True when running behind nginx/Cloudflare to trust X-Forwarded-For
    TRUST_PROXY_HEADERS: bool = False

    # Database
    DATABASE_URL: str

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 4

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting
    RATE_LIMIT_API: int = 60  # General API, requests per minute
    RATE_LIMIT_AI_GENERATE: str = "10/minute"
    RATE_LIMIT_REPORT_RUN: str = "30/minute"

    # External report executor
    REPORT_EXECUTOR_URL: str = ""
    REPORT_EXECUTOR_API_KEY: str = ""
    REPORT_EXECUTOR_TIMEOUT_SECONDS: float = 60.0

    # AI query service (natural language -> report config)
    AI_QUERY_URL: str = ""
    AI_QUERY_API_KEY: str = ""
    AI_QUERY_TIMEOUT_SECONDS: float = 30.0

    # Report listing / execution limits
    REPORT_PAGE_SIZE_DEFAULT: int = 20
    REPORT_PAGE_SIZE_MAX: int = 100
    REPORT_RUN_LIMIT_DEFAULT: int = 1000
    REPORT_RUN_LIMIT_MAX: int = 10000

    # Scheduled exports
    SCHEDULE_DEFAULT_TIMEZONE: str = "America/New_York"
    SCHEDULE_DEFAULT_TIME: str = "08:00"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets


settings = Settings()
