from pathlib import Path
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


def _split_addresses(raw: str | None) -> list[str]:
    return [part.strip() for part in str(raw or "").split(",") if part.strip()]


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Redis settings (native URL wins over the Upstash REST pair)
    REDIS_URL: str | None = None
    UPSTASH_REDIS_REST_URL: str | None = None
    UPSTASH_REDIS_REST_TOKEN: str | None = None

    # Resend settings
    RESEND_API_KEY: str | None = None
    RESEND_FROM: str = "onboarding@resend.dev"
    REPLY_TO: str | None = None

    # Report recipients (comma-separated)
    REPORTS_CC: str = ""
    REPORTS_BCC: str = ""
    REPORTS_LOG_TO: str = ""

    # Bearer token for cron / webhook triggers
    REPORT_TOKEN: str | None = None

    # =================================================================
    # REPORT ENGINE TUNING
    # =================================================================
    ORDER_LOAD_RETRIES: int = 4
    ORDER_LOAD_RETRY_DELAY_S: float = 0.5
    MAIL_LOG_TTL_S: int = 3600  # 1 hour
    REPORTS_STAGGER_BY_KIND: bool = True
    REALTIME_CLAIM_MARKER_FIRST: bool = False

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def redis_url(self) -> str:
        """
        Resolve the Redis connection URL.

        Upstash REST credentials are converted to the native TLS protocol,
        e.g. https://redis-12345.upstash.io -> rediss://default:<token>@redis-12345.upstash.io:6379
        """
        if self.REDIS_URL:
            return self.REDIS_URL

        if self.UPSTASH_REDIS_REST_URL and self.UPSTASH_REDIS_REST_TOKEN:
            rest_url = self.UPSTASH_REDIS_REST_URL.strip()
            host = urlparse(rest_url).hostname or urlparse(f"https://{rest_url}").hostname
            if not host:
                raise ValueError("UPSTASH_REDIS_REST_URL does not include a valid hostname")
            return f"rediss://default:{self.UPSTASH_REDIS_REST_TOKEN}@{host}:6379"

        # Default for local development
        return "redis://localhost:6379/0"

    def reports_cc_list(self) -> list[str]:
        """Fallback report recipients; CC falls back to BCC like the admin settings page."""
        return _split_addresses(self.REPORTS_CC or self.REPORTS_BCC)

    def reports_bcc_list(self) -> list[str]:
        return _split_addresses(self.REPORTS_BCC or self.REPORTS_CC)

    def reports_log_to_list(self) -> list[str]:
        return _split_addresses(self.REPORTS_LOG_TO)


settings = Settings()
