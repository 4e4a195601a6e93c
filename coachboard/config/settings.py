# coachboard/config/settings.py
"""
Application configuration using pydantic-settings (pydantic v2 style).

This centralizes environment-driven configuration. Prefer reading values
from environment variables; do not rely on os.getenv inline defaults which
can silently hide missing configuration.
"""
from __future__ import annotations

import logging
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application configuration loaded from environment.

    Relevant environment variables:
      - SUPABASE_URL
      - SUPABASE_SERVICE_ROLE_KEY
      - STORE_READ_TIMEOUT
      - STRICT_READS
      - LOG_LEVEL
      - HEALTH_CHECK_TIMEOUT
      - FAIL_ON_DB_STARTUP
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Supabase
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None

    # Record store reads
    store_read_timeout: float = Field(default=5.0, gt=0)
    # strict: one failed read fails the whole resolution.
    # degraded (default): a failed read empties only that kind.
    strict_reads: bool = False

    # Server
    log_level: str = "INFO"
    health_check_timeout: float = Field(default=5.0, gt=0)
    fail_on_db_startup: bool = False

    @field_validator("supabase_url", "supabase_service_role_key")
    @classmethod
    def maybe_strip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    def model_post_init(self, __context) -> None:  # pydantic v2 hooks
        """
        Light-weight notice that runs after model is constructed.
        Uses logging (not print) so messages show up in server logs.
        """
        if not self.supabase_url or not self.supabase_service_role_key:
            logger.warning(
                "Supabase credentials are not configured. "
                "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY to enable program resolution."
            )
        if self.strict_reads:
            logger.info("STRICT_READS enabled: a failed store read fails the whole resolution.")


# single exporter
settings = Settings()
