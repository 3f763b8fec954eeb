from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .sizing import BASE_EVENT_SIZE_BYTES, MAX_BATCH_SIZE_BYTES, MAX_EVENT_MSG_SIZE_BYTES


class UploaderSettings(BaseSettings):
    """Environment-driven uploader configuration (LOGSHIP_* variables)."""

    model_config = SettingsConfigDict(
        env_prefix="LOGSHIP_", env_file=".env", case_sensitive=False, extra="ignore"
    )

    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    retention_in_days: int = Field(0, ge=0)
    ensure_log_group: bool = True
    retry_attempts: int = Field(3, ge=0)
    retry_backoff_ms: int = Field(0, ge=0)  # 0 = resubmit immediately
    max_event_bytes: int = Field(MAX_EVENT_MSG_SIZE_BYTES, gt=0)
    max_batch_bytes: int = Field(MAX_BATCH_SIZE_BYTES, gt=0)
    event_overhead_bytes: int = Field(BASE_EVENT_SIZE_BYTES, ge=0)


@lru_cache()
def get_settings() -> UploaderSettings:
    return UploaderSettings()
