"""Configuration models for the fetch helper."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fetch_helper.constants import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_CREDENTIALS,
    DEFAULT_MAX_RETRY,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_RETRY_ENABLED,
    DEFAULT_UPLOAD_CHUNK_SIZE,
)
from fetch_helper.retry import RetryPolicy


CREDENTIALS_MODES = frozenset({"include", "same-origin", "omit"})


def _default_headers() -> dict[str, str]:
    return {"Content-Type": DEFAULT_CONTENT_TYPE}


class FetchHelperConfig(BaseModel):
    """Configuration for a FetchHelper instance.

    Holds the initial default headers and request options. The headers are
    copied into the client, which then mutates its own copy.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    default_headers: dict[str, str] = Field(default_factory=_default_headers)
    default_credentials: str = DEFAULT_CREDENTIALS
    timeout_seconds: float | None = Field(default=None, gt=0.0, le=600.0)
    upload_chunk_size: Annotated[int, Field(ge=1, le=16 * 1024 * 1024)] = (
        DEFAULT_UPLOAD_CHUNK_SIZE
    )

    @field_validator("default_credentials")
    @classmethod
    def validate_credentials(cls, v: str) -> str:
        """Ensure credentials is a fetch credentials mode."""
        if v not in CREDENTIALS_MODES:
            msg = f"default_credentials must be one of {sorted(CREDENTIALS_MODES)}"
            raise ValueError(msg)
        return v


class FetchHelperSettings(BaseSettings):
    """Environment overrides for the fetch helper."""

    model_config = SettingsConfigDict(
        env_prefix="FETCH_HELPER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    retry: bool = DEFAULT_RETRY_ENABLED
    max_retry: int = DEFAULT_MAX_RETRY
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    timeout_seconds: float | None = None

    def to_config(self) -> FetchHelperConfig:
        """Build a FetchHelperConfig from these settings."""
        return FetchHelperConfig(
            retry_policy=RetryPolicy(
                enabled=self.retry,
                max_retry=self.max_retry,
                retry_delay_ms=self.retry_delay_ms,
            ),
            timeout_seconds=self.timeout_seconds,
        )


def get_settings() -> FetchHelperSettings:
    """Get a settings instance."""
    return FetchHelperSettings()
