"""Application settings."""

from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from asvo_client.domain.jobs import Delivery


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    api_key: str | None = None
    base_url: str = "https://asvo.mwatelescope.org"
    client_version: str = "mantaray-clientv1.0"
    timeout_seconds: float = 60.0
    buffer_size_mb: int = 100
    download_concurrency: int = 4
    default_delivery: Delivery = Delivery.ACACIA
    wait_grace_seconds: float = 5.0
    wait_poll_seconds: float = 60.0
    retry_initial_seconds: float = 0.5
    retry_multiplier: float = 1.5
    retry_max_interval_seconds: float = 60.0
    retry_max_elapsed_seconds: float = 900.0
    show_progress: bool = True
    download_dir: Path = Path(".")

    @field_validator("base_url", mode="before")
    @classmethod
    def strip_base_url(cls, value: object) -> object:
        """Drop trailing slashes so endpoint paths can be appended directly."""

        if not isinstance(value, str):
            return value
        return value.strip().rstrip("/")

    @field_validator("default_delivery", mode="before")
    @classmethod
    def normalize_delivery(cls, value: object) -> object:
        """Accept delivery names in any case."""

        if not isinstance(value, str):
            return value
        return value.strip().lower()

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Ensure numeric settings are usable."""

        if not self.base_url:
            raise ValueError("MWA_ASVO_BASE_URL cannot be empty.")
        if self.timeout_seconds <= 0:
            raise ValueError("MWA_ASVO_TIMEOUT_SECONDS must be > 0.")
        if self.buffer_size_mb < 1:
            raise ValueError("MWA_ASVO_BUFFER_SIZE_MB must be >= 1.")
        if self.download_concurrency < 0:
            raise ValueError("MWA_ASVO_DOWNLOAD_CONCURRENCY must be >= 0.")
        if self.wait_grace_seconds < 0:
            raise ValueError("MWA_ASVO_WAIT_GRACE_SECONDS must be >= 0.")
        if self.wait_poll_seconds <= 0:
            raise ValueError("MWA_ASVO_WAIT_POLL_SECONDS must be > 0.")
        if self.retry_initial_seconds <= 0:
            raise ValueError("MWA_ASVO_RETRY_INITIAL_SECONDS must be > 0.")
        if self.retry_multiplier < 1:
            raise ValueError("MWA_ASVO_RETRY_MULTIPLIER must be >= 1.")
        if self.retry_max_interval_seconds < self.retry_initial_seconds:
            raise ValueError(
                "MWA_ASVO_RETRY_MAX_INTERVAL_SECONDS must be >= "
                "MWA_ASVO_RETRY_INITIAL_SECONDS."
            )
        if self.retry_max_elapsed_seconds < 0:
            raise ValueError("MWA_ASVO_RETRY_MAX_ELAPSED_SECONDS must be >= 0.")
        return self

    @property
    def buffer_size_bytes(self) -> int:
        """Size of the in-memory write buffer used per file transfer."""

        return self.buffer_size_mb * 1024 * 1024

    model_config = SettingsConfigDict(env_prefix="MWA_ASVO_", extra="ignore")


__all__ = ["Settings"]
