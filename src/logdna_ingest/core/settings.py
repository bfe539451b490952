"""
Static configuration for the LogDNA shipper using Pydantic v2 Settings.

Values are read once at startup from keyword arguments and ``LOGDNA_*``
environment variables; the core treats the resulting object as read-only.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import (  # type: ignore[import-not-found]
    BaseSettings,
    SettingsConfigDict,
)

from .errors import ConfigurationError

DEFAULT_INGESTER_DOMAIN = "https://logs.logdna.com"


class IngestSettings(BaseSettings):
    """Connection identity and defaults applied to every shipped line."""

    api_key: SecretStr = Field(description="Ingestion key sent as the apikey header")
    hostname: str = Field(description="Host name reported to the ingest endpoint")
    mac: str | None = Field(default=None, description="Optional MAC address")
    ip: str | None = Field(default=None, description="Optional IP address")
    app: str | None = Field(
        default=None, description="Default app name for records that carry none"
    )
    file: str | None = Field(
        default=None, description="Default file name for records that carry none"
    )
    ingester_domain: str = Field(
        default=DEFAULT_INGESTER_DOMAIN,
        description="Base URL of the ingest service",
    )
    message_key: str = Field(
        default="message",
        description="Record field holding the message text to sanitize",
    )
    timeout_seconds: float = Field(
        default=30.0, gt=0.0, description="Transport timeout for one request"
    )
    keep_alive_seconds: float = Field(
        default=60.0, gt=0.0, description="Idle expiry for pooled connections"
    )
    internal_logging_enabled: bool = Field(
        default=False, description="Emit DEBUG diagnostics for every send"
    )
    enable_metrics: bool = Field(
        default=False, description="Enable Prometheus-compatible metrics"
    )

    model_config = SettingsConfigDict(
        env_prefix="LOGDNA_",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    @field_validator("hostname")
    @classmethod
    def _ensure_hostname_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("hostname must not be empty")
        return value

    @field_validator("ingester_domain")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ValueError("ingester_domain must be an http(s) URL")
        return value

    def to_dict(self) -> dict[str, object]:
        """Dump settings with the API key masked."""
        # SecretStr dumps as '**********' in json mode
        return dict(self.model_dump(mode="json"))


def load_settings(**overrides: Any) -> IngestSettings:
    """Build settings from the environment plus ``overrides``.

    Raises:
        ConfigurationError: when required values are missing or invalid.
    """
    try:
        return IngestSettings(**overrides)
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) or "<root>"
            for err in exc.errors()
        )
        raise ConfigurationError(
            f"Invalid LogDNA settings: {fields}", cause=exc
        ) from exc


# Mark Pydantic validators as used for vulture
_VULTURE_USED: tuple[object, ...] = (
    IngestSettings._ensure_hostname_non_empty,
    IngestSettings._strip_trailing_slash,
)
