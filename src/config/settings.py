"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # Provider used for PSTN bridging
    call_provider: str = Field(default="telnyx", description="Registered provider name, e.g. telnyx.")

    # Telnyx (Call Control)
    telnyx_api_key: str | None = Field(default=None)
    telnyx_public_key: str | None = Field(
        default=None,
        description="Base64 Ed25519 public key used to verify webhook signatures.",
    )
    telnyx_connection_id: str | None = Field(default=None)
    telnyx_number: str | None = Field(default=None, description="Own trunk number, E.164, e.g. +1312...")
    telnyx_api_base_url: str = Field(default="https://api.telnyx.com")
    telnyx_webrtc_credential_id: str | None = Field(
        default=None,
        description="Telephony credential used to mint WebRTC tokens.",
    )

    # Infobip (WebRTC only)
    infobip_base_url: str | None = Field(default=None)
    infobip_api_key: str | None = Field(default=None)
    infobip_token_ttl_seconds: int = Field(default=43200, ge=60)

    # Webhook ingestion
    webhook_secret_path: str = Field(
        default="telnyx",
        description="Path segment of the webhook URL: /webhooks/<webhook_secret_path>.",
    )
    dedup_max_entries: int = Field(default=5000, ge=1)

    # Outbound provider HTTP
    provider_timeout_seconds: float = Field(default=10.0, gt=0)

    # Session event stream
    event_queue_size: int = Field(default=256, ge=1)
    sse_heartbeat_seconds: float = Field(default=25.0, gt=0)

    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    @field_validator("call_provider")
    @classmethod
    def normalize_provider(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("webhook_secret_path")
    @classmethod
    def strip_slashes(cls, value: str) -> str:
        path = value.strip().strip("/")
        if not path:
            raise ValueError("webhook_secret_path may not be empty.")
        return path


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
