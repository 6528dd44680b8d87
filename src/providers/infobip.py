"""Infobip provider.

Only WebRTC token issuance is available; PSTN bridging is not offered through
this vendor.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from bridge.errors import ProviderError, ValidationError
from config.settings import Settings
from providers.base import (
    BridgeRequest,
    CallProvider,
    DialRequest,
    DialResult,
    ProviderEvent,
    WebRTCTokenRequest,
    WebRTCTokenResult,
)

LOGGER = logging.getLogger(__name__)


class InfobipProvider(CallProvider):
    name = "infobip"

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        token_ttl_seconds: int = 43200,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._token_ttl_seconds = token_ttl_seconds
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> InfobipProvider:
        if not settings.infobip_base_url or not settings.infobip_api_key:
            raise ValueError("INFOBIP_BASE_URL/INFOBIP_API_KEY not configured")
        return cls(
            base_url=settings.infobip_base_url,
            api_key=settings.infobip_api_key,
            token_ttl_seconds=settings.infobip_token_ttl_seconds,
            timeout=settings.provider_timeout_seconds,
        )

    @property
    def from_number(self) -> str:
        return ""

    async def dial(self, request: DialRequest) -> DialResult:
        raise ProviderError("Infobip PSTN dialing is not supported.")

    async def bridge(self, request: BridgeRequest) -> None:
        raise ProviderError("Infobip PSTN bridging is not supported.")

    async def create_webrtc_token(self, request: WebRTCTokenRequest) -> WebRTCTokenResult:
        if not request.identity:
            raise ValidationError("Infobip WebRTC requires an identity.")

        body: dict[str, Any] = {
            "identity": request.identity,
            "timeToLive": self._token_ttl_seconds,
        }
        if request.display_name:
            body["displayName"] = request.display_name

        headers = {
            "Authorization": f"App {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(f"{self._base_url}/webrtc/1/token", json=body, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            LOGGER.error("Infobip token request rejected: status=%s", exc.response.status_code)
            raise ProviderError(
                f"Infobip /webrtc/1/token failed: {exc.response.status_code} {exc.response.text}",
                provider_status=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            LOGGER.error("Infobip token request failed: %s", exc)
            raise ProviderError(f"Infobip /webrtc/1/token failed: {exc}") from exc

        if not isinstance(data, dict):
            data = {}
        token = data.get("token") or data.get("accessToken") or data.get("jwt") or ""
        return WebRTCTokenResult(token=str(token))

    def verify_signature(self, raw_body: bytes, headers: Mapping[str, str]) -> bool:
        # No webhook traffic is expected from this vendor.
        return False

    def parse_event(self, envelope: Any) -> ProviderEvent | None:
        return None
