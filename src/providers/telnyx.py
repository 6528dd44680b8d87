"""Telnyx Call Control provider."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import httpx

from bridge.errors import ProviderError, ValidationError
from config.settings import Settings
from providers.base import (
    BridgeRequest,
    CallProvider,
    DialRequest,
    DialResult,
    EventType,
    ProviderEvent,
    WebRTCTokenRequest,
    WebRTCTokenResult,
)
from providers.correlation import decode_correlation, encode_correlation
from providers.signature import verify_ed25519

LOGGER = logging.getLogger(__name__)

TIMESTAMP_HEADER = "telnyx-timestamp"
SIGNATURE_HEADER = "telnyx-signature-ed25519"

EVENT_TYPES: dict[str, EventType] = {
    "call.initiated": EventType.INITIATED,
    "call.answered": EventType.ANSWERED,
    "call.bridged": EventType.BRIDGED,
    "call.hangup": EventType.HANGUP,
}


def _header(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value is None:
        for key, candidate in headers.items():
            if key.lower() == name:
                value = candidate
                break
    return str(value or "").strip()


class TelnyxProvider(CallProvider):
    """Outbound dialing, bridging and webhook handling over the Telnyx v2 API."""

    name = "telnyx"

    def __init__(
        self,
        *,
        api_key: str,
        connection_id: str,
        from_number: str,
        public_key: str,
        base_url: str = "https://api.telnyx.com",
        webrtc_credential_id: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._connection_id = connection_id
        self._from_number = from_number
        self._public_key = public_key
        self._base_url = base_url.rstrip("/")
        self._webrtc_credential_id = webrtc_credential_id
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> TelnyxProvider:
        if not settings.telnyx_api_key:
            raise ValueError("TELNYX_API_KEY is not configured")
        if not settings.telnyx_connection_id:
            raise ValueError("TELNYX_CONNECTION_ID is not configured")
        if not settings.telnyx_number:
            raise ValueError("TELNYX_NUMBER is not configured")
        return cls(
            api_key=settings.telnyx_api_key,
            connection_id=settings.telnyx_connection_id,
            from_number=settings.telnyx_number,
            public_key=settings.telnyx_public_key or "",
            base_url=settings.telnyx_api_base_url,
            webrtc_credential_id=settings.telnyx_webrtc_credential_id,
            timeout=settings.provider_timeout_seconds,
        )

    @property
    def from_number(self) -> str:
        return self._from_number

    async def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(f"{self._base_url}{path}", json=payload, headers=headers)
        except httpx.HTTPError as exc:
            LOGGER.error("Telnyx request failed path=%s error=%s", path, exc)
            raise ProviderError(f"Telnyx request to {path} failed: {exc}") from exc

        if response.is_error:
            LOGGER.error(
                "Telnyx rejected request path=%s status=%s body=%s",
                path,
                response.status_code,
                response.text[:500],
            )
            raise ProviderError(
                f"Telnyx {response.status_code}: {response.text}",
                provider_status=response.status_code,
            )
        return response

    async def dial(self, request: DialRequest) -> DialResult:
        payload: dict[str, Any] = {
            "to": request.to,
            "from": request.from_number,
            "connection_id": self._connection_id,
            "client_state": encode_correlation(request.session_id, request.leg),
        }
        if request.command_id:
            payload["command_id"] = request.command_id

        response = await self._post("/v2/calls", payload)
        try:
            body = response.json()
        except ValueError:
            body = {}
        return DialResult(accepted=True, raw_response=body if isinstance(body, dict) else {})

    async def bridge(self, request: BridgeRequest) -> None:
        await self._post(
            f"/v2/calls/{quote(request.leg_a_call_id, safe='')}/actions/bridge",
            {"call_control_id": request.leg_b_call_id},
        )

    async def create_webrtc_token(self, request: WebRTCTokenRequest) -> WebRTCTokenResult:
        credential_id = request.credential_id or self._webrtc_credential_id
        if not credential_id:
            raise ValidationError("Telnyx WebRTC requires a telephony credential id.")

        response = await self._post(f"/v2/telephony_credentials/{credential_id}/token", {})
        token = response.text.strip()
        if not token:
            raise ProviderError("Telnyx returned an empty WebRTC token.")
        return WebRTCTokenResult(token=token)

    def verify_signature(self, raw_body: bytes, headers: Mapping[str, str]) -> bool:
        return verify_ed25519(
            raw_body,
            _header(headers, TIMESTAMP_HEADER),
            _header(headers, SIGNATURE_HEADER),
            self._public_key,
        )

    def parse_event(self, envelope: Any) -> ProviderEvent | None:
        if not isinstance(envelope, dict):
            return None
        data = envelope.get("data")
        if not isinstance(data, dict):
            return None
        payload = data.get("payload")
        if not isinstance(payload, dict):
            payload = {}

        event_type = EVENT_TYPES.get(str(data.get("event_type") or ""))
        if event_type is None:
            return None

        correlation = decode_correlation(payload.get("client_state"))
        event_id = data.get("id") or envelope.get("id")
        return ProviderEvent(
            type=event_type,
            leg=correlation.leg,
            id=str(event_id) if event_id else None,
            to=payload.get("to"),
            from_number=payload.get("from"),
            call_control_id=payload.get("call_control_id"),
            session_id=correlation.session_id,
            cause=payload.get("hangup_cause"),
            raw=envelope,
        )
