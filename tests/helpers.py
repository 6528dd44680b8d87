from __future__ import annotations

import asyncio
import json
from typing import Any

from bridge.errors import ProviderError
from providers.base import (
    BridgeRequest,
    DialRequest,
    DialResult,
    Leg,
    WebRTCTokenRequest,
    WebRTCTokenResult,
)
from providers.correlation import encode_correlation
from providers.telnyx import TelnyxProvider

OWN_NUMBER = "+15550000000"
FROM_PHONE = "+15551234567"
TO_PHONE = "+15557654321"


class RecordingProvider(TelnyxProvider):
    """Telnyx event parsing with recorded, network-free call control."""

    def __init__(self, *, signature_valid: bool = True) -> None:
        super().__init__(
            api_key="KEY",
            connection_id="conn-1",
            from_number=OWN_NUMBER,
            public_key="",
        )
        self.signature_valid = signature_valid
        self.dials: list[DialRequest] = []
        self.bridges: list[BridgeRequest] = []
        self.fail_dial = False
        self.fail_bridge = False
        self.accept_dial = True
        self.dial_gate: asyncio.Event | None = None

    async def dial(self, request: DialRequest) -> DialResult:
        self.dials.append(request)
        if self.dial_gate is not None:
            await self.dial_gate.wait()
        if self.fail_dial:
            raise ProviderError("Telnyx 422: invalid number", provider_status=422)
        return DialResult(accepted=self.accept_dial)

    async def bridge(self, request: BridgeRequest) -> None:
        self.bridges.append(request)
        if self.fail_bridge:
            raise ProviderError("Telnyx 422: call not found", provider_status=422)

    async def create_webrtc_token(self, request: WebRTCTokenRequest) -> WebRTCTokenResult:
        return WebRTCTokenResult(token=f"jwt-for-{request.credential_id or request.identity}")

    def verify_signature(self, raw_body, headers) -> bool:
        return self.signature_valid


def telnyx_envelope(
    event_type: str,
    *,
    session_id: str | None,
    leg: Leg | None,
    call_control_id: str = "abc",
    to: str | None = None,
    event_id: str | None = None,
    client_state: str | None = None,
    **payload: Any,
) -> dict[str, Any]:
    if client_state is None and session_id is not None and leg is not None:
        client_state = encode_correlation(session_id, leg)
    body: dict[str, Any] = {
        "call_control_id": call_control_id,
        "client_state": client_state,
        "to": to,
        "from": OWN_NUMBER,
        **payload,
    }
    data: dict[str, Any] = {"event_type": event_type, "payload": body}
    if event_id is not None:
        data["id"] = event_id
    return {"data": data}


def raw(envelope: dict[str, Any]) -> bytes:
    return json.dumps(envelope).encode("utf-8")
