from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from bridge.errors import ProviderError, ValidationError
from providers.base import BridgeRequest, DialRequest, Leg, WebRTCTokenRequest
from providers.infobip import InfobipProvider


def _provider(handler) -> InfobipProvider:
    return InfobipProvider(
        base_url="https://abc.api.infobip.test/",
        api_key="SECRET",
        token_ttl_seconds=600,
        transport=httpx.MockTransport(handler),
    )


def test_token_request_shape():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"token": "ib-token", "expirationTime": "2030-01-01T00:00:00Z"})

    result = asyncio.run(
        _provider(handler).create_webrtc_token(WebRTCTokenRequest(identity="alice", display_name="Alice"))
    )

    assert result.token == "ib-token"
    (request,) = seen
    assert str(request.url) == "https://abc.api.infobip.test/webrtc/1/token"
    assert request.headers["authorization"] == "App SECRET"
    assert json.loads(request.content) == {"identity": "alice", "timeToLive": 600, "displayName": "Alice"}


@pytest.mark.parametrize("field", ["accessToken", "jwt"])
def test_token_field_fallbacks(field):
    provider = _provider(lambda request: httpx.Response(200, json={field: "alt"}))
    assert asyncio.run(provider.create_webrtc_token(WebRTCTokenRequest(identity="bob"))).token == "alt"


def test_identity_is_required():
    provider = _provider(lambda request: httpx.Response(200, json={}))
    with pytest.raises(ValidationError):
        asyncio.run(provider.create_webrtc_token(WebRTCTokenRequest()))


def test_rejected_token_request_raises_provider_error():
    provider = _provider(lambda request: httpx.Response(401, json={"requestError": "unauthorized"}))

    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(provider.create_webrtc_token(WebRTCTokenRequest(identity="alice")))

    assert excinfo.value.provider_status == 401


def test_pstn_operations_are_unsupported():
    provider = _provider(lambda request: httpx.Response(500))

    with pytest.raises(ProviderError):
        asyncio.run(provider.dial(DialRequest(to="+15551234567", from_number="", session_id="s", leg=Leg.A)))
    with pytest.raises(ProviderError):
        asyncio.run(provider.bridge(BridgeRequest(leg_a_call_id="a", leg_b_call_id="b")))

    assert provider.verify_signature(b"{}", {}) is False
    assert provider.parse_event({"data": {"event_type": "call.answered"}}) is None
