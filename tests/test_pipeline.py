from __future__ import annotations

import asyncio

import pytest

from bridge.errors import SignatureError
from bridge.pipeline import WebhookOutcome
from helpers import FROM_PHONE, TO_PHONE, raw, telnyx_envelope
from providers.base import Leg


def test_invalid_signature_is_rejected_before_parsing(runtime, provider):
    provider.signature_valid = False

    with pytest.raises(SignatureError) as excinfo:
        asyncio.run(runtime.pipeline.handle(b"not even json", {}))

    assert excinfo.value.status_code == 400
    assert excinfo.value.detail == "invalid signature"


@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b"\xff\xfe\x00",
        raw({"data": {"event_type": "call.speak.ended", "payload": {}}}),
        raw({"unexpected": True}),
    ],
)
def test_unusable_bodies_are_acknowledged(runtime, body):
    assert asyncio.run(runtime.pipeline.handle(body, {})) is WebhookOutcome.UNHANDLED


def test_unknown_session_is_uncorrelated(runtime):
    envelope = telnyx_envelope("call.answered", session_id="missing", leg=Leg.A, event_id="e1")
    assert asyncio.run(runtime.pipeline.handle(raw(envelope), {})) is WebhookOutcome.UNCORRELATED


def test_missing_client_state_is_uncorrelated(runtime):
    envelope = telnyx_envelope("call.initiated", session_id=None, leg=None, event_id="e1")
    assert asyncio.run(runtime.pipeline.handle(raw(envelope), {})) is WebhookOutcome.UNCORRELATED


def test_initiated_without_call_control_id_is_uncorrelated(runtime):
    async def _run():
        session_id = await runtime.service.start_bridge(FROM_PHONE, TO_PHONE)
        envelope = telnyx_envelope("call.initiated", session_id=session_id, leg=Leg.A, call_control_id=None)
        return await runtime.pipeline.handle(raw(envelope), {}), await runtime.store.get(session_id)

    outcome, snapshot = asyncio.run(_run())

    assert outcome is WebhookOutcome.UNCORRELATED
    assert snapshot["leg_a"]["provider_call_id"] is None


def test_events_without_id_are_never_deduplicated(runtime):
    async def _run():
        session_id = await runtime.service.start_bridge(FROM_PHONE, TO_PHONE)
        envelope = telnyx_envelope("call.initiated", session_id=session_id, leg=Leg.A, call_control_id="a-1")
        return [await runtime.pipeline.handle(raw(envelope), {}) for _ in range(2)]

    assert asyncio.run(_run()) == [WebhookOutcome.APPLIED, WebhookOutcome.APPLIED]


def test_duplicate_check_runs_before_correlation(runtime):
    envelope = telnyx_envelope("call.answered", session_id="missing", leg=Leg.A, event_id="dup")

    async def _run():
        return [await runtime.pipeline.handle(raw(envelope), {}) for _ in range(2)]

    assert asyncio.run(_run()) == [WebhookOutcome.UNCORRELATED, WebhookOutcome.DUPLICATE]


def test_unexpected_failure_is_contained(runtime, monkeypatch):
    async def explode(session, event):
        raise RuntimeError("boom")

    monkeypatch.setattr(runtime.machine, "apply", explode)

    async def _run():
        session_id = await runtime.service.start_bridge(FROM_PHONE, TO_PHONE)
        envelope = telnyx_envelope("call.initiated", session_id=session_id, leg=Leg.A, call_control_id="a-1")
        return await runtime.pipeline.handle(raw(envelope), {})

    assert asyncio.run(_run()) is WebhookOutcome.FAILED


@pytest.mark.parametrize("client_state", [12345, {"sessionId": "s", "leg": "A"}, ["A"]])
def test_non_string_client_state_is_uncorrelated(runtime, client_state):
    envelope = telnyx_envelope("call.answered", session_id=None, leg=None, client_state=client_state, event_id="e1")
    assert asyncio.run(runtime.pipeline.handle(raw(envelope), {})) is WebhookOutcome.UNCORRELATED
