"""FastAPI routes exposing call-bridge capabilities."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Callable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from api.dependencies import BridgeRuntime, get_bridge_service, get_runtime
from api.schemas import (
    BridgeCallRequest,
    BridgeCallResponse,
    SessionSnapshot,
    WebRTCTokenRequestBody,
    WebRTCTokenResponse,
)
from bridge.events import SessionUpdate, snapshot_update
from bridge.models import SessionStatus
from bridge.service import BridgeService
from config.settings import get_settings
from providers.base import CallProvider, WebRTCTokenRequest
from providers.registry import build_provider

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.post("/calls/bridge", response_model=BridgeCallResponse, status_code=202)
async def start_bridge(
    payload: BridgeCallRequest,
    service: BridgeService = Depends(get_bridge_service),
) -> BridgeCallResponse:
    session_id = await service.start_bridge(payload.from_phone, payload.to_phone)
    return BridgeCallResponse(session_id=session_id)


@router.get("/calls/{session_id}", response_model=SessionSnapshot)
async def get_session(
    session_id: str,
    service: BridgeService = Depends(get_bridge_service),
) -> SessionSnapshot:
    return SessionSnapshot.model_validate(await service.get_session(session_id))


def _sse_message(update: SessionUpdate) -> str:
    return f"id: {update.seq}\nevent: update\ndata: {json.dumps(update.to_dict())}\n\n"


async def _session_events(
    session_id: str,
    runtime: BridgeRuntime,
    request: Request,
    heartbeat_seconds: float,
) -> AsyncIterator[str]:
    queue = runtime.bus.subscribe(session_id)
    LOGGER.info("Subscriber attached session=%s subscribers=%s", session_id, runtime.bus.subscriber_count(session_id))
    try:
        snapshot = await runtime.store.get(session_id)
        if snapshot is not None:
            yield _sse_message(snapshot_update(snapshot))
            if snapshot["status"] == SessionStatus.ENDED.value:
                return

        while True:
            try:
                update = await asyncio.wait_for(queue.get(), timeout=heartbeat_seconds)
            except asyncio.TimeoutError:
                if await request.is_disconnected():
                    return
                yield ": ping\n\n"
                continue
            if update is None:
                return
            yield _sse_message(update)
    finally:
        runtime.bus.unsubscribe(session_id, queue)
        LOGGER.info("Subscriber detached session=%s", session_id)


@router.get("/calls/{session_id}/events")
async def stream_session_events(
    session_id: str,
    request: Request,
    runtime: BridgeRuntime = Depends(get_runtime),
) -> StreamingResponse:
    settings = get_settings()
    return StreamingResponse(
        _session_events(session_id, runtime, request, settings.sse_heartbeat_seconds),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


def get_token_provider_factory() -> Callable[[str], CallProvider]:
    return build_provider


@router.post("/webrtc/token", response_model=WebRTCTokenResponse, status_code=201)
async def create_webrtc_token(
    payload: WebRTCTokenRequestBody,
    provider_factory: Callable[[str], CallProvider] = Depends(get_token_provider_factory),
) -> WebRTCTokenResponse:
    provider = provider_factory(payload.provider)
    result = await provider.create_webrtc_token(
        WebRTCTokenRequest(
            credential_id=payload.credential_id,
            identity=payload.identity,
            display_name=payload.display_name,
        )
    )
    return WebRTCTokenResponse(token=result.token)
