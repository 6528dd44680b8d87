"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends

from bridge.dedup import EventDeduplicator
from bridge.events import SessionEventBus
from bridge.machine import SessionStateMachine
from bridge.pipeline import WebhookPipeline
from bridge.service import BridgeService
from bridge.store import SessionStore
from config.settings import Settings, get_settings
from providers.base import CallProvider
from providers.registry import get_active_provider


@dataclass
class BridgeRuntime:
    """Process-wide orchestration objects sharing one store and bus."""

    provider: CallProvider
    store: SessionStore
    bus: SessionEventBus
    deduplicator: EventDeduplicator
    machine: SessionStateMachine
    pipeline: WebhookPipeline
    service: BridgeService


def build_runtime(provider: CallProvider, settings: Settings | None = None) -> BridgeRuntime:
    settings = settings or get_settings()
    store = SessionStore()
    bus = SessionEventBus(queue_size=settings.event_queue_size)
    deduplicator = EventDeduplicator(max_entries=settings.dedup_max_entries)
    machine = SessionStateMachine(provider, bus)
    return BridgeRuntime(
        provider=provider,
        store=store,
        bus=bus,
        deduplicator=deduplicator,
        machine=machine,
        pipeline=WebhookPipeline(provider, store, deduplicator, machine),
        service=BridgeService(provider, store, bus),
    )


@lru_cache(maxsize=1)
def _runtime_factory() -> BridgeRuntime:
    return build_runtime(get_active_provider())


def get_runtime() -> BridgeRuntime:
    return _runtime_factory()


def get_bridge_service(runtime: BridgeRuntime = Depends(get_runtime)) -> BridgeService:
    return runtime.service


def get_pipeline(runtime: BridgeRuntime = Depends(get_runtime)) -> WebhookPipeline:
    return runtime.pipeline
