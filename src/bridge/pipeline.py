"""Webhook ingestion pipeline.

Stages run in order: authenticity, normalize, deduplicate, correlate, apply.
Only a signature failure is rejected; every other outcome is acknowledged so
that the provider does not redeliver and re-trigger side effects.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from enum import Enum

from bridge.dedup import EventDeduplicator
from bridge.errors import CorrelationError, SignatureError
from bridge.machine import SessionStateMachine
from bridge.store import SessionStore
from providers.base import CallProvider, ProviderEvent

LOGGER = logging.getLogger(__name__)


class WebhookOutcome(str, Enum):
    APPLIED = "applied"
    IGNORED = "ignored"
    UNHANDLED = "unhandled"
    DUPLICATE = "duplicate"
    UNCORRELATED = "uncorrelated"
    FAILED = "failed"


class WebhookPipeline:
    def __init__(
        self,
        provider: CallProvider,
        store: SessionStore,
        deduplicator: EventDeduplicator,
        machine: SessionStateMachine,
    ) -> None:
        self._provider = provider
        self._store = store
        self._deduplicator = deduplicator
        self._machine = machine

    async def handle(self, raw_body: bytes, headers: Mapping[str, str]) -> WebhookOutcome:
        """Process one delivery.

        ``raw_body`` must be the unparsed request body. Raises ``SignatureError``
        if the delivery is not authentic; never raises otherwise.
        """

        if not self._provider.verify_signature(raw_body, headers):
            LOGGER.warning("Webhook rejected: invalid signature provider=%s bytes=%s", self._provider.name, len(raw_body))
            raise SignatureError()

        event: ProviderEvent | None = None
        try:
            event = self._normalize(raw_body)
            if event is None:
                return WebhookOutcome.UNHANDLED
            return await self._dispatch(event)
        except CorrelationError as exc:
            LOGGER.info(
                "Webhook dropped: %s event=%s session=%s leg=%s call_control_id=%s event_id=%s",
                exc.detail,
                event.type.value if event else "-",
                event.session_id if event else "-",
                event.leg.value if event and event.leg else "-",
                event.call_control_id if event else "-",
                event.id if event else "-",
            )
            return WebhookOutcome.UNCORRELATED
        except Exception:
            LOGGER.exception(
                "Webhook handling failed event=%s session=%s event_id=%s",
                event.type.value if event else "-",
                event.session_id if event else "-",
                event.id if event else "-",
            )
            return WebhookOutcome.FAILED

    def _normalize(self, raw_body: bytes) -> ProviderEvent | None:
        try:
            envelope = json.loads(raw_body)
        except (UnicodeDecodeError, json.JSONDecodeError):
            LOGGER.info("Webhook acknowledged: body is not JSON bytes=%s", len(raw_body))
            return None

        event = self._provider.parse_event(envelope)
        if event is None:
            LOGGER.info("Webhook acknowledged: unrecognized event type")
            return None

        LOGGER.info(
            "Webhook received event=%s session=%s leg=%s call_control_id=%s event_id=%s to=%s from=%s",
            event.type.value,
            event.session_id,
            event.leg.value if event.leg else None,
            event.call_control_id,
            event.id,
            event.to,
            event.from_number,
        )
        return event

    async def _dispatch(self, event: ProviderEvent) -> WebhookOutcome:
        if self._deduplicator.is_duplicate(event.id):
            LOGGER.info(
                "Duplicate event ignored event=%s session=%s event_id=%s",
                event.type.value,
                event.session_id,
                event.id,
            )
            return WebhookOutcome.DUPLICATE

        if not event.session_id or event.leg is None:
            raise CorrelationError("Missing or invalid correlation token.")

        async with self._store.locked(event.session_id) as session:
            if session is None:
                raise CorrelationError("Session not found.")
            changed = await self._machine.apply(session, event)
            status = session.status.value

        LOGGER.info(
            "Webhook %s event=%s session=%s leg=%s status=%s",
            "applied" if changed else "ignored",
            event.type.value,
            event.session_id,
            event.leg.value,
            status,
        )
        return WebhookOutcome.APPLIED if changed else WebhookOutcome.IGNORED
