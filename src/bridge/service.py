"""Bridge initiation and session lookup."""

from __future__ import annotations

import logging
import re
from typing import Any

from bridge.errors import ProviderError, SessionNotFoundError, ValidationError
from bridge.events import SessionEventBus
from bridge.models import LegStatus, SessionStatus, dial_command_id
from bridge.store import SessionStore
from providers.base import CallProvider, DialRequest, Leg

LOGGER = logging.getLogger(__name__)

E164_PATTERN = re.compile(r"^\+\d{7,15}$")


def is_e164(value: str | None) -> bool:
    return bool(value) and E164_PATTERN.fullmatch(value) is not None


class BridgeService:
    """Entry point creating a session and dialing its first leg."""

    def __init__(self, provider: CallProvider, store: SessionStore, bus: SessionEventBus) -> None:
        self._provider = provider
        self._store = store
        self._bus = bus

    async def start_bridge(self, from_phone: str, to_phone: str) -> str:
        """Create a session and dial leg A; return the new session id.

        Further progress is driven by webhooks. If the dial fails the session is
        discarded and ``ProviderError`` propagates.
        """

        if not is_e164(from_phone):
            raise ValidationError("from_phone must be an E.164 number.")
        if not is_e164(to_phone):
            raise ValidationError("to_phone must be an E.164 number.")

        created = await self._store.create(
            provider=self._provider.name,
            from_phone=from_phone,
            to_phone=to_phone,
        )
        session_id = created.session_id

        async with self._store.locked(session_id) as session:
            session.status = SessionStatus.A_DIALING
            session.leg_a.status = LegStatus.DIALING
            session.leg_a.dial_command_id = dial_command_id(session_id, Leg.A)
            command_id = session.leg_a.dial_command_id
            self._bus.publish(session_id, session)

        LOGGER.info(
            "Dialing A session=%s provider=%s to=%s from=%s command_id=%s",
            session_id,
            self._provider.name,
            from_phone,
            self._provider.from_number,
            command_id,
        )
        try:
            result = await self._provider.dial(
                DialRequest(
                    to=from_phone,
                    from_number=self._provider.from_number,
                    session_id=session_id,
                    leg=Leg.A,
                    command_id=command_id,
                )
            )
            if not result.accepted:
                raise ProviderError("Provider did not accept the A dial.")
        except Exception as exc:
            LOGGER.error("Dialing A failed session=%s; discarding session: %s", session_id, exc)
            await self._store.delete(session_id)
            self._bus.close(session_id)
            raise

        return session_id

    async def get_session(self, session_id: str) -> dict[str, Any]:
        snapshot = await self._store.get(session_id)
        if snapshot is None:
            raise SessionNotFoundError()
        return snapshot
