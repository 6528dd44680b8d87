"""Session state machine driving the two legs of a bridge.

Transitions are selected by ``(event type, leg, session status)``. Every other
combination is a no-op, which keeps the machine robust against out-of-order
and repeated provider deliveries. ``ended`` is absorbing.
"""

from __future__ import annotations

import logging

from bridge.errors import CorrelationError, ProviderError
from bridge.events import SessionEventBus
from bridge.models import LegStatus, Session, SessionStatus, dial_command_id
from providers.base import BridgeRequest, CallProvider, DialRequest, EventType, Leg, ProviderEvent

LOGGER = logging.getLogger(__name__)

POST_ANSWER_A = frozenset({SessionStatus.A_ANSWERED, SessionStatus.B_DIALING})


class SessionStateMachine:
    """Applies canonical events to a session held under its store lock."""

    def __init__(self, provider: CallProvider, bus: SessionEventBus) -> None:
        self._provider = provider
        self._bus = bus

    async def apply(self, session: Session, event: ProviderEvent) -> bool:
        """Apply ``event`` to ``session``.

        Returns True when the session changed (and was published). Raises
        ``CorrelationError`` when the event does not belong to the leg it claims.
        """

        if session.is_terminal:
            LOGGER.info(
                "Ignoring event on ended session session=%s event=%s leg=%s event_id=%s",
                session.session_id,
                event.type.value,
                _leg_name(event.leg),
                event.id,
            )
            return False
        if event.leg is None:
            raise CorrelationError("Event carries no leg.")

        if event.type is EventType.INITIATED:
            return self._on_initiated(session, event)
        if event.type is EventType.ANSWERED and event.leg is Leg.A:
            return await self._on_a_answered(session, event)
        if event.type is EventType.ANSWERED and event.leg is Leg.B:
            return await self._on_b_answered(session, event)
        if event.type is EventType.BRIDGED:
            return self._on_bridged(session, event)
        if event.type is EventType.HANGUP:
            return self._on_hangup(session, event)
        return False

    def _publish(self, session: Session) -> None:
        update = self._bus.publish(session.session_id, session)
        LOGGER.debug("Published session=%s seq=%s status=%s", session.session_id, update.seq, session.status.value)

    def _on_initiated(self, session: Session, event: ProviderEvent) -> bool:
        if not event.call_control_id:
            raise CorrelationError("Initiated event without call control id.")

        leg = session.leg(event.leg)
        leg.provider_call_id = event.call_control_id
        leg.status = LegStatus.DIALING
        session.status = SessionStatus.A_DIALING if event.leg is Leg.A else SessionStatus.B_DIALING
        LOGGER.info(
            "%s leg initiated session=%s call_control_id=%s to=%s",
            event.leg.value,
            session.session_id,
            event.call_control_id,
            event.to,
        )
        self._publish(session)
        return True

    async def _on_a_answered(self, session: Session, event: ProviderEvent) -> bool:
        leg_a = session.leg_a
        LOGGER.info(
            "A answered session=%s status=%s call_control_id=%s expected_call_control_id=%s to=%s expected_to=%s",
            session.session_id,
            session.status.value,
            event.call_control_id,
            leg_a.provider_call_id,
            event.to,
            session.from_phone,
        )
        if session.status is not SessionStatus.A_DIALING:
            return False
        if not leg_a.provider_call_id or event.call_control_id != leg_a.provider_call_id:
            raise CorrelationError("A answered for a call id that is not leg A's.")
        if event.to != session.from_phone:
            raise CorrelationError("A answered for an unexpected destination.")

        previous = (leg_a.status, session.status)
        leg_a.status = LegStatus.ANSWERED
        session.status = SessionStatus.A_ANSWERED

        leg_b = session.leg_b
        if leg_b.dial_command_id is None:
            leg_b.dial_command_id = dial_command_id(session.session_id, Leg.B)

        request = DialRequest(
            to=session.to_phone,
            from_number=self._provider.from_number,
            session_id=session.session_id,
            leg=Leg.B,
            command_id=leg_b.dial_command_id,
        )
        LOGGER.info(
            "Dialing B session=%s to=%s from=%s command_id=%s",
            session.session_id,
            request.to,
            request.from_number,
            request.command_id,
        )
        try:
            result = await self._provider.dial(request)
            if not result.accepted:
                raise ProviderError("Provider did not accept the B dial.")
        except Exception as exc:
            leg_a.status, session.status = previous
            LOGGER.error("Dialing B failed session=%s command_id=%s: %s", session.session_id, request.command_id, exc)
            if not isinstance(exc, ProviderError):
                raise
            return False

        session.status = SessionStatus.B_DIALING
        self._publish(session)
        return True

    async def _on_b_answered(self, session: Session, event: ProviderEvent) -> bool:
        leg_a, leg_b = session.leg_a, session.leg_b
        LOGGER.info(
            "B answered session=%s status=%s call_control_id=%s a_call_control_id=%s b_call_control_id=%s to=%s",
            session.session_id,
            session.status.value,
            event.call_control_id,
            leg_a.provider_call_id,
            leg_b.provider_call_id,
            event.to,
        )
        if session.status not in POST_ANSWER_A:
            return False
        if not leg_a.provider_call_id or not leg_b.provider_call_id:
            # Reordered delivery: wait for both initiated events.
            LOGGER.info("B answered before both call ids are known session=%s; waiting", session.session_id)
            return False
        if event.call_control_id != leg_b.provider_call_id:
            raise CorrelationError("B answered for a call id that is not leg B's.")
        if event.to != session.to_phone:
            raise CorrelationError("B answered for an unexpected destination.")

        previous = leg_b.status
        leg_b.status = LegStatus.ANSWERED
        LOGGER.info(
            "Bridging A <-> B session=%s a=%s b=%s",
            session.session_id,
            leg_a.provider_call_id,
            leg_b.provider_call_id,
        )
        try:
            await self._provider.bridge(
                BridgeRequest(leg_a_call_id=leg_a.provider_call_id, leg_b_call_id=leg_b.provider_call_id)
            )
        except Exception as exc:
            leg_b.status = previous
            LOGGER.error("Bridge failed session=%s: %s", session.session_id, exc)
            if not isinstance(exc, ProviderError):
                raise
            return False

        leg_a.status = LegStatus.BRIDGED
        leg_b.status = LegStatus.BRIDGED
        session.status = SessionStatus.BRIDGED
        LOGGER.info("Bridge complete session=%s", session.session_id)
        self._publish(session)
        return True

    def _on_bridged(self, session: Session, event: ProviderEvent) -> bool:
        session.leg(event.leg).status = LegStatus.BRIDGED
        session.status = SessionStatus.BRIDGED
        LOGGER.info("Bridged (provider confirmation) session=%s leg=%s", session.session_id, event.leg.value)
        self._publish(session)
        return True

    def _on_hangup(self, session: Session, event: ProviderEvent) -> bool:
        session.status = SessionStatus.ENDED
        for leg in (session.leg_a, session.leg_b):
            if leg.status is LegStatus.BRIDGED:
                leg.status = LegStatus.ENDED
        LOGGER.info(
            "Hangup session=%s leg=%s call_control_id=%s cause=%s",
            session.session_id,
            event.leg.value,
            event.call_control_id,
            event.cause,
        )
        self._publish(session)
        return True


def _leg_name(leg: Leg | None) -> str:
    return leg.value if leg is not None else "-"
