"""In-memory session model for one bridge attempt."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from providers.base import Leg


class LegStatus(str, Enum):
    DIALING = "dialing"
    ANSWERED = "answered"
    BRIDGED = "bridged"
    ENDED = "ended"


class SessionStatus(str, Enum):
    CREATED = "created"
    A_DIALING = "a_dialing"
    A_ANSWERED = "a_answered"
    B_DIALING = "b_dialing"
    BRIDGED = "bridged"
    ENDED = "ended"


@dataclass
class LegState:
    status: LegStatus = LegStatus.DIALING
    provider_call_id: str | None = None
    dial_command_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider_call_id": self.provider_call_id,
            "status": self.status.value,
            "dial_command_id": self.dial_command_id,
        }


@dataclass
class Session:
    session_id: str
    provider: str
    from_phone: str
    to_phone: str
    leg_a: LegState = field(default_factory=LegState)
    leg_b: LegState = field(default_factory=LegState)
    status: SessionStatus = SessionStatus.CREATED

    @property
    def is_terminal(self) -> bool:
        return self.status is SessionStatus.ENDED

    def leg(self, leg: Leg) -> LegState:
        return self.leg_a if leg is Leg.A else self.leg_b

    def to_dict(self) -> dict[str, Any]:
        """Detached snapshot safe to hand to subscribers and API callers."""

        return {
            "session_id": self.session_id,
            "provider": self.provider,
            "from_phone": self.from_phone,
            "to_phone": self.to_phone,
            "leg_a": self.leg_a.to_dict(),
            "leg_b": self.leg_b.to_dict(),
            "status": self.status.value,
        }


def dial_command_id(session_id: str, leg: Leg) -> str:
    """Stable idempotency token for the single dial of ``leg``."""

    return f"dial:{session_id}:{leg.value}:1"
