"""Shared abstractions for telephony call-control providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Leg(str, Enum):
    A = "A"
    B = "B"


class EventType(str, Enum):
    """Canonical webhook event types understood by the orchestrator."""

    INITIATED = "initiated"
    ANSWERED = "answered"
    BRIDGED = "bridged"
    HANGUP = "hangup"


@dataclass(frozen=True)
class ProviderEvent:
    """Provider-independent view of one webhook notification."""

    type: EventType
    leg: Leg | None
    id: str | None = None
    to: str | None = None
    from_number: str | None = None
    call_control_id: str | None = None
    session_id: str | None = None
    cause: str | None = None
    raw: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class DialRequest:
    to: str
    from_number: str
    session_id: str
    leg: Leg
    command_id: str | None = None


@dataclass(frozen=True)
class DialResult:
    accepted: bool
    raw_response: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class BridgeRequest:
    leg_a_call_id: str
    leg_b_call_id: str


@dataclass(frozen=True)
class WebRTCTokenRequest:
    credential_id: str | None = None
    identity: str | None = None
    display_name: str | None = None


@dataclass(frozen=True)
class WebRTCTokenResult:
    token: str


class CallProvider(ABC):
    """Abstract base class for telephony vendors.

    Session and leg correlation is owned by the orchestrator: ``dial`` must
    attach the correlation token for ``(session_id, leg)`` so that it is echoed
    back on every webhook for that call, and ``parse_event`` must decode it.
    """

    name: str = ""

    @property
    @abstractmethod
    def from_number(self) -> str:
        """Own trunk number used as caller id for every outbound leg."""

    @abstractmethod
    async def dial(self, request: DialRequest) -> DialResult:
        """Place an outbound call. Raises ``ProviderError`` on failure."""

    @abstractmethod
    async def bridge(self, request: BridgeRequest) -> None:
        """Join two live call-control legs into one audio path."""

    @abstractmethod
    async def create_webrtc_token(self, request: WebRTCTokenRequest) -> WebRTCTokenResult:
        """Issue a browser authentication token."""

    @abstractmethod
    def verify_signature(self, raw_body: bytes, headers: Mapping[str, str]) -> bool:
        """Authenticate an inbound webhook. Never raises."""

    @abstractmethod
    def parse_event(self, envelope: Any) -> ProviderEvent | None:
        """Map a vendor payload to a ``ProviderEvent``; None if unrecognized."""
