"""Domain-specific exceptions for call-bridge operations.

These exceptions are safe to import from provider and API layers without
pulling in the orchestration core.
"""

from __future__ import annotations


class BridgeError(Exception):
    status_code: int = 500
    default_detail: str = "Bridge error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class ValidationError(BridgeError):
    status_code = 400
    default_detail = "Invalid request."


class SignatureError(BridgeError):
    status_code = 400
    default_detail = "invalid signature"


class ProviderError(BridgeError):
    """An outbound provider API call failed."""

    status_code = 502
    default_detail = "Provider request failed."

    def __init__(self, detail: str | None = None, *, provider_status: int | None = None) -> None:
        super().__init__(detail)
        self.provider_status = provider_status


class CorrelationError(BridgeError):
    """Event cannot be tied to a known session, leg or call id.

    Always acknowledged to the provider; never surfaced to a caller.
    """

    status_code = 200
    default_detail = "Event could not be correlated."


class SessionNotFoundError(BridgeError):
    status_code = 404
    default_detail = "Session not found."
