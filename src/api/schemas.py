"""API-facing Pydantic models."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from bridge.service import is_e164


class BridgeCallRequest(BaseModel):
    from_phone: str = Field(description="E.164 number dialed first (leg A), e.g. +1555...")
    to_phone: str = Field(description="E.164 number dialed once leg A answers (leg B).")

    @field_validator("from_phone", "to_phone")
    @classmethod
    def must_be_e164(cls, value: str) -> str:
        value = value.strip()
        if not is_e164(value):
            raise ValueError("Must be an E.164 phone number, e.g. +15551234567.")
        return value


class BridgeCallResponse(BaseModel):
    session_id: str


class LegSnapshot(BaseModel):
    provider_call_id: str | None
    status: str
    dial_command_id: str | None


class SessionSnapshot(BaseModel):
    session_id: str
    provider: str
    from_phone: str
    to_phone: str
    leg_a: LegSnapshot
    leg_b: LegSnapshot
    status: str


class WebRTCTokenRequestBody(BaseModel):
    provider: str = Field(default="telnyx", description="Registered provider name.")
    identity: str | None = Field(default=None, description="Required by some providers, e.g. infobip.")
    display_name: str | None = Field(default=None)
    credential_id: str | None = Field(default=None, description="Overrides the configured Telnyx credential.")


class WebRTCTokenResponse(BaseModel):
    token: str
