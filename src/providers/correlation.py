"""Correlation token carried through the provider on every call leg."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from providers.base import Leg


@dataclass(frozen=True)
class Correlation:
    session_id: str | None
    leg: Leg | None


def encode_correlation(session_id: str, leg: Leg) -> str:
    payload = json.dumps({"sessionId": session_id, "leg": leg.value}, separators=(",", ":"))
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode_correlation(token: Any) -> Correlation:
    """Decode a token echoed back by the provider.

    Undecodable input yields ``Correlation(None, None)`` rather than raising.
    """

    if not isinstance(token, str) or not token:
        return Correlation(None, None)
    try:
        data = json.loads(base64.b64decode(token, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return Correlation(None, None)
    if not isinstance(data, dict):
        return Correlation(None, None)

    session_id = data.get("sessionId")
    if not isinstance(session_id, str) or not session_id:
        session_id = None
    try:
        leg = Leg(data.get("leg"))
    except ValueError:
        leg = None
    return Correlation(session_id, leg)
