"""Ed25519 webhook signature verification."""

from __future__ import annotations

import base64
import binascii
import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

LOGGER = logging.getLogger(__name__)

SIGNATURE_LENGTH = 64


def _decode_signature(signature: str) -> bytes | None:
    try:
        raw = base64.b64decode(signature, validate=True)
        if len(raw) == SIGNATURE_LENGTH:
            return raw
    except (binascii.Error, ValueError):
        pass
    try:
        raw = bytes.fromhex(signature)
    except ValueError:
        return None
    return raw if len(raw) == SIGNATURE_LENGTH else None


def _load_public_key(public_key_b64: str) -> Ed25519PublicKey | None:
    try:
        return Ed25519PublicKey.from_public_bytes(base64.b64decode(public_key_b64, validate=True))
    except (binascii.Error, ValueError):
        return None


def verify_ed25519(raw_body: bytes, timestamp: str, signature: str, public_key_b64: str) -> bool:
    """Verify ``signature`` over ``timestamp|raw_body``.

    The signature may be base64 or hex encoded. Any missing or malformed input
    is a verification failure.
    """

    if not timestamp or not signature or not public_key_b64:
        return False

    sig = _decode_signature(signature.strip())
    if sig is None:
        LOGGER.debug("Signature header is neither base64 nor hex")
        return False

    key = _load_public_key(public_key_b64.strip())
    if key is None:
        LOGGER.warning("Configured webhook public key is not a valid Ed25519 key")
        return False

    message = timestamp.encode("utf-8") + b"|" + raw_body
    try:
        key.verify(sig, message)
    except InvalidSignature:
        return False
    return True
