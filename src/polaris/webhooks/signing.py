# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""HMAC-SHA256 signing and verification of raw webhook bodies."""

from __future__ import annotations

import hashlib
import hmac
import re

from polaris.core.constants import SIGNATURE_PREFIX

# Exactly "sha256=" followed by a 64-character hex digest, nothing else.
_HEADER_RE = re.compile(r"sha256=([0-9a-fA-F]{64})")


def _compute_signature(payload_bytes: bytes, secret: str) -> str:
    """Compute HMAC-SHA256 signature for a payload."""
    return hmac.new(
        secret.encode("utf-8"),
        payload_bytes,
        hashlib.sha256,
    ).hexdigest()


def _as_bytes(raw_body: bytes | str) -> bytes:
    return raw_body.encode("utf-8") if isinstance(raw_body, str) else raw_body


def sign(raw_body: bytes | str, secret: str) -> str:
    """Return the ``X-Webhook-Signature`` header value for *raw_body*."""
    return f"{SIGNATURE_PREFIX}{_compute_signature(_as_bytes(raw_body), secret)}"


def verify(raw_body: bytes | str, header_value: str | None, secret: str | None) -> bool:
    """Check a signature header against *raw_body*.

    Fails closed: a missing secret, a missing or malformed header, and a
    digest mismatch all return False.  The digest comparison is
    constant-time.
    """
    if not secret or not header_value:
        return False

    match = _HEADER_RE.fullmatch(header_value)
    if match is None:
        return False

    expected = _compute_signature(_as_bytes(raw_body), secret)
    return hmac.compare_digest(expected, match.group(1).lower())
