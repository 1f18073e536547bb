"""Bearer token helpers.

The backend issues JWTs; the frontend only peeks at the payload to decide
what to show (e.g. the Admin link). Signatures are NOT verified here and the
decoded claims must never be used for authorization, which stays server-side.
"""

from __future__ import annotations

import base64
import binascii
import json


def decode_token_payload(token: str | None) -> dict:
    """Base64url-decode and parse the middle segment of a JWT."""
    parts = (token or "").split(".")
    if len(parts) < 2 or not parts[1]:
        raise ValueError("token has no payload segment")
    segment = parts[1]
    segment += "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(segment.encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, json.JSONDecodeError) as exc:
        raise ValueError("token payload is not valid base64url JSON") from exc
    if not isinstance(payload, dict):
        raise ValueError("token payload is not an object")
    return payload


def token_role(token: str | None) -> str:
    """Return the ``role`` claim for display, or an empty string."""
    try:
        payload = decode_token_payload(token)
    except ValueError:
        return ""
    role = payload.get("role")
    return role if isinstance(role, str) else ""
