"""Cross-context message contract for the identity handshake.

Accepted payloads are exactly:
    {"type": "GOOGLE_AUTH_SUCCESS", "proofId": <str>}
    {"type": "GOOGLE_AUTH_ERROR",   "error":   <str>}

Anything else parses to None and is ignored by the broker.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union
from urllib.parse import urlsplit

AUTH_SUCCESS = "GOOGLE_AUTH_SUCCESS"
AUTH_ERROR = "GOOGLE_AUTH_ERROR"

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class Envelope:
    """One structured message delivered across contexts."""

    origin: str
    data: Any


@dataclass(frozen=True)
class AuthSuccess:
    credential: str

    def to_payload(self) -> dict[str, str]:
        return {"type": AUTH_SUCCESS, "proofId": self.credential}


@dataclass(frozen=True)
class AuthFailure:
    reason: str

    def to_payload(self) -> dict[str, str]:
        return {"type": AUTH_ERROR, "error": self.reason}


AuthMessage = Union[AuthSuccess, AuthFailure]


def parse_auth_message(data: Any) -> AuthMessage | None:
    """Return the tagged message for an accepted payload, else None."""
    if not isinstance(data, dict):
        return None
    kind = data.get("type")
    if kind == AUTH_SUCCESS and set(data) == {"type", "proofId"}:
        credential = data["proofId"]
        if isinstance(credential, str):
            return AuthSuccess(credential)
    elif kind == AUTH_ERROR and set(data) == {"type", "error"}:
        reason = data["error"]
        if isinstance(reason, str):
            return AuthFailure(reason)
    return None


def normalize_origin(origin: str) -> str:
    """scheme://host[:port] in lowercase, with default ports dropped."""
    parts = urlsplit((origin or "").strip())
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if not scheme or not host:
        return ""
    try:
        port = parts.port
    except ValueError:
        return ""
    if port is None or _DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def is_same_origin(envelope: Envelope, origin: str) -> bool:
    expected = normalize_origin(origin)
    return bool(expected) and normalize_origin(envelope.origin) == expected
