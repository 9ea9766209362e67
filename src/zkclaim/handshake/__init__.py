"""zkclaim handshake -- out-of-band identity handshake in a secondary context."""

from .broker import HandshakeSession, HandshakeState, IdentityBroker
from .callback import CallbackResult, SessionStore, handle_callback, pop_auth_credential
from .channel import LocalMessageChannel
from .messages import AuthFailure, AuthSuccess, Envelope, is_same_origin, parse_auth_message
from .timers import AsyncioScheduler

__all__ = [
    "IdentityBroker",
    "HandshakeSession",
    "HandshakeState",
    "CallbackResult",
    "SessionStore",
    "handle_callback",
    "pop_auth_credential",
    "LocalMessageChannel",
    "AuthSuccess",
    "AuthFailure",
    "Envelope",
    "is_same_origin",
    "parse_auth_message",
    "AsyncioScheduler",
]
