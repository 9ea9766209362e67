"""Identity handshake broker.

Opens a secondary context at the identity provider, waits for a completion
envelope on a same-origin message channel, and tears everything down exactly
once. Every begin() ends in exactly one of on_success / on_failure:

    success message          -> on_success(credential)
    failure message          -> on_failure(ProviderAuthError)
    context closed by user   -> on_failure(UserCancelledError)
    teardown() by the owner  -> on_failure(HandshakeAbortedError)
    context could not open   -> on_failure(PopupBlockedError), then raised

State machine: IDLE -> AWAITING -> {SUCCEEDED, FAILED}. A terminal state
destroys the session; a fresh begin() starts a new one.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Protocol, Union

from zkclaim.errors import (
    ClaimError,
    HandshakeAbortedError,
    HandshakeBusyError,
    PopupBlockedError,
    ProviderAuthError,
    UserCancelledError,
)
from zkclaim.handshake.channel import MessageChannel
from zkclaim.handshake.messages import (
    AuthFailure,
    AuthSuccess,
    Envelope,
    is_same_origin,
    parse_auth_message,
)
from zkclaim.handshake.timers import AsyncioScheduler, Scheduler, TimerHandle

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 1.0


class SecondaryContext(Protocol):
    @property
    def closed(self) -> bool: ...

    def close(self) -> None: ...


class ContextHost(Protocol):
    def open(self, url: str) -> SecondaryContext | None: ...


class HandshakeState(Enum):
    IDLE = "idle"
    AWAITING = "awaiting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class HandshakeSession:
    """One open handshake. Owned by the broker; callers only read it."""

    auth_url: str
    context: SecondaryContext
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    poll: TimerHandle | None = None
    unsubscribe: Callable[[], None] | None = None


Outcome = Union[AuthSuccess, ClaimError]


class IdentityBroker:
    def __init__(
        self,
        host: ContextHost,
        channel: MessageChannel,
        origin: str,
        on_success: Callable[[str], None],
        on_failure: Callable[[ClaimError], None],
        *,
        scheduler: Scheduler | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ):
        self._host = host
        self._channel = channel
        self.origin = origin
        self._on_success = on_success
        self._on_failure = on_failure
        self._scheduler = scheduler or AsyncioScheduler()
        self.poll_interval = poll_interval
        self._session: HandshakeSession | None = None
        self._state = HandshakeState.IDLE

    @property
    def state(self) -> HandshakeState:
        return self._state

    @property
    def session(self) -> HandshakeSession | None:
        return self._session

    def begin(self, auth_url: str) -> HandshakeSession:
        """Open the secondary context at `auth_url` and start waiting."""
        if self._session is not None:
            raise HandshakeBusyError("An identity handshake is already in progress")

        context = self._host.open(auth_url)
        if context is None:
            error = PopupBlockedError("Popup was blocked; allow popups and try again")
            logger.warning("Could not open secondary context for %s", auth_url)
            self._state = HandshakeState.FAILED
            self._on_failure(error)
            raise error

        session = HandshakeSession(auth_url=auth_url, context=context)
        self._session = session
        self._state = HandshakeState.AWAITING
        session.unsubscribe = self._channel.subscribe(self._handle_message)
        session.poll = self._scheduler.every(self.poll_interval, self._check_closed)
        logger.info("Handshake %s started", session.session_id)
        return session

    def teardown(self) -> None:
        """Abort the active session, if any. Idempotent."""
        session = self._session
        if session is None:
            return
        self._complete(session, HandshakeAbortedError("Handshake was torn down before completion"))

    def _handle_message(self, envelope: Envelope) -> None:
        session = self._session
        if session is None:
            return
        if not is_same_origin(envelope, self.origin):
            logger.debug("Ignoring message from foreign origin %s", envelope.origin)
            return
        message = parse_auth_message(envelope.data)
        if message is None:
            logger.debug("Ignoring unrecognized message %r", envelope.data)
            return
        if isinstance(message, AuthFailure):
            self._complete(session, ProviderAuthError(message.reason))
        else:
            self._complete(session, message)

    def _check_closed(self) -> None:
        session = self._session
        if session is None or not session.context.closed:
            return
        self._complete(session, UserCancelledError("Sign-in window was closed before completing"))

    def _complete(self, session: HandshakeSession, outcome: Outcome) -> None:
        if self._session is not session:
            return
        self._session = None
        try:
            if not session.context.closed:
                session.context.close()
        except Exception as e:
            logger.warning("Could not close secondary context for %s: %s", session.session_id, e)
        finally:
            if session.poll is not None:
                session.poll.cancel()
                session.poll = None
            if session.unsubscribe is not None:
                session.unsubscribe()
                session.unsubscribe = None

        if isinstance(outcome, AuthSuccess):
            self._state = HandshakeState.SUCCEEDED
            logger.info("Handshake %s succeeded", session.session_id)
            self._on_success(outcome.credential)
        else:
            self._state = HandshakeState.FAILED
            logger.info("Handshake %s failed: %s", session.session_id, outcome)
            self._on_failure(outcome)
