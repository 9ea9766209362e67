"""Message channel transport used between the broker and the callback surface."""
from __future__ import annotations

import logging
from typing import Callable, Protocol

from zkclaim.handshake.messages import Envelope

logger = logging.getLogger(__name__)

MessageListener = Callable[[Envelope], None]


class MessageChannel(Protocol):
    def subscribe(self, listener: MessageListener) -> Callable[[], None]: ...


class LocalMessageChannel:
    """Same-process pub/sub channel.

    post() delivers synchronously to every listener subscribed at the time of
    the call. Listener exceptions propagate to the poster.
    """

    def __init__(self) -> None:
        self._listeners: list[MessageListener] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: MessageListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def post(self, envelope: Envelope) -> None:
        logger.debug("message from %s: %r", envelope.origin, envelope.data)
        for listener in list(self._listeners):
            listener(envelope)
