from __future__ import annotations

import asyncio

import pytest

from zkclaim.errors import (
    HandshakeAbortedError,
    HandshakeBusyError,
    PopupBlockedError,
    ProviderAuthError,
    UserCancelledError,
)
from zkclaim.handshake import HandshakeState, IdentityBroker, LocalMessageChannel
from zkclaim.handshake.messages import AuthFailure, AuthSuccess, Envelope
from zkclaim.handshake.timers import AsyncioScheduler

ORIGIN = "http://localhost:5173"
AUTH_URL = "https://backend.test/gmail/auth?query=x"


class FakeContext:
    def __init__(self) -> None:
        self.closed = False
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True


class FakeHost:
    def __init__(self, blocked: bool = False) -> None:
        self.blocked = blocked
        self.opened: list[str] = []
        self.contexts: list[FakeContext] = []

    def open(self, url: str):
        self.opened.append(url)
        if self.blocked:
            return None
        context = FakeContext()
        self.contexts.append(context)
        return context


class FakeTimer:
    def __init__(self, callback) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock: tick() fires every live timer once."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def every(self, seconds, callback) -> FakeTimer:
        timer = FakeTimer(callback)
        self.timers.append(timer)
        return timer

    def tick(self) -> None:
        for timer in list(self.timers):
            if not timer.cancelled:
                timer.callback()


class Outcomes:
    def __init__(self) -> None:
        self.successes: list[str] = []
        self.failures: list = []

    @property
    def total(self) -> int:
        return len(self.successes) + len(self.failures)


@pytest.fixture
def rig():
    host = FakeHost()
    channel = LocalMessageChannel()
    scheduler = FakeScheduler()
    outcomes = Outcomes()
    broker = IdentityBroker(
        host,
        channel,
        ORIGIN,
        outcomes.successes.append,
        outcomes.failures.append,
        scheduler=scheduler,
    )
    return broker, host, channel, scheduler, outcomes


def _assert_released(host, channel, scheduler) -> None:
    assert host.contexts[-1].closed
    assert all(t.cancelled for t in scheduler.timers)
    assert channel.listener_count == 0


def test_success_message_delivers_credential(rig) -> None:
    broker, host, channel, scheduler, outcomes = rig
    broker.begin(AUTH_URL)
    assert host.opened == [AUTH_URL]
    assert broker.state is HandshakeState.AWAITING

    channel.post(Envelope(origin=ORIGIN, data=AuthSuccess("abc123").to_payload()))

    assert outcomes.successes == ["abc123"]
    assert outcomes.failures == []
    assert broker.state is HandshakeState.SUCCEEDED
    assert broker.session is None
    _assert_released(host, channel, scheduler)


def test_error_message_is_provider_auth_error(rig) -> None:
    broker, host, channel, scheduler, outcomes = rig
    broker.begin(AUTH_URL)

    channel.post(Envelope(origin=ORIGIN, data=AuthFailure("access_denied").to_payload()))

    assert outcomes.successes == []
    [error] = outcomes.failures
    assert isinstance(error, ProviderAuthError)
    assert str(error) == "Authentication failed: access_denied"
    _assert_released(host, channel, scheduler)


def test_closing_the_context_is_user_cancel(rig) -> None:
    broker, host, channel, scheduler, outcomes = rig
    broker.begin(AUTH_URL)

    scheduler.tick()
    assert outcomes.total == 0

    host.contexts[0].closed = True
    scheduler.tick()
    scheduler.tick()

    [error] = outcomes.failures
    assert isinstance(error, UserCancelledError)
    assert host.contexts[0].close_calls == 0
    assert all(t.cancelled for t in scheduler.timers)
    assert channel.listener_count == 0


def test_foreign_origin_and_unknown_payloads_are_ignored(rig) -> None:
    broker, host, channel, scheduler, outcomes = rig
    broker.begin(AUTH_URL)

    channel.post(Envelope(origin="https://evil.test", data=AuthSuccess("stolen").to_payload()))
    channel.post(Envelope(origin=ORIGIN, data={"type": "SOMETHING_ELSE"}))
    channel.post(Envelope(origin=ORIGIN, data={"type": "GOOGLE_AUTH_SUCCESS", "proofId": 7}))
    channel.post(Envelope(origin=ORIGIN, data="GOOGLE_AUTH_SUCCESS"))

    assert outcomes.total == 0
    assert broker.state is HandshakeState.AWAITING

    channel.post(Envelope(origin="http://LOCALHOST:5173/", data=AuthSuccess("ok").to_payload()))
    assert outcomes.successes == ["ok"]


def test_popup_blocked_fails_without_polling() -> None:
    host = FakeHost(blocked=True)
    channel = LocalMessageChannel()
    scheduler = FakeScheduler()
    outcomes = Outcomes()
    broker = IdentityBroker(host, channel, ORIGIN, outcomes.successes.append,
                            outcomes.failures.append, scheduler=scheduler)

    with pytest.raises(PopupBlockedError):
        broker.begin(AUTH_URL)

    [error] = outcomes.failures
    assert isinstance(error, PopupBlockedError)
    assert scheduler.timers == []
    assert channel.listener_count == 0
    assert broker.state is HandshakeState.FAILED


def test_teardown_aborts_once(rig) -> None:
    broker, host, channel, scheduler, outcomes = rig
    broker.begin(AUTH_URL)

    broker.teardown()
    broker.teardown()
    channel.post(Envelope(origin=ORIGIN, data=AuthSuccess("late").to_payload()))
    scheduler.tick()

    [error] = outcomes.failures
    assert isinstance(error, HandshakeAbortedError)
    assert outcomes.successes == []
    assert host.contexts[0].close_calls == 1
    _assert_released(host, channel, scheduler)


def test_teardown_without_session_is_noop(rig) -> None:
    broker, host, channel, scheduler, outcomes = rig
    broker.teardown()
    assert outcomes.total == 0


def test_second_message_after_completion_is_ignored(rig) -> None:
    broker, host, channel, scheduler, outcomes = rig
    broker.begin(AUTH_URL)

    channel.post(Envelope(origin=ORIGIN, data=AuthSuccess("first").to_payload()))
    channel.post(Envelope(origin=ORIGIN, data=AuthFailure("second").to_payload()))

    assert outcomes.successes == ["first"]
    assert outcomes.failures == []


def test_concurrent_begin_is_rejected_and_new_session_after_completion(rig) -> None:
    broker, host, channel, scheduler, outcomes = rig
    broker.begin(AUTH_URL)

    with pytest.raises(HandshakeBusyError):
        broker.begin(AUTH_URL)
    assert len(host.opened) == 1
    assert outcomes.total == 0

    channel.post(Envelope(origin=ORIGIN, data=AuthSuccess("one").to_payload()))
    session = broker.begin(AUTH_URL)
    assert session.context is host.contexts[1]
    channel.post(Envelope(origin=ORIGIN, data=AuthSuccess("two").to_payload()))
    assert outcomes.successes == ["one", "two"]


def test_asyncio_scheduler_detects_closed_context() -> None:
    async def scenario():
        host = FakeHost()
        outcomes = Outcomes()
        broker = IdentityBroker(host, LocalMessageChannel(), ORIGIN,
                                outcomes.successes.append, outcomes.failures.append,
                                scheduler=AsyncioScheduler(), poll_interval=0.01)
        broker.begin(AUTH_URL)
        host.contexts[0].closed = True
        for _ in range(50):
            if outcomes.total:
                break
            await asyncio.sleep(0.01)
        return outcomes

    outcomes = asyncio.run(scenario())
    assert len(outcomes.failures) == 1
    assert isinstance(outcomes.failures[0], UserCancelledError)


class ExplodingContext(FakeContext):
    def close(self) -> None:
        self.close_calls += 1
        raise RuntimeError("window already gone")


class ExplodingHost(FakeHost):
    def open(self, url: str):
        self.opened.append(url)
        context = ExplodingContext()
        self.contexts.append(context)
        return context


def test_failing_close_still_releases_and_calls_back() -> None:
    host = ExplodingHost()
    channel = LocalMessageChannel()
    scheduler = FakeScheduler()
    outcomes = Outcomes()
    broker = IdentityBroker(host, channel, ORIGIN, outcomes.successes.append,
                            outcomes.failures.append, scheduler=scheduler)
    broker.begin(AUTH_URL)

    channel.post(Envelope(origin=ORIGIN, data=AuthSuccess("abc123").to_payload()))

    assert outcomes.successes == ["abc123"]
    assert outcomes.failures == []
    assert host.contexts[0].close_calls == 1
    assert all(t.cancelled for t in scheduler.timers)
    assert channel.listener_count == 0
    assert broker.session is None

    scheduler.tick()
    assert outcomes.total == 1
