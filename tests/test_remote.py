from __future__ import annotations

import asyncio

import pytest

from fakes import FakePoster
from zkclaim.errors import RemoteProvingError
from zkclaim.http import HttpResponse, TransportError
from zkclaim.models import ProvingMode, Step
from zkclaim.remote import MAX_ERROR_BODY, RemoteProver, parse_remote_response


def test_parse_accepts_json_object() -> None:
    assert parse_remote_response(HttpResponse(200, '{"proof": {}}')) == {"proof": {}}


def test_parse_rejects_non_object() -> None:
    with pytest.raises(RemoteProvingError, match="expected a JSON object"):
        parse_remote_response(HttpResponse(200, "[1, 2]"))


def test_parse_rejects_invalid_json() -> None:
    with pytest.raises(RemoteProvingError, match="non-JSON"):
        parse_remote_response(HttpResponse(200, "<html>"))


def test_server_error_body_is_truncated() -> None:
    with pytest.raises(RemoteProvingError) as exc_info:
        parse_remote_response(HttpResponse(502, "x" * (MAX_ERROR_BODY * 2)))
    assert exc_info.value.status == 502
    assert len(exc_info.value.body) == MAX_ERROR_BODY


def test_prove_reports_steps_and_returns_remote_result(remote_request) -> None:
    poster = FakePoster()
    prover = RemoteProver(poster=poster, timeout=42.0)
    steps: list[Step] = []

    result = asyncio.run(prover.prove(remote_request, steps.append))

    assert steps == [Step.SEND_REMOTE, Step.REMOTE_GENERATE, Step.PROCESS_RESPONSE]
    assert result.mode is ProvingMode.REMOTE
    assert result.verification is None
    assert poster.calls[0][2] == 42.0


def test_transport_failure_becomes_remote_error(remote_request) -> None:
    async def unreachable(url, payload, *, timeout):
        raise TransportError("connection refused")

    prover = RemoteProver(poster=unreachable)
    with pytest.raises(RemoteProvingError, match="connection refused"):
        asyncio.run(prover.prove(remote_request, lambda step: None))
