from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import pytest

from fakes import SAMPLE_EML, WITHDRAW_ADDRESS
from zkclaim.config import DEFAULT_CONFIG
from zkclaim.models import ProvingMode
from zkclaim.platforms import (
    UnknownPlatformError,
    build_auth_url,
    get_platform,
    proving_request_for,
    withdraw_command,
)


def test_withdraw_command() -> None:
    assert withdraw_command("0xabc") == "Withdraw all eth to 0xabc"
    assert withdraw_command(None) == "withdraw"


def test_unknown_platform() -> None:
    with pytest.raises(UnknownPlatformError):
        get_platform(DEFAULT_CONFIG, "myspace")


def test_auth_url_carries_query_blueprint_and_command() -> None:
    url = build_auth_url(DEFAULT_CONFIG, "x", handle="@alice", withdraw_address=WITHDRAW_ADDRESS)

    parts = urlsplit(url)
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == (
        "https://noir-prover.zk.email/gmail/auth"
    )
    params = parse_qs(parts.query)
    assert params["blueprint"] == ["benceharomi/x_handle@v1"]
    assert params["command"] == [f"Withdraw all eth to {WITHDRAW_ADDRESS}"]
    assert params["handle"] == ["@alice"]
    assert "password reset" in params["query"][0]


def test_proving_request_uses_platform_mode() -> None:
    remote = proving_request_for(DEFAULT_CONFIG, "discord", SAMPLE_EML, WITHDRAW_ADDRESS)
    assert remote.proving_mode is ProvingMode.REMOTE
    assert remote.remote_endpoint == "https://noir-prover.zk.email/prove"

    local = proving_request_for(DEFAULT_CONFIG, "x", SAMPLE_EML, WITHDRAW_ADDRESS)
    assert local.proving_mode is ProvingMode.LOCAL
    assert local.remote_endpoint is None
    assert local.command == f"Withdraw all eth to {WITHDRAW_ADDRESS}"


def test_proving_mode_override() -> None:
    request = proving_request_for(
        DEFAULT_CONFIG, "discord", SAMPLE_EML, WITHDRAW_ADDRESS, proving_mode="local"
    )
    assert request.proving_mode is ProvingMode.LOCAL
    assert request.remote_endpoint is None
