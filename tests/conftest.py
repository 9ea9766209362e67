"""Pytest fixtures shared by the zkclaim tests."""
from __future__ import annotations

import pytest

from fakes import COMMAND, SAMPLE_EML
from zkclaim.models import ProvingMode, ProvingRequest


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep user config and ZKCLAIM_* variables out of every test."""
    monkeypatch.setenv("ZKCLAIM_HOME", str(tmp_path / "home"))
    for name in (
        "ZKCLAIM_ORIGIN",
        "ZKCLAIM_BACKEND_URL",
        "ZKCLAIM_RPC_URL",
        "ZERODEV_RPC_URL",
        "ZKCLAIM_ENGINE_MODULE",
        "ZKCLAIM_CONDUCTOR_URL",
        "ZKCLAIM_RELAY_URL",
        "ZKCLAIM_SUBMISSION_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sample_eml() -> bytes:
    return SAMPLE_EML


@pytest.fixture
def local_request() -> ProvingRequest:
    return ProvingRequest(
        artifact_bytes=SAMPLE_EML,
        command_text=COMMAND,
        blueprint_id="benceharomi/x_handle@v1",
        artifact_name="reset.eml",
    )


@pytest.fixture
def remote_request() -> ProvingRequest:
    return ProvingRequest(
        artifact_bytes=SAMPLE_EML,
        command_text=COMMAND,
        blueprint_id="zkemail/discord@v1",
        proving_mode=ProvingMode.REMOTE,
        remote_endpoint="https://prover.test/prove",
        artifact_name="reset.eml",
    )
