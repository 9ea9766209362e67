"""In-memory stand-ins for the HTTP, engine and relay boundaries."""
from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

from zkclaim.http import HttpResponse

SAMPLE_EML = (
    b"From: X <info@x.com>\r\n"
    b"To: alice@example.com\r\n"
    b"Subject: Password reset request\r\n"
    b"Date: Mon, 1 Jan 2024 00:00:00 +0000\r\n"
    b"\r\n"
    b"Reset your password for @alice_b.\r\n"
)

WITHDRAW_ADDRESS = "0x52908400098527886E0F7030069857D2E4169EE7"
COMMAND = f"Withdraw all eth to {WITHDRAW_ADDRESS}"

REMOTE_PROOF = {
    "proof": {
        "props": {
            "proofData": "abcd",
            "publicOutputs": ["01", "0x02"],
        }
    }
}


class FakePoster:
    """Async stand-in for zkclaim.http.post_json that records its calls."""

    def __init__(self, status: int = 200, body=None, gate: asyncio.Event | None = None):
        self.status = status
        self.body = json.dumps(REMOTE_PROOF) if body is None else body
        self.gate = gate
        self.calls: list[tuple[str, dict, float]] = []

    async def __call__(self, url, payload, *, timeout=120.0) -> HttpResponse:
        self.calls.append((url, payload, timeout))
        if self.gate is not None:
            await self.gate.wait()
        body = self.body if isinstance(self.body, str) else json.dumps(self.body)
        return HttpResponse(status=self.status, body=body)


class FakeEngine:
    """Engine module exposing load_engine() with a scripted call chain."""

    def __init__(self, fail_at: str | None = None):
        self.fail_at = fail_at
        self.calls: list[str] = []
        self.environment = None

    def _call(self, name: str, value):
        self.calls.append(name)
        if name == self.fail_at:
            raise RuntimeError(f"{name} exploded")
        return value

    def load_engine(self, environment):
        self.environment = environment
        engine = self

        blueprint = SimpleNamespace(
            create_prover=lambda options: engine._call("create_prover", prover),
            verify_proof=lambda proof, aux: engine._call("verify_proof", True),
        )
        prover = SimpleNamespace(
            generate_proof=lambda text, inputs, aux: engine._call(
                "generate_proof",
                SimpleNamespace(props={"proofData": "beef", "publicOutputs": ["01"]},
                                inputs=inputs),
            ),
        )
        sdk = SimpleNamespace(get_blueprint=lambda bp: engine._call("get_blueprint", blueprint))
        return SimpleNamespace(
            init=lambda options: engine._call("init", sdk),
            init_aux_runtime=lambda: engine._call("init_aux_runtime", object()),
        )


class FakeRelay:
    def __init__(self, receipt=None, error: Exception | None = None, delay: float = 0.0):
        self.receipt = receipt or {
            "userOpHash": "0xop",
            "transactionHash": "0xtx",
            "accountAddress": "0xaccount",
        }
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, list, str]] = []

    async def submit_proof(self, proof_data, public_outputs, contract_address):
        self.calls.append((proof_data, list(public_outputs), contract_address))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.receipt
