"""Relay boundary: turn a proof into a sponsored on-chain operation.

The relay (signer creation, smart-account derivation, gas sponsorship,
bundler submission, receipt wait) is external. This module only defines the
call shape, extracts the submission inputs from a proof payload, and ships an
HTTP adapter for relay services that expose the same call over JSON.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

from zkclaim.http import TransportError, post_json

logger = logging.getLogger(__name__)


class RelayError(RuntimeError):
    """Raised by relay adapters when the relay rejects a submission."""


@dataclass(frozen=True)
class RelayReceipt:
    user_op_hash: str
    transaction_hash: str
    account_address: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RelayReceipt":
        try:
            return cls(
                user_op_hash=str(data["userOpHash"]),
                transaction_hash=str(data["transactionHash"]),
                account_address=str(data["accountAddress"]),
            )
        except KeyError as e:
            raise RelayError(f"Relay response is missing {e.args[0]!r}") from None


class Relay(Protocol):
    async def submit_proof(
        self,
        proof_data: str,
        public_outputs: Sequence[str],
        contract_address: str,
    ) -> RelayReceipt | Mapping[str, Any]: ...


def _hex(value: Any) -> str:
    text = value.hex() if isinstance(value, (bytes, bytearray)) else str(value)
    return text if text.startswith("0x") else f"0x{text}"


def _props(proof: Any) -> Mapping[str, Any] | None:
    if isinstance(proof, Mapping):
        if isinstance(proof.get("props"), Mapping):
            return proof["props"]
        if "proofData" in proof:
            return proof
        inner = proof.get("proof")
        if isinstance(inner, Mapping):
            return _props(inner)
        return None
    props = getattr(proof, "props", None)
    if isinstance(props, Mapping):
        return props
    if props is not None:
        return {
            "proofData": getattr(props, "proofData", None),
            "publicOutputs": getattr(props, "publicOutputs", None),
        }
    return None


def extract_submission_inputs(proof: Any) -> tuple[str, list[str]]:
    """Return (proofData, publicOutputs) as 0x-prefixed hex strings.

    Accepts the engine's proof object (`proof.props`), a mapping with a
    `props` key, a mapping with the fields at top level, or a remote response
    wrapping any of those under `proof`.
    """
    props = _props(proof)
    if not props or props.get("proofData") in (None, ""):
        raise ValueError("Proof payload has no proofData")
    outputs = props.get("publicOutputs")
    if outputs is None or isinstance(outputs, (str, bytes)):
        raise ValueError("Proof payload has no publicOutputs list")
    return _hex(props["proofData"]), [_hex(o) for o in outputs]


class HttpRelay:
    """Relay adapter that forwards the submission to a relay service over HTTP."""

    def __init__(self, url: str, *, timeout: float = 90.0):
        self.url = url
        self.timeout = timeout

    async def submit_proof(
        self,
        proof_data: str,
        public_outputs: Sequence[str],
        contract_address: str,
    ) -> RelayReceipt:
        payload = {
            "proofData": proof_data,
            "publicOutputs": list(public_outputs),
            "contractAddress": contract_address,
        }
        logger.info("Submitting proof to relay %s for %s", self.url, contract_address)
        try:
            response = await post_json(self.url, payload, timeout=self.timeout)
        except TransportError as e:
            raise RelayError(str(e)) from e
        if not response.ok:
            raise RelayError(f"Relay error: {response.status} - {response.body[:500]}")
        try:
            data = response.json()
        except ValueError as e:
            raise RelayError(f"Relay returned a non-JSON body: {e}") from e
        if not isinstance(data, Mapping):
            raise RelayError("Relay returned an unexpected payload")
        return RelayReceipt.from_mapping(data)
