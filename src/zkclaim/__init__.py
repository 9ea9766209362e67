"""zkclaim - claim funds sent to a social handle with a ZK email proof.

Submodules:
    pipeline   - Proof generation and on-chain submission state machine
    engine     - Local proving through a pluggable engine module
    remote     - Remote proving over HTTP
    relay      - Proof submission through a relay service
    handshake  - Out-of-band identity handshake (broker, callback surface)
    naming     - ENS name and handle resolution
    cli        - Command-line interface

Public API:
    from zkclaim import ProofPipeline, ProvingRequest, IdentityBroker
"""
from __future__ import annotations

from zkclaim.errors import ClaimError
from zkclaim.models import (
    INITIAL_STATE,
    Phase,
    PipelineState,
    ProofResult,
    ProvingMode,
    ProvingRequest,
    Step,
    SubmissionResult,
)
from zkclaim.pipeline import ProofPipeline
from zkclaim.relay import HttpRelay, Relay, RelayReceipt
from zkclaim.handshake import IdentityBroker, LocalMessageChannel, handle_callback


__all__ = [
    # Pipeline
    "ProofPipeline",
    "ProvingRequest",
    "ProvingMode",
    "ProofResult",
    "SubmissionResult",
    "PipelineState",
    "Phase",
    "Step",
    "INITIAL_STATE",
    "ClaimError",
    # Relay
    "Relay",
    "HttpRelay",
    "RelayReceipt",
    # Handshake
    "IdentityBroker",
    "LocalMessageChannel",
    "handle_callback",
]
