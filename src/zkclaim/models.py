"""Data model for the proof and submission pipeline.

All records here are frozen dataclasses. The pipeline publishes a new
PipelineState for every transition instead of mutating the current one, so a
reader always sees a consistent snapshot.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from zkclaim.errors import ClaimError


class ProvingMode(Enum):
    LOCAL = "local"
    REMOTE = "remote"

    @classmethod
    def parse(cls, value: "str | ProvingMode") -> "ProvingMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid proving mode '{value}'. "
                f"Must be one of: {', '.join(m.value for m in cls)}"
            ) from None


class Step(Enum):
    """Ordered step tokens reported while a run or submission is in flight."""

    IDLE = ""
    READ_ARTIFACT = "read-artifact"

    # Local strategy
    LOAD_ENGINE = "load-engine"
    INIT_ENGINE = "init-engine"
    FETCH_BLUEPRINT = "fetch-blueprint"
    CREATE_PROVER = "create-prover"
    INIT_AUX_RUNTIME = "init-aux-runtime"
    GENERATE_PROOF = "generate-proof"
    VERIFY_PROOF = "verify-proof"

    # Remote strategy
    SEND_REMOTE = "send-remote"
    REMOTE_GENERATE = "remote-generate"
    PROCESS_RESPONSE = "process-response"

    # Submission
    SUBMIT_ONCHAIN = "submit-onchain"
    SUBMIT_COMPLETE = "submit-complete"
    SUBMIT_FAILED = "submit-failed"

    def __str__(self) -> str:
        return self.value


# Fixed monotonic progress schedule. 100 is only published on success.
LOCAL_SCHEDULE: dict[Step, int] = {
    Step.READ_ARTIFACT: 5,
    Step.LOAD_ENGINE: 10,
    Step.INIT_ENGINE: 20,
    Step.FETCH_BLUEPRINT: 30,
    Step.CREATE_PROVER: 40,
    Step.INIT_AUX_RUNTIME: 50,
    Step.GENERATE_PROOF: 60,
    Step.VERIFY_PROOF: 90,
}

REMOTE_SCHEDULE: dict[Step, int] = {
    Step.READ_ARTIFACT: 5,
    Step.SEND_REMOTE: 20,
    Step.REMOTE_GENERATE: 40,
    Step.PROCESS_RESPONSE: 80,
}

COMPLETE_PERCENT = 100


class Phase(Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ProvingRequest:
    """One proof request. Immutable once created."""

    artifact_bytes: bytes
    command_text: str
    blueprint_id: str
    proving_mode: ProvingMode = ProvingMode.LOCAL
    remote_endpoint: str | None = None
    artifact_name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "proving_mode", ProvingMode.parse(self.proving_mode))
        if isinstance(self.artifact_bytes, str):
            object.__setattr__(self, "artifact_bytes", self.artifact_bytes.encode("utf-8"))

    @property
    def command(self) -> str:
        return (self.command_text or "").strip()

    @property
    def is_remote(self) -> bool:
        return self.proving_mode is ProvingMode.REMOTE

    def artifact_text(self) -> str:
        return self.artifact_bytes.decode("utf-8")


@dataclass(frozen=True)
class ProofResult:
    """Opaque proof payload plus the off-chain verification outcome, if any.

    `verification` is None on the remote path: acceptance by the remote
    service stands in for local verification.
    """

    proof: Any
    verification: Any = None
    mode: ProvingMode = ProvingMode.LOCAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "proof": _jsonable(self.proof),
            "verification": _jsonable(self.verification),
        }


@dataclass(frozen=True)
class SubmissionResult:
    relay_operation_id: str
    transaction_hash: str
    account_address: str

    def to_dict(self) -> dict[str, str]:
        return {
            "relay_operation_id": self.relay_operation_id,
            "transaction_hash": self.transaction_hash,
            "account_address": self.account_address,
        }


@dataclass(frozen=True)
class PipelineState:
    """Snapshot of one pipeline. Readers must treat it as read-only."""

    phase: Phase = Phase.IDLE
    current_step: Step = Step.IDLE
    progress_percent: int = 0
    proof_result: ProofResult | None = None
    submission_result: SubmissionResult | None = None
    last_error: ClaimError | None = None
    submitting: bool = False

    @property
    def is_running(self) -> bool:
        return self.phase is Phase.RUNNING

    def evolve(self, **changes: Any) -> "PipelineState":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "current_step": self.current_step.value,
            "progress_percent": self.progress_percent,
            "proof_result": self.proof_result.to_dict() if self.proof_result else None,
            "submission_result": (
                self.submission_result.to_dict() if self.submission_result else None
            ),
            "last_error": self.last_error.to_dict() if self.last_error else None,
            "submitting": self.submitting,
        }


INITIAL_STATE = PipelineState()


def _jsonable(value: Any) -> Any:
    """Best-effort conversion of engine objects for JSON output."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, bytes):
        return "0x" + value.hex()
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return _jsonable(to_dict())
    props = getattr(value, "props", None)
    if props is not None:
        return {"props": _jsonable(props)}
    return repr(value)
