"""Error taxonomy for the claim pipeline and the identity handshake.

Every failure that reaches a caller is a ClaimError carrying:
    kind    - machine-distinguishable category ("input", "engine", "remote",
              "submission", "handshake", "busy")
    step    - step token where the failure happened, when there is one
    message - human-readable text (embeds the step token for diagnosis)
"""
from __future__ import annotations

from typing import Any


class ClaimError(Exception):
    """Base class for every error surfaced by zkclaim."""

    kind = "claim"

    def __init__(self, message: str, *, step: str | None = None):
        self.detail = message
        self.step = step
        super().__init__(self._format(message, step))

    @staticmethod
    def _format(message: str, step: str | None) -> str:
        if step:
            return f"{message} (at {step})"
        return message

    @property
    def message(self) -> str:
        return str(self)

    def at_step(self, step: str) -> "ClaimError":
        """Return the same error re-labelled with the step it surfaced at."""
        if self.step is None:
            self.step = step
            self.args = (self._format(self.detail, step),)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "step": self.step, "message": str(self)}


# Input errors: never retried, surfaced before any progress.

class InputError(ClaimError):
    kind = "input"


class InvalidArtifactError(InputError):
    """The artifact is not a recognizable email export."""


class EmptyCommandError(InputError):
    """The command text is empty after trimming."""


class MissingEndpointError(InputError):
    """Remote proving was requested without an endpoint."""


# Engine errors

class EngineError(ClaimError):
    """A local proof-engine call failed."""

    kind = "engine"


class EngineUnavailableError(EngineError):
    """No local proof engine module is configured or importable."""


# Remote proving

class RemoteProvingError(ClaimError):
    """The remote proving service failed or answered with something unusable."""

    kind = "remote"

    def __init__(self, message: str, *, status: int | None = None, body: str = "",
                 step: str | None = None):
        self.status = status
        self.body = body
        super().__init__(message, step=step)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["status"] = self.status
        data["body"] = self.body
        return data


# Submission errors: distinct from generation so a caller can retry submit()
# without regenerating the proof.

class SubmissionError(ClaimError):
    kind = "submission"


class NoProofError(SubmissionError):
    """submit() was called before a proof was generated."""


class SubmissionFailedError(SubmissionError):
    """The relay rejected or failed the sponsored submission."""

    def __init__(self, message: str, *, cause: BaseException | None = None,
                 step: str | None = None):
        self.cause = cause
        super().__init__(message, step=step)


class SubmissionTimeoutError(SubmissionError):
    """Finalization was not observed in time; the outcome is unknown."""

    def __init__(self, message: str, *, timeout: float, step: str | None = None):
        self.timeout = timeout
        super().__init__(message, step=step)


# Handshake errors

class HandshakeError(ClaimError):
    kind = "handshake"


class PopupBlockedError(HandshakeError):
    """The secondary context could not be opened."""


class UserCancelledError(HandshakeError):
    """The secondary context was closed before any completion message."""


class ProviderAuthError(HandshakeError):
    """The identity provider reported a failure."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Authentication failed: {reason}")


class HandshakeAbortedError(HandshakeError):
    """The broker was torn down by its owner before completion."""


class HandshakeBusyError(HandshakeError):
    """begin() was called while another session is still active."""


class PipelineBusyError(ClaimError):
    """run() or submit() was called while the same operation is in flight."""

    kind = "busy"


__all__ = [
    "ClaimError",
    "InputError",
    "InvalidArtifactError",
    "EmptyCommandError",
    "MissingEndpointError",
    "EngineError",
    "EngineUnavailableError",
    "RemoteProvingError",
    "SubmissionError",
    "NoProofError",
    "SubmissionFailedError",
    "SubmissionTimeoutError",
    "HandshakeError",
    "PopupBlockedError",
    "UserCancelledError",
    "ProviderAuthError",
    "HandshakeAbortedError",
    "HandshakeBusyError",
    "PipelineBusyError",
]
