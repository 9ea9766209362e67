"""Input validation for proving requests.

An artifact is accepted when it looks like an RFC 5322 email export (.eml):
UTF-8 text whose header block carries at least a From header and is
separated from the body by a blank line. Anything else is rejected before
any progress is reported.
"""
from __future__ import annotations

from email import policy
from email.parser import BytesHeaderParser

from zkclaim.errors import EmptyCommandError, InvalidArtifactError, MissingEndpointError
from zkclaim.models import ProvingRequest

EML_SUFFIX = ".eml"
REQUIRED_HEADERS = ("From",)


def validate_artifact(artifact: bytes, name: str | None = None) -> None:
    """Raise InvalidArtifactError unless `artifact` is a well-formed email export."""
    if name is not None and not name.lower().endswith(EML_SUFFIX):
        raise InvalidArtifactError("File must be a .eml email export")
    if not artifact or not artifact.strip():
        raise InvalidArtifactError("Please choose a .eml file")

    try:
        artifact.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidArtifactError(
            f"Email export is not valid UTF-8 (byte {e.start})"
        ) from e

    # A header block must be terminated by an empty line before the body.
    normalized = artifact.replace(b"\r\n", b"\n")
    if b"\n\n" not in normalized:
        raise InvalidArtifactError("Artifact is not an email export (no header block)")

    head = normalized.split(b"\n", 1)[0]
    if b":" not in head and not head.startswith(b"From "):
        raise InvalidArtifactError("Artifact is not an email export (malformed first header)")

    message = BytesHeaderParser(policy=policy.compat32).parsebytes(artifact)
    if message.defects:
        raise InvalidArtifactError(
            f"Artifact is not an email export ({type(message.defects[0]).__name__})"
        )
    missing = [h for h in REQUIRED_HEADERS if message.get(h) is None]
    if missing:
        raise InvalidArtifactError(
            f"Email export is missing required header(s): {', '.join(missing)}"
        )


def validate_command(command_text: str | None) -> str:
    """Return the trimmed command, or raise EmptyCommandError."""
    value = str(command_text or "").strip()
    if not value:
        raise EmptyCommandError("Command is required")
    return value


def validate_request(request: ProvingRequest) -> None:
    """Run every input check for `request`. No side effects."""
    validate_artifact(request.artifact_bytes, request.artifact_name)
    validate_command(request.command_text)
    if request.is_remote and not (request.remote_endpoint or "").strip():
        raise MissingEndpointError("Remote proving URL is required for remote proving")
