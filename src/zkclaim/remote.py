"""Remote proving strategy: delegate proof generation to a proving service.

The service receives {rawEmail, blueprintSlug, command} as JSON and answers
with the proof. Any 2xx response whose body is a JSON object is accepted;
the object is kept opaque as the proof payload.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

from zkclaim.errors import RemoteProvingError
from zkclaim.http import HttpResponse, TransportError, post_json
from zkclaim.models import ProofResult, ProvingMode, ProvingRequest, Step

logger = logging.getLogger(__name__)

# Longest body excerpt kept on a RemoteProvingError.
MAX_ERROR_BODY = 2000

Poster = Callable[..., Awaitable[HttpResponse]]
StepHook = Callable[[Step], None]


def build_remote_payload(request: ProvingRequest) -> dict[str, str]:
    return {
        "rawEmail": request.artifact_text(),
        "blueprintSlug": request.blueprint_id,
        "command": request.command,
    }


def parse_remote_response(response: HttpResponse) -> dict[str, Any]:
    """Validate the service answer and return the proof object."""
    if not response.ok:
        raise RemoteProvingError(
            f"Server error: {response.status} - {response.body[:MAX_ERROR_BODY]}",
            status=response.status,
            body=response.body[:MAX_ERROR_BODY],
        )
    try:
        payload = json.loads(response.body)
    except json.JSONDecodeError as e:
        raise RemoteProvingError(
            f"Remote prover returned a non-JSON body: {e}",
            status=response.status,
            body=response.body[:MAX_ERROR_BODY],
        ) from e
    if not isinstance(payload, dict):
        raise RemoteProvingError(
            f"Remote prover returned {type(payload).__name__}, expected a JSON object",
            status=response.status,
            body=response.body[:MAX_ERROR_BODY],
        )
    return payload


class RemoteProver:
    """Runs the remote path: send-remote → remote-generate → process-response."""

    def __init__(self, poster: Poster | None = None, timeout: float = 300.0):
        self._post = poster or post_json
        self.timeout = timeout

    async def prove(self, request: ProvingRequest, on_step: StepHook) -> ProofResult:
        endpoint = request.remote_endpoint or ""
        on_step(Step.SEND_REMOTE)
        body = build_remote_payload(request)
        logger.info("Sending proof request to %s (blueprint %s)", endpoint, request.blueprint_id)

        on_step(Step.REMOTE_GENERATE)
        try:
            response = await self._post(endpoint, body, timeout=self.timeout)
        except TransportError as e:
            raise RemoteProvingError(str(e)) from e

        on_step(Step.PROCESS_RESPONSE)
        proof = parse_remote_response(response)
        logger.info("Remote proof generated")
        return ProofResult(proof=proof, verification=None, mode=ProvingMode.REMOTE)
