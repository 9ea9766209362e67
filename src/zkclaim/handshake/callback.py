"""
Return-navigation surface for the identity provider redirect.

The provider redirects to this surface with `?proofId=...` or `?error=...`.

  - Inside a secondary context (an opener channel is available) the outcome
    is relayed to the opener as a handshake envelope and the context closes.
  - As a top-level navigation the outcome is persisted in the session store
    for the next page load and the caller is redirected to the claim page
    with a status query parameter.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Union
from urllib.parse import parse_qs, quote

from zkclaim.handshake.messages import AuthFailure, AuthSuccess, Envelope

logger = logging.getLogger(__name__)

CLAIM_PATH = "/claim"
AUTH_CREDENTIAL_KEY = "google_auth_proofId"


class Opener(Protocol):
    def post(self, envelope: Envelope) -> None: ...


@dataclass(frozen=True)
class CallbackResult:
    close_context: bool = False
    redirect: Optional[str] = None
    credential: Optional[str] = None
    error: Optional[str] = None


class SessionStore:
    """Per-session key/value store backed by one JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not read session store %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write atomically
        tmp_path = self.path.with_suffix(".tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(self.path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def pop(self, key: str, default: Any = None) -> Any:
        data = self._read()
        if key not in data:
            return default
        value = data.pop(key)
        self._write(data)
        return value


def pop_auth_credential(store: SessionStore) -> Optional[str]:
    """Consume the credential persisted by a top-level callback, if any."""
    return store.pop(AUTH_CREDENTIAL_KEY)


def _first(params: Mapping[str, Any], key: str) -> Optional[str]:
    value = params.get(key)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return str(value) if value else None


def handle_callback(
    params: Union[Mapping[str, Any], str],
    *,
    origin: str,
    opener: Optional[Opener] = None,
    store: Optional[SessionStore] = None,
) -> CallbackResult:
    """Route one provider redirect. `params` is a mapping or a raw query string."""
    if isinstance(params, str):
        params = parse_qs(params.lstrip("?"))
    error = _first(params, "error")
    proof_id = _first(params, "proofId")

    if error:
        if opener is not None:
            opener.post(Envelope(origin=origin, data=AuthFailure(error).to_payload()))
            return CallbackResult(close_context=True, error=error)
        return CallbackResult(redirect=f"{CLAIM_PATH}?error={quote(error, safe='')}", error=error)

    if proof_id:
        if opener is not None:
            opener.post(Envelope(origin=origin, data=AuthSuccess(proof_id).to_payload()))
            return CallbackResult(close_context=True, credential=proof_id)
        if store is not None:
            store.set(AUTH_CREDENTIAL_KEY, proof_id)
        else:
            logger.warning("No session store; credential will not survive the redirect")
        return CallbackResult(redirect=f"{CLAIM_PATH}?auth=success", credential=proof_id)

    logger.warning("Callback received neither proofId nor error")
    return CallbackResult(
        redirect=f"{CLAIM_PATH}?error=no_proof_id",
        error="No proof ID received from authentication",
    )
