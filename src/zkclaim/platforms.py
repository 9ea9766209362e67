"""Per-platform helpers: metadata lookup, OAuth start URL, withdraw command."""
from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

from zkclaim.models import ProvingMode, ProvingRequest


class UnknownPlatformError(KeyError):
    pass


def get_platform(config: dict, platform_id: str) -> dict[str, Any]:
    platforms = config.get("platforms", {})
    key = (platform_id or "").strip().lower()
    if key not in platforms:
        raise UnknownPlatformError(
            f"Unknown platform '{platform_id}'. Must be one of: {', '.join(sorted(platforms))}"
        )
    return {"id": key, **platforms[key]}


def withdraw_command(address: str | None) -> str:
    """Command bound into the proof as an external input."""
    return f"Withdraw all eth to {address}" if address else "withdraw"


def build_auth_url(
    config: dict,
    platform_id: str,
    *,
    handle: str | None = None,
    withdraw_address: str | None = None,
) -> str:
    """OAuth initiation URL on the backend for one platform."""
    platform = get_platform(config, platform_id)
    params = {
        "query": platform["gmail_query"],
        "blueprint": platform["blueprint"],
        "command": withdraw_command(withdraw_address),
    }
    if handle:
        params["handle"] = handle
    backend = str(config.get("backend_url", "")).rstrip("/")
    return f"{backend}/gmail/auth?{urlencode(params)}"


def proving_request_for(
    config: dict,
    platform_id: str,
    artifact: bytes,
    withdraw_address: str,
    *,
    artifact_name: str | None = None,
    proving_mode: str | ProvingMode | None = None,
) -> ProvingRequest:
    """Assemble a ProvingRequest from platform metadata."""
    platform = get_platform(config, platform_id)
    mode = ProvingMode.parse(proving_mode or platform.get("proving_mode", "local"))
    return ProvingRequest(
        artifact_bytes=artifact,
        command_text=withdraw_command(withdraw_address),
        blueprint_id=platform["blueprint"],
        proving_mode=mode,
        remote_endpoint=platform.get("remote_proving_url") if mode is ProvingMode.REMOTE else None,
        artifact_name=artifact_name,
    )
