"""zkclaim auth-url / callback - the email-access handshake from a terminal.

Usage:
    zkclaim auth-url -p x --to 0xabc... [--handle @alice]
    zkclaim callback --proof-id abc123
    zkclaim callback --error access_denied
"""
from __future__ import annotations

import json

import click

from zkclaim.handshake.callback import SessionStore, handle_callback, pop_auth_credential
from zkclaim.platforms import UnknownPlatformError, build_auth_url

SESSION_FILENAME = "session.json"


def _session_store(ctx: click.Context) -> SessionStore:
    return SessionStore(ctx.obj["workspace"] / ".zkclaim" / SESSION_FILENAME)


@click.command("auth-url")
@click.option("--platform", "-p", "platform_id", default="x", show_default=True)
@click.option("--to", "withdraw_address", default=None, help="Withdraw address bound into the command")
@click.option("--handle", default=None, help="Social handle hint passed to the backend")
@click.pass_context
def auth_url_command(ctx: click.Context, platform_id: str, withdraw_address: str | None,
                     handle: str | None) -> None:
    """Print the OAuth start URL for PLATFORM."""
    try:
        url = build_auth_url(
            ctx.obj["config"], platform_id, handle=handle, withdraw_address=withdraw_address
        )
    except UnknownPlatformError as e:
        raise SystemExit(str(e.args[0]))
    click.echo(url)


@click.command("callback")
@click.option("--proof-id", default=None, help="proofId query value from the provider redirect")
@click.option("--error", "error", default=None, help="error query value from the provider redirect")
@click.option("--consume", is_flag=True, help="Print and clear the stored credential instead")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def callback_command(ctx: click.Context, proof_id: str | None, error: str | None,
                     consume: bool, as_json: bool) -> None:
    """Handle a provider redirect as a top-level navigation.

    The credential is stored in the workspace session file and the claim
    page redirect is printed.
    """
    store = _session_store(ctx)
    if consume:
        credential = pop_auth_credential(store)
        if credential is None:
            raise SystemExit("No stored credential")
        click.echo(credential)
        return

    params = {}
    if proof_id:
        params["proofId"] = proof_id
    if error:
        params["error"] = error
    result = handle_callback(params, origin=ctx.obj["config"]["origin"], store=store)

    if as_json:
        click.echo(json.dumps({
            "redirect": result.redirect,
            "credential": result.credential,
            "error": result.error,
        }, indent=2))
        return
    click.echo(result.redirect)
    if result.error:
        raise SystemExit(1)
