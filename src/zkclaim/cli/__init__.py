"""zkclaim CLI - prove account ownership from an email and claim on-chain.

Commands:
    prove     - Generate a proof from a .eml export (optionally submit it)
    auth-url  - Print the OAuth start URL for the email-access handshake
    callback  - Handle a provider redirect as a top-level navigation
    resolve   - Resolve an ENS name (or checksum an address)
"""
from __future__ import annotations

import logging
from pathlib import Path

import click

from zkclaim.config import load_config

from .auth_cmd import auth_url_command, callback_command
from .prove_cmd import prove_command
from .resolve_cmd import resolve_command


def _setup_logging(verbose: bool) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=verbose)],
        force=True,
    )


@click.group()
@click.version_option(version="0.1.0", prog_name="zkclaim")
@click.option(
    "--workspace", "-w",
    default=".",
    type=click.Path(exists=True, file_okay=False),
    show_default=True,
    help="Workspace containing .zkclaim/config.json",
)
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Config file path (default: ~/.zkclaim/config.json)")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, workspace: str, config_path: str | None, verbose: bool) -> None:
    """zkclaim - claim funds sent to your social handle with a ZK email proof.

    \b
    Quick start:
      zkclaim auth-url -p x --to 0xYourAddress
      zkclaim prove reset.eml -p x --to 0xYourAddress --submit
      zkclaim resolve alice.x.zkemail.eth
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ws = Path(workspace).resolve()
    ctx.obj["workspace"] = ws
    ctx.obj["config"] = load_config(Path(config_path) if config_path else None, workspace=ws)


cli.add_command(prove_command, name="prove")
cli.add_command(auth_url_command, name="auth-url")
cli.add_command(callback_command, name="callback")
cli.add_command(resolve_command, name="resolve")


def main() -> None:
    cli()


__all__ = ["cli", "main"]
