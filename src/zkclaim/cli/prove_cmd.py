"""zkclaim prove -- run the proof pipeline on a .eml export.

Usage:
    zkclaim prove reset.eml --to 0xabc... [--platform x] [--submit] [--json]

Exit codes:
    0  - Proof generated (and submitted, with --submit)
    1  - Any ClaimError; the message names the failing step
"""
from __future__ import annotations

import asyncio
import json
from pathlib import Path

import click

from zkclaim.errors import ClaimError
from zkclaim.models import PipelineState
from zkclaim.naming import FallbackResolver
from zkclaim.pipeline import ProofPipeline
from zkclaim.platforms import UnknownPlatformError, get_platform, proving_request_for


async def _prove(config: dict, eml: Path, platform_id: str, withdraw_to: str,
                 mode: str | None, submit: bool, on_state) -> ProofPipeline:
    address = await FallbackResolver.from_config(config).resolve_name_to_address(withdraw_to)
    if not address:
        raise SystemExit(f"Could not resolve withdraw address: {withdraw_to}")

    request = proving_request_for(
        config,
        platform_id,
        eml.read_bytes(),
        address,
        artifact_name=eml.name,
        proving_mode=mode,
    )
    pipeline = ProofPipeline.from_config(config, platform_id)
    pipeline.subscribe(on_state)
    await pipeline.run(request)
    if submit:
        await pipeline.submit()
    return pipeline


def _print_summary(state: PipelineState) -> None:
    from rich.console import Console
    from rich.table import Table

    console = Console()
    table = Table(show_header=False, box=None)
    table.add_row("phase", state.phase.value)
    table.add_row("step", state.current_step.value or "-")
    table.add_row("progress", f"{state.progress_percent}%")
    if state.proof_result is not None:
        table.add_row("proof", f"generated ({state.proof_result.mode.value})")
    if state.submission_result is not None:
        sub = state.submission_result
        table.add_row("user op", sub.relay_operation_id)
        table.add_row("tx", sub.transaction_hash)
        table.add_row("account", sub.account_address)
    console.print(table)


@click.command("prove")
@click.argument("eml", type=click.Path(exists=True, dir_okay=False))
@click.option("--to", "withdraw_to", required=True, help="Withdraw address or ENS name")
@click.option("--platform", "-p", "platform_id", default="x", show_default=True,
              help="Platform the email comes from")
@click.option("--mode", type=click.Choice(["local", "remote"]), default=None,
              help="Override the platform's proving mode")
@click.option("--submit", is_flag=True, help="Submit the proof through the relay")
@click.option("--json", "as_json", is_flag=True, help="Print the final state as JSON")
@click.pass_context
def prove_command(ctx: click.Context, eml: str, withdraw_to: str, platform_id: str,
                  mode: str | None, submit: bool, as_json: bool) -> None:
    """Generate a proof of account ownership from EML."""
    config = ctx.obj["config"]
    try:
        platform = get_platform(config, platform_id)
    except UnknownPlatformError as e:
        raise SystemExit(str(e.args[0]))
    if platform.get("coming_soon"):
        raise SystemExit(f"{platform['name']} is not available yet")

    progress = None
    task_id = None
    if not as_json:
        from rich.console import Console
        from rich.progress import BarColumn, Progress, TextColumn

        progress = Progress(
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            console=Console(stderr=True),
            transient=True,
        )
        task_id = progress.add_task("starting", total=100)

    def on_state(state: PipelineState) -> None:
        if progress is not None:
            progress.update(task_id, completed=state.progress_percent,
                            description=state.current_step.value or "starting")

    try:
        if progress is not None:
            with progress:
                pipeline = asyncio.run(
                    _prove(config, Path(eml), platform_id, withdraw_to, mode, submit, on_state)
                )
        else:
            pipeline = asyncio.run(
                _prove(config, Path(eml), platform_id, withdraw_to, mode, submit, on_state)
            )
    except ClaimError as e:
        if as_json:
            click.echo(json.dumps({"error": e.to_dict()}, indent=2))
        raise SystemExit(f"Error [{e.kind}]: {e}")

    if as_json:
        click.echo(json.dumps(pipeline.state.to_dict(), indent=2))
    else:
        _print_summary(pipeline.state)
