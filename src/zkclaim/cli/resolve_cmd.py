"""zkclaim resolve - resolve an ENS name or social handle to an address.

With --platform, NAME is a handle; its predicted address is printed with the
Sepolia balance waiting to be claimed.
"""
from __future__ import annotations

import asyncio

import click

from zkclaim.naming import FallbackResolver, format_ether, handle_to_ens_name
from zkclaim.platforms import UnknownPlatformError, get_platform


async def _lookup(resolver: FallbackResolver, name: str, with_balance: bool):
    address = await resolver.resolve_name_to_address(name)
    if not address or not with_balance:
        return address, None
    try:
        balance = await resolver.sepolia_balance(address)
    except Exception as e:
        raise SystemExit(f"Could not read Sepolia balance for {address}: {e}") from e
    return address, balance


@click.command("resolve")
@click.argument("name")
@click.option("--platform", "-p", "platform_id", default=None,
              help="Treat NAME as a handle on this platform")
@click.pass_context
def resolve_command(ctx: click.Context, name: str, platform_id: str | None) -> None:
    """Resolve NAME (ENS name, handle, or hex address) to a checksummed address."""
    config = ctx.obj["config"]
    if platform_id:
        try:
            name = handle_to_ens_name(name, get_platform(config, platform_id))
        except UnknownPlatformError as e:
            raise SystemExit(str(e.args[0]))

    resolver = FallbackResolver.from_config(config)
    address, balance = asyncio.run(_lookup(resolver, name, bool(platform_id)))
    if not address:
        raise SystemExit(f"Could not resolve {name}")
    click.echo(address)
    if not platform_id:
        return
    if balance is None:
        click.echo("balance: unknown (no Sepolia RPC configured)")
    elif balance > 0:
        click.echo(f"balance: {format_ether(balance)} ETH (claimable)")
    else:
        click.echo("balance: 0 ETH (nothing to claim)")
