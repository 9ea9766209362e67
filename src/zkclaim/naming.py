"""Name, address and balance lookups used by claim front-ends.

Handles map to ENS names (`alice.x.zkemail.eth`); names resolve to addresses
across networks in a fixed fallback order (Sepolia first, then mainnet). A
network that errors counts as a miss. Plain hex addresses pass through
checksummed.

Each network is one `Web3(HTTPProvider(url))`. Name normalization (ENSIP-15)
and namehash are left to web3's `ens` module. Blocking web3 calls run in the
default executor.
"""
from __future__ import annotations

import asyncio
import logging
import re
from decimal import Decimal
from typing import Any, Protocol, Sequence

from eth_utils import from_wei, to_checksum_address
from web3 import Web3

logger = logging.getLogger(__name__)

SEPOLIA = "sepolia"
MAINNET = "mainnet"

_HEX_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


class NameResolver(Protocol):
    async def resolve(self, name: str) -> str | None: ...


def is_hex_address(value: str) -> bool:
    return bool(_HEX_ADDRESS_RE.match((value or "").strip()))


def handle_to_ens_name(handle: str, platform: dict) -> str:
    """`@alice_b` on x -> `alice-b.x.zkemail.eth`."""
    value = (handle or "").strip()
    platform_id = platform.get("id", "x")
    if platform_id == "x":
        value = value.lstrip("@").replace("_", "-")
    elif platform_id == "discord":
        value = value.lstrip("@").replace("_", "-").replace("#", "-")
    return f"{value}{platform['ens_suffix']}" if value else ""


def truncate_middle(value: str, prefix: int = 6, suffix: int = 4) -> str:
    if not value:
        return ""
    if len(value) <= prefix + suffix + 3:
        return value
    return f"{value[:prefix]}...{value[-suffix:]}"


def format_ether(wei: int) -> str:
    amount = Decimal(from_wei(wei, "ether"))
    return f"{amount.normalize():f}"


class Web3Resolver:
    """ENS lookups and balance reads against one network."""

    def __init__(self, rpc_url: str | None = None, *, w3: Any = None, timeout: float = 15.0):
        if w3 is None:
            if not rpc_url:
                raise ValueError("rpc_url or w3 is required")
            w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self.rpc_url = rpc_url
        self.w3 = w3

    async def _call(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    async def resolve(self, name: str) -> str | None:
        address = await self._call(self.w3.ens.address, name)
        return str(address) if address else None

    async def balance(self, address: str) -> int:
        """Balance of `address` in wei."""
        return int(await self._call(self.w3.eth.get_balance, to_checksum_address(address)))


class FallbackResolver:
    """Try each (network, resolver) pair in order until one yields an address."""

    def __init__(self, resolvers: Sequence[tuple[str, NameResolver]]):
        self.resolvers = list(resolvers)

    @classmethod
    def from_config(cls, config: dict) -> "FallbackResolver":
        urls = {SEPOLIA: config.get("rpc_url"), MAINNET: config.get("mainnet_rpc_url")}
        networks = config.get("naming", {}).get("networks", [SEPOLIA, MAINNET])
        return cls([(net, Web3Resolver(urls[net])) for net in networks if urls.get(net)])

    def network(self, name: str) -> NameResolver | None:
        for network, resolver in self.resolvers:
            if network == name:
                return resolver
        return None

    async def resolve_name_to_address(self, name_or_address: str) -> str | None:
        value = (name_or_address or "").strip()
        if not value:
            return None
        if is_hex_address(value):
            return to_checksum_address(value)

        for network, resolver in self.resolvers:
            try:
                address = await resolver.resolve(value)
            except Exception as e:
                logger.debug("Resolution of %s on %s failed: %s", value, network, e)
                continue
            if address:
                logger.debug("Resolved %s on %s", value, network)
                return to_checksum_address(address)
        return None

    async def sepolia_balance(self, address: str) -> int | None:
        """Wei held by `address` on Sepolia, or None when no Sepolia RPC is configured."""
        resolver = self.network(SEPOLIA)
        if resolver is None:
            return None
        return await resolver.balance(address)
