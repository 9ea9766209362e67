"""
zkclaim -- Configuration

Loads config from:
  1. Defaults
  2. Global config (CLI --config or ~/.zkclaim/config.json)
  3. Workspace override (<workspace>/.zkclaim/config.json)
  4. Environment variables

Global config is user-scoped (RPC and relay endpoints, engine module).
Workspace config is repo-scoped (optional overrides). When a workspace is
given explicitly, the current working directory is never read implicitly.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_DIRNAME = ".zkclaim"
CONFIG_FILENAME = "config.json"

DEFAULT_CONFIG = {
    "origin": "http://localhost:5173",
    "backend_url": "https://noir-prover.zk.email",
    "rpc_url": None,  # Sepolia RPC (also the relay's bundler endpoint)
    "mainnet_rpc_url": "https://eth.llamarpc.com",
    "remote_timeout": 300,
    "engine": {
        "module": None,  # importable module exposing load_engine()
        "conductor_url": "https://dev-conductor.zk.email",
    },
    "relay": {
        "url": None,
        "submission_timeout": 60,
        "http_timeout": 90,
    },
    "naming": {
        # Tried in this order; a miss or an error falls through to the next.
        "networks": ["sepolia", "mainnet"],
    },
    "platforms": {
        "x": {
            "name": "X (Twitter)",
            "ens_suffix": ".x.zkemail.eth",
            "blueprint": "benceharomi/x_handle@v1",
            "email_type": "X password reset email",
            "gmail_query": 'from:info@x.com subject:"password reset"',
            "proving_mode": "local",
            "remote_proving_url": None,
            "entrypoint": "0x593403CF4fC2761360cCB214Fc0999fcd7Df3aC4",
            "coming_soon": False,
        },
        "discord": {
            "name": "Discord",
            "ens_suffix": ".discord.zkemail.eth",
            "blueprint": "zkemail/discord@v1",
            "email_type": "Discord verification email",
            "gmail_query": 'from:discord.com subject:"Password Reset Request for Discord"',
            "proving_mode": "remote",
            "remote_proving_url": "https://noir-prover.zk.email/prove",
            "entrypoint": "0x7AD405AE2Ee1f9d1005A7639dd01a4de5acb9D8A",
            "coming_soon": False,
        },
        "github": {
            "name": "GitHub",
            "ens_suffix": ".github.zkemail.eth",
            "blueprint": "benceharomi/github_handle@v1",
            "email_type": "GitHub notification email",
            "gmail_query": "from:github.com",
            "proving_mode": "remote",
            "remote_proving_url": "https://dev-conductor.zk.email/api/prove",
            "entrypoint": None,
            "coming_soon": True,
        },
        "reddit": {
            "name": "Reddit",
            "ens_suffix": ".reddit.zkemail.eth",
            "blueprint": "benceharomi/reddit_handle@v1",
            "email_type": "Reddit notification email",
            "gmail_query": "from:reddit.com",
            "proving_mode": "remote",
            "remote_proving_url": "https://dev-conductor.zk.email/api/prove",
            "entrypoint": None,
            "coming_soon": True,
        },
    },
}


def zkclaim_home() -> Path:
    home = os.environ.get("ZKCLAIM_HOME")
    return Path(home) if home else Path.home() / CONFIG_DIRNAME


def load_config(config_path: Optional[Path] = None, workspace: Optional[Path] = None) -> dict:
    """Load zkclaim config.

    `config_path` (CLI --config) is the global user layer. If absent,
    ~/.zkclaim/config.json (or $ZKCLAIM_HOME/config.json) is used.

    If `workspace` is provided, <workspace>/.zkclaim/config.json is loaded as
    an override on top of the global layer.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    loaded_files: list[Path] = []

    # Tests must not depend on a real ~/.zkclaim/config.json existing.
    is_pytest = bool(os.environ.get("PYTEST_CURRENT_TEST"))

    global_path = Path(config_path) if config_path else zkclaim_home() / CONFIG_FILENAME
    if is_pytest and config_path is None:
        global_path = None
    if global_path is not None and global_path.exists():
        global_cfg = _read_json(global_path)
        if global_cfg:
            config = _merge(config, global_cfg)
            loaded_files.append(global_path)

    if workspace:
        ws_config_path = Path(workspace) / CONFIG_DIRNAME / CONFIG_FILENAME
        if ws_config_path.exists():
            ws_cfg = _read_json(ws_config_path)
            if ws_cfg:
                config = _merge(config, ws_cfg)
                loaded_files.append(ws_config_path)

    if loaded_files:
        for path in loaded_files:
            logger.debug("Loaded config from %s", path)
    else:
        logger.debug("Using default config (no config file found)")

    _apply_env_overrides(config)
    return config


def _read_json(path: Path) -> dict:
    try:
        with open(path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top level must be a JSON object", path)
        return {}
    return data


def _merge(base: dict, override: dict) -> dict:
    """Deep merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict) -> None:
    """Apply explicit env var overrides after file/default loading."""
    origin = os.environ.get("ZKCLAIM_ORIGIN")
    if origin:
        config["origin"] = origin

    backend_url = os.environ.get("ZKCLAIM_BACKEND_URL")
    if backend_url:
        config["backend_url"] = backend_url

    rpc_url = _first_env("ZKCLAIM_RPC_URL", "ZERODEV_RPC_URL")
    if rpc_url:
        config["rpc_url"] = rpc_url

    engine_module = os.environ.get("ZKCLAIM_ENGINE_MODULE")
    if engine_module:
        config.setdefault("engine", {})["module"] = engine_module

    conductor_url = os.environ.get("ZKCLAIM_CONDUCTOR_URL")
    if conductor_url:
        config.setdefault("engine", {})["conductor_url"] = conductor_url

    relay_url = os.environ.get("ZKCLAIM_RELAY_URL")
    if relay_url:
        config.setdefault("relay", {})["url"] = relay_url

    timeout = os.environ.get("ZKCLAIM_SUBMISSION_TIMEOUT")
    if timeout:
        try:
            config.setdefault("relay", {})["submission_timeout"] = float(timeout)
        except ValueError:
            logger.warning("Invalid ZKCLAIM_SUBMISSION_TIMEOUT=%r", timeout)


def _first_env(*names: str) -> Optional[str]:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None
