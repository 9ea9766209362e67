from __future__ import annotations

import json
from pathlib import Path

from zkclaim.config import DEFAULT_CONFIG, load_config


def _write(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


def test_defaults_without_files(tmp_path: Path) -> None:
    config = load_config(workspace=tmp_path)
    assert config["origin"] == DEFAULT_CONFIG["origin"]
    assert config["relay"]["submission_timeout"] == 60
    assert set(config["platforms"]) == {"x", "discord", "github", "reddit"}


def test_layers_merge_deeply(tmp_path: Path) -> None:
    global_path = tmp_path / "global.json"
    _write(global_path, {"relay": {"url": "https://relay.test"}, "rpc_url": "https://rpc.test"})
    ws = tmp_path / "repo"
    _write(ws / ".zkclaim" / "config.json", {"relay": {"submission_timeout": 30}})

    config = load_config(global_path, workspace=ws)

    assert config["relay"]["url"] == "https://relay.test"
    assert config["relay"]["submission_timeout"] == 30
    assert config["relay"]["http_timeout"] == 90
    assert config["rpc_url"] == "https://rpc.test"


def test_env_overrides_win(monkeypatch, tmp_path: Path) -> None:
    ws = tmp_path / "repo"
    _write(ws / ".zkclaim" / "config.json", {"relay": {"url": "https://file.test"}})
    monkeypatch.setenv("ZKCLAIM_RELAY_URL", "https://env.test")
    monkeypatch.setenv("ZERODEV_RPC_URL", "https://zerodev.test")
    monkeypatch.setenv("ZKCLAIM_SUBMISSION_TIMEOUT", "12.5")
    monkeypatch.setenv("ZKCLAIM_ENGINE_MODULE", "my_engine")

    config = load_config(workspace=ws)

    assert config["relay"]["url"] == "https://env.test"
    assert config["rpc_url"] == "https://zerodev.test"
    assert config["relay"]["submission_timeout"] == 12.5
    assert config["engine"]["module"] == "my_engine"


def test_invalid_files_are_ignored(tmp_path: Path) -> None:
    ws = tmp_path / "repo"
    path = ws / ".zkclaim" / "config.json"
    path.parent.mkdir(parents=True)
    path.write_text("[1, 2, 3]")

    config = load_config(workspace=ws)
    assert config["backend_url"] == DEFAULT_CONFIG["backend_url"]


def test_defaults_are_not_mutated(tmp_path: Path) -> None:
    config = load_config(workspace=tmp_path)
    config["platforms"]["x"]["blueprint"] = "changed"
    assert DEFAULT_CONFIG["platforms"]["x"]["blueprint"] != "changed"
