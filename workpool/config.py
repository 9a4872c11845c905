"""TOML-based pool configuration.

Loads ~/.workpool/defaults.toml (global) and workpool.toml (project), merges
them, and resolves named pools into PoolOptions::

    # workpool.toml
    [pools.thumbnails]
    max_workers = 4
    terminate_on_error = true
    deps = ["json"]
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from workpool.api.spec import PoolOptions

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".workpool" / "defaults.toml"
PROJECT_CONFIG_NAME = "workpool.toml"


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    with path.open("rb") as f:
        return tomllib.load(f)


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("pools", {})
    return merged


def resolve_options(
    name: str,
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> PoolOptions:
    config = load_config(project_dir=project_dir, global_path=global_path)

    pools = config["pools"]
    if name not in pools:
        raise KeyError(f"Pool '{name}' not found. Available: {', '.join(pools) or 'none'}")

    return PoolOptions.from_mapping(pools[name])
