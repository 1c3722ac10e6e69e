"""
flatcargo.config — Plan configuration.

flatcargo.yaml (every key optional):

    registry_root: https://static.crates.io/crates
    cargo_home: cargo
    vendor_dir: cargo/vendor
    vendored_sources: vendored-sources
    git_cache: flatpak-cargo/git
    commit_len: 7
    config_filename: config
    checkout_dir: ~/.cache/flatcargo/git

Paths other than checkout_dir are paths inside the build sandbox.
checkout_dir is where git sources are cloned on the host while the
plan is generated.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

import yaml

from flatcargo.errors import PlanError


CONFIG_ENV = "FLATCARGO_CONFIG"


@dataclass(frozen=True)
class PlanConfig:
    """Constants threaded through the resolver and assembler."""
    registry_root: str = "https://static.crates.io/crates"
    cargo_home: str = "cargo"
    vendor_dir: str = "cargo/vendor"
    vendored_sources: str = "vendored-sources"
    git_cache: str = "flatpak-cargo/git"
    commit_len: int = 7
    config_filename: str = "config"
    checkout_dir: str = "~/.cache/flatcargo/git"

    @property
    def checkout_path(self) -> Path:
        return Path(self.checkout_dir).expanduser()

    @property
    def config_dest(self) -> str:
        return f"{self.cargo_home}/{self.config_filename}"


class ConfigError(PlanError):
    """Config file error."""
    pass


def config_path(path: str | Path | None = None) -> Path | None:
    """Resolve the config file location.

    Priority: explicit path > FLATCARGO_CONFIG env var > None (defaults)
    """
    if path:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV, "").strip()
    if env_path:
        return Path(env_path)
    return None


def load_config(path: str | Path | None = None) -> PlanConfig:
    """Read a flatcargo.yaml file on top of the defaults."""
    cp = config_path(path)
    if cp is None:
        return PlanConfig()
    if not cp.exists():
        raise ConfigError(f"Config file not found: {cp}")

    with open(cp) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a YAML mapping: {cp}")

    known = {f.name for f in fields(PlanConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(
            f"Unknown config keys in {cp}: {', '.join(unknown)}"
        )

    overrides = {}
    for key, value in data.items():
        if key == "commit_len":
            if not isinstance(value, int) or value <= 0:
                raise ConfigError("commit_len must be a positive integer")
        elif not isinstance(value, str) or not value:
            raise ConfigError(f"{key} must be a non-empty string")
        elif key != "checkout_dir":
            value = value.rstrip("/")
        overrides[key] = value

    return replace(PlanConfig(), **overrides)
