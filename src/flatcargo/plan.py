"""
flatcargo.plan — Fetch plan assembly.

Lock entries are resolved in file order; their sources are
concatenated and followed by one generated Cargo config:

    [source.vendored-sources]
    directory = "cargo/vendor"

    [source.crates-io]
    replace-with = "vendored-sources"

    [source."https://github.com/owner/repo"]
    git = "https://github.com/owner/repo"
    replace-with = "vendored-sources"

Nothing is returned unless every entry resolved.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

import tomli_w
import yaml

from flatcargo.config import PlanConfig
from flatcargo.errors import PlanError
from flatcargo.lock import LockEntry
from flatcargo.sources.descriptors import GitCheckout, Inline, SourceDescriptor
from flatcargo.sources.resolver import CRATES_IO, Resolution, SourceResolver


OUTPUT_FORMATS = ("json", "yaml")


def generate_plan(
    entries: Iterable[LockEntry],
    resolver: SourceResolver,
    config: PlanConfig,
) -> list[SourceDescriptor]:
    """Resolve every lock entry and assemble the plan."""
    resolutions: list[Resolution] = []
    for entry in entries:
        resolution = resolver.resolve(entry)
        if resolution is not None:
            resolutions.append(resolution)
    return assemble(resolutions, config)


def assemble(
    resolutions: Iterable[Resolution],
    config: PlanConfig,
) -> list[SourceDescriptor]:
    """Concatenate descriptors and append the merged vendor config.

    Raises:
        PlanError: crates-io redirect contributed more than once
    """
    descriptors: list[SourceDescriptor] = []
    merged = vendor_base(config)
    registry_seen = False

    for resolution in resolutions:
        descriptors.extend(resolution.descriptors)
        for key, value in resolution.vendor_config.items():
            if key == CRATES_IO:
                if registry_seen:
                    raise PlanError(f"[source.{CRATES_IO}] contributed more than once")
                registry_seen = True
            merged[key] = value

    descriptors.append(Inline(
        contents=render_vendor_config(merged),
        dest=config.cargo_home,
        dest_filename=config.config_filename,
    ))
    return descriptors


def vendor_base(config: PlanConfig) -> dict[str, dict[str, Any]]:
    return {config.vendored_sources: {"directory": config.vendor_dir}}


def render_vendor_config(sources: dict[str, dict[str, Any]]) -> str:
    """Cargo config TOML with one [source.<key>] table per entry."""
    return tomli_w.dumps({"source": sources})


def git_checkouts(descriptors: Iterable[SourceDescriptor]) -> list[GitCheckout]:
    return [d for d in descriptors if isinstance(d, GitCheckout)]


def dump_plan(descriptors: Iterable[SourceDescriptor], fmt: str = "json") -> str:
    """Serialize the plan as a flatpak-builder sources file."""
    data = [d.to_dict() for d in descriptors]
    if fmt == "json":
        return json.dumps(data, indent=4) + "\n"
    if fmt == "yaml":
        return yaml.dump(
            data,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
    raise ValueError(f"Unsupported output format: {fmt}")
