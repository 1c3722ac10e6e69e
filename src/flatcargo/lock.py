"""
flatcargo.lock — Cargo.lock model.

Cargo.lock format (v3/v4):

    version = 3

    [[package]]
    name = "serde"
    version = "1.0.0"
    source = "registry+https://github.com/rust-lang/crates.io-index"
    checksum = "abcd..."
    dependencies = ["serde_derive"]

    [[package]]
    name = "foo"
    version = "0.1.0"
    source = "git+https://github.com/owner/foo?branch=main#0123abcd..."

Lock format v1 keeps registry checksums in a [metadata] table instead:

    [metadata]
    "checksum serde 1.0.0 (registry+https://...)" = "abcd..."

Packages without a source are local path dependencies.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union
from urllib.parse import urlsplit

from flatcargo.errors import PlanError


GIT_SOURCE_PREFIX = "git+"
NO_CHECKSUM = "<none>"


@dataclass(frozen=True)
class RegistrySource:
    """Package published on a registry (crates.io)."""
    raw: str


@dataclass(frozen=True)
class GitSource:
    """Package pinned to a git commit.

    commit is the URL fragment; None when the lock entry has none.
    """
    raw_url: str
    commit: str | None = None


SourceSpec = Union[RegistrySource, GitSource]


@dataclass(frozen=True)
class LockEntry:
    """One [[package]] of the lock file."""
    name: str
    version: str
    source: SourceSpec | None = None
    checksum: str | None = None
    dependencies: tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return f"{self.name}@{self.version}"

    @property
    def is_git(self) -> bool:
        return isinstance(self.source, GitSource)


class LockError(PlanError):
    """Lock file error."""
    pass


def parse_source(raw: str) -> SourceSpec:
    """Classify a raw `source` string."""
    if raw.startswith(GIT_SOURCE_PREFIX):
        fragment = urlsplit(raw).fragment
        return GitSource(raw_url=raw, commit=fragment or None)
    return RegistrySource(raw=raw)


def parse_lock(path: str | Path) -> list[LockEntry]:
    """Parse a Cargo.lock file."""
    p = Path(path)
    if not p.exists():
        raise LockError(f"Lock file not found: {p}")

    try:
        with open(p, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise LockError(f"Invalid TOML in lock file {p}: {e}") from e

    return parse_lock_dict(data)


def parse_lock_dict(data: dict[str, Any]) -> list[LockEntry]:
    """Create LockEntry objects from a parsed lock table.

    Entries keep the order of the file.
    """
    packages = data.get("package", [])
    if not isinstance(packages, list):
        raise LockError("'package' must be an array of tables")

    metadata = data.get("metadata", {})
    if not isinstance(metadata, dict):
        raise LockError("'metadata' must be a table")

    entries: list[LockEntry] = []
    for i, pkg in enumerate(packages):
        if not isinstance(pkg, dict):
            raise LockError(f"package[{i}] must be a table")

        name = pkg.get("name")
        version = pkg.get("version")
        if not name or not version:
            raise LockError(f"package[{i}]: 'name' and 'version' are required")

        raw_source = pkg.get("source")
        checksum = pkg.get("checksum")
        if checksum is None and raw_source:
            # v1 lock files
            checksum = metadata.get(f"checksum {name} {version} ({raw_source})")
        if checksum == NO_CHECKSUM:
            checksum = None

        entries.append(LockEntry(
            name=name,
            version=str(version),
            source=parse_source(raw_source) if raw_source else None,
            checksum=checksum,
            dependencies=tuple(pkg.get("dependencies", [])),
        ))

    return entries
