"""flatcargo.workspace — Cargo.toml walking & normalization."""

from flatcargo.workspace.manifest import (
    ResolvedManifest, load_manifest, normalize_manifest,
    WorkspaceError, ManifestNotFound, PackageNameMismatch, InvalidManifest,
)
from flatcargo.workspace.walker import (
    resolve_packages, expand_members, PackageMap,
)

__all__ = [
    "ResolvedManifest", "load_manifest", "normalize_manifest",
    "WorkspaceError", "ManifestNotFound", "PackageNameMismatch",
    "InvalidManifest",
    "resolve_packages", "expand_members", "PackageMap",
]
