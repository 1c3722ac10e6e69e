"""
flatcargo.workspace.manifest — Cargo.toml loading and normalization.

A package inside a workspace can inherit fields from the workspace
root instead of spelling them out:

    # crates/foo/Cargo.toml
    [package]
    name = "foo"
    version = { workspace = true }

    [dependencies]
    serde = { workspace = true, features = ["derive"] }

    # Cargo.toml (root)
    [workspace.package]
    version = "1.2.0"

    [workspace.dependencies]
    serde = "1.0"

Once the package is copied out of its repository the workspace root
is gone, so the manifest we write must carry the concrete values.
ResolvedManifest.normalized() does that substitution.
"""

from __future__ import annotations

import copy
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from flatcargo.errors import PackageError


MANIFEST_NAME = "Cargo.toml"

DEPENDENCY_TABLES = ("dependencies", "build-dependencies", "dev-dependencies")

# [workspace] has a single dependency table for all three kinds
_WORKSPACE_SECTION = {
    "build-dependencies": "dependencies",
    "dev-dependencies": "dependencies",
}

ManifestLoader = Callable[[Path], dict[str, Any]]


class WorkspaceError(PackageError):
    """Workspace resolution error."""
    pass


class ManifestNotFound(WorkspaceError):
    """A Cargo.toml that should exist does not."""
    pass


class PackageNameMismatch(WorkspaceError):
    """A path dependency points at a package with another name."""
    pass


class InvalidManifest(WorkspaceError):
    """Cargo.toml is unreadable or inconsistent."""
    pass


@dataclass(frozen=True)
class ResolvedManifest:
    """A package found while walking a repository.

    Attributes:
        path: Package directory, relative to the walked root ("." for the root)
        manifest: Cargo.toml content as parsed
        workspace: The enclosing [workspace] table, if any
    """
    path: str
    manifest: dict[str, Any]
    workspace: dict[str, Any] | None = None

    def normalized(self) -> dict[str, Any]:
        """Manifest with every `workspace = true` marker substituted."""
        if self.workspace is None:
            return copy.deepcopy(self.manifest)
        return normalize_manifest(self.manifest, self.workspace)


def load_manifest(directory: Path) -> dict[str, Any]:
    """Read <directory>/Cargo.toml."""
    path = Path(directory) / MANIFEST_NAME
    if not path.is_file():
        raise ManifestNotFound(f"Manifest not found: {path}")

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise InvalidManifest(f"Invalid TOML in {path}: {e}") from e


def is_inherited(value: Any) -> bool:
    """Check for the `{ workspace = true }` marker."""
    return isinstance(value, dict) and value.get("workspace") is True


def normalize_manifest(
    manifest: dict[str, Any],
    workspace: dict[str, Any],
) -> dict[str, Any]:
    """Return a copy of manifest with workspace values substituted.

    Handles:
      [package] version = { workspace = true }
      [dependencies] x = { workspace = true, features = [...] }
      [target.'cfg(unix)'.dependencies] x = { workspace = true }
      [lints] workspace = true

    Raises:
        InvalidManifest: The workspace has no value for an inherited key
    """
    result = copy.deepcopy(manifest)

    for section_key, section in list(result.items()):
        if not isinstance(section, dict):
            continue

        if is_inherited(section):
            if section_key not in workspace:
                raise InvalidManifest(
                    f"[{section_key}] inherits from the workspace, "
                    f"but [workspace.{section_key}] is not defined"
                )
            result[section_key] = copy.deepcopy(workspace[section_key])
        elif section_key == "target":
            for cfg, target in section.items():
                if not isinstance(target, dict):
                    continue
                for dep_key in DEPENDENCY_TABLES:
                    if isinstance(target.get(dep_key), dict):
                        _substitute(target[dep_key], dep_key, workspace,
                                    label=f"target.{cfg}.{dep_key}")
        else:
            _substitute(section, section_key, workspace, label=section_key)

    return result


def _substitute(
    section: dict[str, Any],
    section_key: str,
    workspace: dict[str, Any],
    label: str,
) -> None:
    ws_key = _WORKSPACE_SECTION.get(section_key, section_key)
    ws_section = workspace.get(ws_key)

    for key, value in list(section.items()):
        if not is_inherited(value):
            continue
        if not isinstance(ws_section, dict) or key not in ws_section:
            raise InvalidManifest(
                f"'{label}.{key}' inherits from the workspace, "
                f"but [workspace.{ws_key}] has no '{key}'"
            )
        if ws_key == "dependencies":
            section[key] = _merge_dependency(value, ws_section[key])
        else:
            section[key] = copy.deepcopy(ws_section[key])


def _merge_dependency(local: dict[str, Any], inherited: Any) -> Any:
    """Combine a member's `{ workspace = true, ... }` with the workspace entry.

    Members may add features and mark the dependency optional; everything
    else comes from the workspace.
    """
    extra = {k: v for k, v in local.items() if k != "workspace"}
    if not extra:
        return copy.deepcopy(inherited)

    if isinstance(inherited, dict):
        merged = copy.deepcopy(inherited)
    else:
        merged = {"version": inherited}

    features = list(merged.get("features", []))
    for feature in extra.pop("features", []):
        if feature not in features:
            features.append(feature)
    if features:
        merged["features"] = features

    merged.update(extra)
    return merged
