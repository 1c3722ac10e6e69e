"""
flatcargo.workspace.walker — Package discovery inside a repository.

A git dependency names a package, not a directory. To find where that
package lives in the checkout we walk the root Cargo.toml:

  - [package]          → the root is a package; its path dependencies
                         are resolved first, then the root itself
  - [workspace]        → every member matched by `members` is resolved
                         the same way, with the workspace table attached
  - path dependencies  → { path = "../x" } entries are followed
                         recursively, including target.<cfg> tables

Dependencies are inserted before their parents. The first package
discovered under a name wins; later discoveries are skipped, which
also stops dependency cycles.
"""

from __future__ import annotations

import glob
import os
from pathlib import Path
from typing import Any

import click

from flatcargo.workspace.manifest import (
    InvalidManifest,
    ManifestLoader,
    ManifestNotFound,
    PackageNameMismatch,
    ResolvedManifest,
    is_inherited,
    load_manifest,
    MANIFEST_NAME,
)

# dev-dependencies are left out: they are not needed to build the
# package and often point outside the repository
WALKED_TABLES = ("dependencies", "build-dependencies")

PackageMap = dict[str, ResolvedManifest]


def resolve_packages(
    root_manifest: dict[str, Any],
    root_dir: str | Path,
    loader: ManifestLoader = load_manifest,
) -> PackageMap:
    """Find every package reachable from a root Cargo.toml.

    Args:
        root_manifest: Parsed root Cargo.toml
        root_dir: Directory of the root Cargo.toml
        loader: Reads the Cargo.toml of a directory

    Returns:
        package name → ResolvedManifest

    Raises:
        ManifestNotFound: A path dependency has no Cargo.toml
        PackageNameMismatch: A path dependency declares another name
        InvalidManifest: Root declares neither [package] nor [workspace]
    """
    if "package" not in root_manifest and "workspace" not in root_manifest:
        raise InvalidManifest(
            f"{Path(root_dir) / MANIFEST_NAME} declares neither "
            f"[package] nor [workspace]"
        )

    walker = _Walker(Path(root_dir), loader)
    workspace = root_manifest.get("workspace")

    # 1. Root package
    if "package" in root_manifest:
        walker.add(_package_name(root_manifest, walker.root_dir),
                   root_manifest, walker.root_dir, workspace)

    # 2. Workspace members
    if workspace is not None:
        for member_dir in expand_members(workspace, walker.root_dir):
            manifest = loader(member_dir)
            if "package" not in manifest:
                click.echo(
                    f"Warning: Workspace member has no [package]: {member_dir}",
                    err=True,
                )
                continue
            walker.add(_package_name(manifest, member_dir),
                       manifest, member_dir, workspace)

    return walker.packages


def expand_members(workspace: dict[str, Any], root_dir: str | Path) -> list[Path]:
    """Expand workspace.members patterns to member directories.

    Sorted by path, so the result does not depend on directory
    listing order. Paths in workspace.exclude are dropped.
    """
    root = str(root_dir)
    excluded = {
        os.path.normpath(os.path.join(root, e))
        for e in workspace.get("exclude", [])
        if isinstance(e, str)
    }

    found: set[str] = set()
    for pattern in workspace.get("members", []):
        if not isinstance(pattern, str):
            continue
        matches = glob.glob(os.path.join(glob.escape(root), pattern, MANIFEST_NAME))
        for manifest_path in matches:
            member_dir = os.path.normpath(os.path.dirname(manifest_path))
            if member_dir not in excluded:
                found.add(member_dir)

    return [Path(d) for d in sorted(found)]


class _Walker:
    """Accumulates the PackageMap for one resolve_packages() call."""

    def __init__(self, root_dir: Path, loader: ManifestLoader):
        self.root_dir = root_dir
        self.loader = loader
        self.packages: PackageMap = {}
        self._visiting: set[str] = set()

    def seen(self, name: str) -> bool:
        return name in self.packages or name in self._visiting

    def add(
        self,
        name: str,
        manifest: dict[str, Any],
        directory: Path,
        workspace: dict[str, Any] | None,
    ) -> None:
        """Resolve path dependencies of a package, then insert it."""
        if self.seen(name):
            return
        self._visiting.add(name)
        try:
            self.walk_dependencies(manifest, directory, workspace)
        finally:
            self._visiting.discard(name)
        self.packages[name] = ResolvedManifest(
            path=self._relative(directory),
            manifest=manifest,
            workspace=workspace,
        )

    def walk_dependencies(
        self,
        table: dict[str, Any],
        directory: Path,
        workspace: dict[str, Any] | None,
    ) -> None:
        for table_key in WALKED_TABLES:
            deps = table.get(table_key)
            if not isinstance(deps, dict):
                continue
            for dep_key, dep in deps.items():
                self._follow(dep_key, dep, directory, workspace)

        targets = table.get("target")
        if isinstance(targets, dict):
            for target in targets.values():
                if isinstance(target, dict):
                    self.walk_dependencies(target, directory, workspace)

    def _follow(
        self,
        dep_key: str,
        dep: Any,
        directory: Path,
        workspace: dict[str, Any] | None,
    ) -> None:
        if not isinstance(dep, dict):
            return  # plain version requirement

        base_dir = directory
        if is_inherited(dep) and workspace is not None:
            # path in [workspace.dependencies] is relative to the root
            ws_dep = workspace.get("dependencies", {}).get(dep_key)
            if isinstance(ws_dep, dict):
                dep = ws_dep
                base_dir = self.root_dir

        path = dep.get("path")
        if not isinstance(path, str):
            return

        name = dep.get("package", dep_key)
        if self.seen(name):
            return

        dep_dir = Path(os.path.normpath(base_dir / path))
        try:
            manifest = self.loader(dep_dir)
        except ManifestNotFound as e:
            raise ManifestNotFound(
                f"Path dependency '{name}' of {self._relative(directory)}: {e}"
            ) from e

        declared = manifest.get("package", {}).get("name")
        if declared is not None and declared != name:
            raise PackageNameMismatch(
                f"Path dependency '{name}' at {self._relative(dep_dir)} "
                f"declares package '{declared}'"
            )

        self.add(name, manifest, dep_dir, workspace)

    def _relative(self, directory: Path) -> str:
        return Path(os.path.relpath(directory, self.root_dir)).as_posix()


def _package_name(manifest: dict[str, Any], directory: Path) -> str:
    name = manifest.get("package", {}).get("name")
    if not isinstance(name, str) or not name:
        raise InvalidManifest(f"[package] has no name in {directory / MANIFEST_NAME}")
    return name
