"""
flatcargo.sources.resolver — Lock entry → fetch plan sources.

Per entry:

  no source        → local path package, nothing to fetch
  git+...#<commit> → git checkout + copy of the package subtree into
                     the vendor dir, normalized Cargo.toml, empty
                     checksum file, [source."<repo>"] redirect
  registry         → .crate archive from the registry + checksum file,
                     [source.crates-io] redirect (once per run)

The vendor config fragments are merged by flatcargo.plan.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import tomli_w

from flatcargo.config import PlanConfig
from flatcargo.errors import ExternalFetchFailure, PackageError
from flatcargo.lock import GitSource, LockEntry
from flatcargo.sources.descriptors import (
    Archive, GitCheckout, Inline, ShellCommand, SourceDescriptor,
)
from flatcargo.sources.git import GitFetcher
from flatcargo.url import CanonicalUrl, UrlParseError, canonicalize, git_repo_name
from flatcargo.workspace.manifest import (
    ManifestLoader, WorkspaceError, load_manifest, MANIFEST_NAME,
)
from flatcargo.workspace.walker import resolve_packages


CRATES_IO = "crates-io"
CHECKSUM_FILENAME = ".cargo-checksum.json"


class MissingChecksum(PackageError):
    """Registry package without a checksum."""
    pass


class MissingCommitDisambiguator(PackageError):
    """Git source without a #<commit> fragment."""
    pass


class PackageNotFound(PackageError):
    """Git checkout does not contain the locked package."""
    pass


@dataclass(frozen=True)
class Resolution:
    """Sources and vendor config contributed by one lock entry."""
    descriptors: tuple[SourceDescriptor, ...]
    vendor_config: dict[str, dict[str, Any]] = field(default_factory=dict)


def checksum_file(package_hash: str | None) -> str:
    """.cargo-checksum.json contents.

    >>> checksum_file("abcd")
    '{"package":"abcd","files":{}}'
    """
    return json.dumps({"package": package_hash, "files": {}}, separators=(",", ":"))


class SourceResolver:
    """Resolves lock entries one at a time.

    Keeps track of what was already contributed so the crates.io
    redirect and each git checkout appear only once per run.
    """

    def __init__(
        self,
        config: PlanConfig,
        git_fetcher: GitFetcher,
        loader: ManifestLoader = load_manifest,
    ):
        self.config = config
        self.git_fetcher = git_fetcher
        self.loader = loader
        self._registry_redirected = False
        self._checkouts: set[tuple[str, str]] = set()

    def resolve(self, entry: LockEntry) -> Resolution | None:
        """Build the sources for one lock entry.

        Returns:
            Resolution, or None for local path packages

        Raises:
            MissingCommitDisambiguator: git source without a commit
            MissingChecksum: registry source without a checksum
            PackageNotFound: package not in its git checkout
            UrlParseError, WorkspaceError, ExternalFetchFailure
        """
        if entry.source is None:
            return None
        if isinstance(entry.source, GitSource):
            return self._resolve_git(entry, entry.source)
        if entry.checksum:
            return self._resolve_registry(entry)
        raise MissingChecksum(
            "Registry package has no checksum in the lock file",
            name=entry.name, version=entry.version,
        )

    # ── registry ──────────────────────────────
    def _resolve_registry(self, entry: LockEntry) -> Resolution:
        cfg = self.config
        name, version = entry.name, entry.version
        dest = f"{cfg.vendor_dir}/{name}-{version}"

        descriptors = (
            Archive(
                url=f"{cfg.registry_root}/{name}/{name}-{version}.crate",
                sha256=entry.checksum,
                dest=dest,
            ),
            Inline(
                contents=checksum_file(entry.checksum),
                dest=dest,
                dest_filename=CHECKSUM_FILENAME,
            ),
        )

        vendor_config = {}
        if not self._registry_redirected:
            vendor_config[CRATES_IO] = {"replace-with": cfg.vendored_sources}
            self._registry_redirected = True

        return Resolution(descriptors, vendor_config)

    # ── git ───────────────────────────────────
    def _resolve_git(self, entry: LockEntry, source: GitSource) -> Resolution:
        cfg = self.config
        name, version = entry.name, entry.version
        commit = source.commit
        if not commit:
            raise MissingCommitDisambiguator(
                f"Git source has no #<commit> fragment: {source.raw_url}",
                name=name, version=version,
            )

        try:
            canonical = canonicalize(source.raw_url)
            repo_name = git_repo_name(source.raw_url, commit, cfg.commit_len)
        except UrlParseError as e:
            raise UrlParseError(f"{entry.display_name}: {e}") from e

        try:
            checkout = self.git_fetcher.fetch(canonical.url, commit)
        except ExternalFetchFailure as e:
            raise ExternalFetchFailure(str(e), name=name, version=version) from e

        try:
            root_manifest = self.loader(checkout)
            packages = resolve_packages(root_manifest, checkout, self.loader)
        except WorkspaceError as e:
            raise type(e)(str(e), name=name, version=version) from e

        package = packages.get(name)
        if package is None:
            raise PackageNotFound(
                f"Package not found in {canonical.url} at {commit}. "
                f"Available: {sorted(packages)}",
                name=name, version=version,
            )

        try:
            manifest = package.normalized()
        except WorkspaceError as e:
            raise type(e)(str(e), name=name, version=version) from e

        checkout_dest = f"{cfg.git_cache}/{repo_name}"
        package_dir = checkout_dest
        if package.path != ".":
            package_dir = f"{checkout_dest}/{package.path}"
        vendor_dest = f"{cfg.vendor_dir}/{name}"

        descriptors: list[SourceDescriptor] = []
        if (canonical.url, commit) not in self._checkouts:
            self._checkouts.add((canonical.url, commit))
            descriptors.append(GitCheckout(
                url=canonical.url,
                commit=commit,
                dest=checkout_dest,
            ))
        descriptors.extend([
            ShellCommand(commands=(
                f'cp -r --reflink=auto "{package_dir}" "{vendor_dest}"',
            )),
            Inline(
                contents=tomli_w.dumps(manifest),
                dest=vendor_dest,
                dest_filename=MANIFEST_NAME,
            ),
            Inline(
                contents=checksum_file(None),
                dest=vendor_dest,
                dest_filename=CHECKSUM_FILENAME,
            ),
        ])

        return Resolution(tuple(descriptors), {
            vendor_key(canonical): self._git_redirect(canonical),
        })

    def _git_redirect(self, canonical: CanonicalUrl) -> dict[str, Any]:
        redirect = {
            "git": canonical.url,
            "replace-with": self.config.vendored_sources,
        }
        if canonical.disambiguator is not None:
            redirect[canonical.disambiguator.kind] = canonical.disambiguator.value
        return redirect


def vendor_key(canonical: CanonicalUrl) -> str:
    """[source.<key>] name for a git repository.

    The disambiguator is part of the key so two revisions of the same
    repository get separate entries.
    """
    if canonical.disambiguator is None:
        return canonical.url
    d = canonical.disambiguator
    return f"{canonical.url}?{d.kind}={d.value}"
