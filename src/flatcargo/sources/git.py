"""
flatcargo.sources.git — Local git checkout cache.

Git dependencies have to be checked out on the host to find the
package inside the repository. Checkouts live under the cache dir,
one per repository:

    ~/.cache/flatcargo/git/
    ├── github.com_owner_repo/
    └── gitlab.com_group_other/

A checkout whose HEAD already starts with the requested commit is
reused as-is; otherwise the repository is fetched and the commit
checked out. Two runs sharing a cache directory are not coordinated.
"""

from __future__ import annotations

import re
import subprocess
from pathlib import Path
from typing import Protocol
from urllib.parse import urlsplit

import click

from flatcargo.errors import ExternalFetchFailure


class GitFetcher(Protocol):
    """Returns a local checkout of url at commit."""

    def fetch(self, url: str, commit: str) -> Path:
        ...


class GitCache:
    """GitFetcher backed by `git` subprocesses."""

    def __init__(self, cache_dir: str | Path):
        self.cache_dir = Path(cache_dir).expanduser()

    def checkout_path(self, url: str) -> Path:
        parts = urlsplit(url)
        slug = re.sub(r"[^A-Za-z0-9._-]+", "_", f"{parts.netloc}{parts.path}").strip("_")
        return self.cache_dir / slug

    def fetch(self, url: str, commit: str) -> Path:
        """Make sure checkout_path(url) is at commit and return it."""
        path = self.checkout_path(url)

        if (path / ".git").exists():
            head = _run_git(["rev-parse", "HEAD"], cwd=path)
            if head.startswith(commit):
                return path
        else:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            click.echo(f"Cloning {url}...", err=True)
            _run_git(["clone", "--quiet", "--no-checkout", url, str(path)])

        if not _has_commit(path, commit):
            click.echo(f"Fetching {url}...", err=True)
            _run_git(["fetch", "--quiet", "--tags", "origin",
                      "+refs/heads/*:refs/remotes/origin/*"], cwd=path)
            if not _has_commit(path, commit):
                # not reachable from any branch or tag (force-pushed, PR refs)
                _run_git(["fetch", "--quiet", "origin", commit], cwd=path)
        _run_git(["checkout", "--quiet", "--force", commit], cwd=path)
        return path


def _has_commit(path: Path, commit: str) -> bool:
    try:
        _run_git(["cat-file", "-e", f"{commit}^{{commit}}"], cwd=path)
    except ExternalFetchFailure:
        return False
    return True


def _run_git(argv: list[str], cwd: Path | None = None) -> str:
    command = ["git", *argv]
    try:
        completed = subprocess.run(
            command,
            cwd=cwd,
            check=False,
            text=True,
            capture_output=True,
        )
    except OSError as e:
        raise ExternalFetchFailure(f"Could not run git: {e}") from e

    if completed.returncode != 0:
        raise ExternalFetchFailure(
            f"Git command failed: {' '.join(command)}\n{completed.stderr.strip()}"
        )
    return completed.stdout.strip()
