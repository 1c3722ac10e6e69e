"""
flatcargo.sources.descriptors — Fetch plan entries.

Each descriptor renders to one flatpak-builder source:

    {"type": "archive", "archive-type": "tar-gzip", "url": ..., "sha256": ..., "dest": ...}
    {"type": "inline", "contents": ..., "dest": ..., "dest-filename": ...}
    {"type": "git", "url": ..., "commit": ..., "dest": ...}
    {"type": "shell", "commands": [...]}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Archive:
    """Download and unpack a tarball."""
    url: str
    sha256: str
    dest: str
    archive_type: str = "tar-gzip"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "archive",
            "archive-type": self.archive_type,
            "url": self.url,
            "sha256": self.sha256,
            "dest": self.dest,
        }


@dataclass(frozen=True)
class Inline:
    """Write a file with the given contents."""
    contents: str
    dest: str
    dest_filename: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "inline",
            "contents": self.contents,
            "dest": self.dest,
            "dest-filename": self.dest_filename,
        }


@dataclass(frozen=True)
class GitCheckout:
    """Clone a repository at a commit."""
    url: str
    commit: str
    dest: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "git",
            "url": self.url,
            "commit": self.commit,
            "dest": self.dest,
        }


@dataclass(frozen=True)
class ShellCommand:
    """Run shell commands in the build directory."""
    commands: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "shell",
            "commands": list(self.commands),
        }


SourceDescriptor = Union[Archive, Inline, GitCheckout, ShellCommand]
