"""flatcargo.sources — Per-package fetch plan sources."""

from flatcargo.sources.descriptors import (
    Archive, Inline, GitCheckout, ShellCommand, SourceDescriptor,
)
from flatcargo.sources.git import GitCache, GitFetcher
from flatcargo.sources.resolver import (
    SourceResolver, Resolution, vendor_key, checksum_file,
    MissingChecksum, MissingCommitDisambiguator, PackageNotFound,
)

__all__ = [
    "Archive", "Inline", "GitCheckout", "ShellCommand", "SourceDescriptor",
    "GitCache", "GitFetcher",
    "SourceResolver", "Resolution", "vendor_key", "checksum_file",
    "MissingChecksum", "MissingCommitDisambiguator", "PackageNotFound",
]
