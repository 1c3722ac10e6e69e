"""
flatcargo — Cargo.lock to offline flatpak-builder sources.

Turns a lock file into a list of archive/git/inline/shell sources
that vendor every dependency, so the build needs no network.
"""

from flatcargo.config import PlanConfig, load_config
from flatcargo.errors import PlanError, PackageError, ExternalFetchFailure
from flatcargo.lock import LockEntry, RegistrySource, GitSource, parse_lock
from flatcargo.url import CanonicalUrl, Disambiguator, canonicalize
from flatcargo.plan import generate_plan, assemble, dump_plan

__version__ = "0.1.0"

__all__ = [
    # config
    "PlanConfig",
    "load_config",
    # errors
    "PlanError",
    "PackageError",
    "ExternalFetchFailure",
    # lock
    "LockEntry",
    "RegistrySource",
    "GitSource",
    "parse_lock",
    # urls
    "CanonicalUrl",
    "Disambiguator",
    "canonicalize",
    # plan
    "generate_plan",
    "assemble",
    "dump_plan",
]
