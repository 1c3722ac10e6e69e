"""
flatcargo.url — Cargo canonical URLs.

Cargo keys git sources by a canonical form of their URL, so the
source-replacement entries we write must use the same form or Cargo
will not match them:

    git+https://github.com/Owner/Repo.git?rev=abc#abc123
      → https://github.com/owner/repo   (rev=abc)

Rules, in order:
  1. git+https:// → https:// (likewise git+file:// → file://)
  2. parse (scheme required; host required except for file://)
  3. remember rev / tag / branch from the query (first found wins)
  4. drop query and fragment
  5. strip trailing slashes
  6. github.com → https scheme, lower-case path
  7. strip a trailing .git
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qs, urlsplit, urlunsplit

from flatcargo.errors import PlanError


VCS_PREFIX = "git+"
LOCAL_SCHEME = "file"
GITHUB_HOST = "github.com"
DISAMBIGUATOR_KEYS = ("rev", "tag", "branch")


class UrlParseError(PlanError):
    """Malformed source URL."""
    pass


@dataclass(frozen=True)
class Disambiguator:
    """rev/tag/branch value a git dependency was declared with."""
    kind: str
    value: str


@dataclass(frozen=True)
class CanonicalUrl:
    """Canonical repository URL plus the disambiguator dropped from it."""
    url: str
    disambiguator: Disambiguator | None = None

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    def __str__(self) -> str:
        return self.url


def canonicalize(raw: str) -> CanonicalUrl:
    """Convert a source URL to Cargo's canonical form.

    Raises:
        UrlParseError: URL has no scheme, no host (other than file://),
            or an invalid port
    """
    url = raw.strip()
    if url.startswith((VCS_PREFIX + "https://", VCS_PREFIX + "file://")):
        url = url[len(VCS_PREFIX):]

    try:
        parts = urlsplit(url)
        parts.port  # validates the port
    except ValueError as e:
        raise UrlParseError(f"Invalid URL '{raw}': {e}") from e

    if not parts.scheme:
        raise UrlParseError(f"Invalid URL '{raw}': scheme is required")
    if not parts.hostname and parts.scheme != LOCAL_SCHEME:
        raise UrlParseError(f"Invalid URL '{raw}': host is required")

    disambiguator = None
    query = parse_qs(parts.query)
    for key in DISAMBIGUATOR_KEYS:
        if query.get(key):
            disambiguator = Disambiguator(key, query[key][0])
            break

    scheme = parts.scheme
    netloc = _lower_host(parts.netloc)
    path = _strip_path(parts.path)

    if parts.hostname == GITHUB_HOST:
        scheme = "https"
        path = _strip_path(path.lower())

    return CanonicalUrl(
        url=urlunsplit((scheme, netloc, path, "", "")),
        disambiguator=disambiguator,
    )


def git_repo_name(raw: str, commit: str, commit_len: int = 7) -> str:
    """Directory name for a checkout: <repo>-<commit prefix>.

    >>> git_repo_name("git+https://github.com/serde-rs/serde?rev=1", "abcdef0123")
    'serde-abcdef0'
    """
    canonical = canonicalize(raw)
    name = canonical.path.rsplit("/", 1)[-1]
    return f"{name}-{commit[:commit_len]}"


def _strip_path(path: str) -> str:
    """Strip trailing slashes and .git until nothing changes.

    Repeating makes canonicalize() idempotent for paths like
    ``repo.git/`` or ``repo/.git``.
    """
    while True:
        stripped = path.rstrip("/")
        if stripped.endswith(".git"):
            stripped = stripped[:-len(".git")]
        if stripped == path:
            return path
        path = stripped


def _lower_host(netloc: str) -> str:
    """Lower-case the host part, keeping any userinfo as-is."""
    userinfo, sep, host = netloc.rpartition("@")
    return f"{userinfo}{sep}{host.lower()}"
