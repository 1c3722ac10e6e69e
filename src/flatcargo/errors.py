"""
flatcargo.errors — Base error types.

Every failure while building a plan is terminal: nothing is written
unless the whole lock file resolved. Concrete errors live next to the
code that raises them and derive from PlanError so the CLI can catch
them in one place.
"""

from __future__ import annotations


class PlanError(Exception):
    """Fetch plan generation error."""
    pass


class PackageError(PlanError):
    """Error tied to one locked package.

    The message is prefixed with ``name@version`` so the offending
    lock entry is visible in the diagnostic.
    """

    def __init__(self, message: str, name: str | None = None,
                 version: str | None = None):
        self.name = name
        self.version = version
        if name:
            label = f"{name}@{version}" if version else name
            message = f"{label}: {message}"
        super().__init__(message)


class ExternalFetchFailure(PackageError):
    """A git or network operation failed."""
    pass
