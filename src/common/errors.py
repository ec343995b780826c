"""Exception and warning taxonomy.

Hard errors derive from ``JarDepsError`` and propagate to the caller (batch
operations catch them per item). Warning categories derive from
``JarDepsWarning``; they are logged and collected in ``warnings`` lists and are
never raised by library code.
"""
from __future__ import annotations

from typing import Optional


class JarDepsError(Exception):
    """Base class for all hard errors raised by jardeps."""


class InvalidSpecError(JarDepsError):
    """A dependency reference could not be parsed."""

    def __init__(self, spec: str, reason: str = "empty artifact field"):
        self.spec = spec
        super().__init__(f"Invalid dependency specification '{spec}': {reason}")


class NotFoundError(JarDepsError):
    """The package index returned no candidate for a query."""

    def __init__(self, query: str):
        self.query = query
        super().__init__(f"Dependency not found: {query}")


class RegistryError(JarDepsError):
    """The package index could not be queried."""


class HttpStatusError(JarDepsError):
    """An HTTP call returned a non-2xx status."""

    def __init__(self, url: str, status: int):
        self.url = url
        self.status = status
        super().__init__(f"HTTP {status} for {url}")


class DownloadError(JarDepsError):
    """All download attempts for an artifact failed."""

    def __init__(self, url: str, attempts: int, cause: Optional[BaseException] = None):
        self.url = url
        self.attempts = attempts
        self.cause = cause
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "unknown error"
        super().__init__(f"Download of {url} failed after {attempts} attempt(s): {detail}")


class ConfigIOError(JarDepsError):
    """A manifest or lock file could not be read or written.

    Logged as a warning; callers continue with defaults.
    """


class ImportFormatError(JarDepsError):
    """An import file is unreadable or lacks a ``dependencies`` array."""


class ExportError(JarDepsError):
    """An export file could not be written."""


class ProjectError(JarDepsError):
    """The project directory is missing or unusable."""


class LockTimeoutError(JarDepsError):
    """A cache or manifest lock could not be acquired in time."""


class OperationCancelledError(JarDepsError):
    """The operation was cancelled or ran past its deadline."""


class JarDepsWarning(UserWarning):
    """Base category for non-fatal conditions."""


class ChecksumMismatchWarning(JarDepsWarning):
    """A published checksum did not match the downloaded bytes."""


class ConflictWarning(JarDepsWarning):
    """Several versions of the same artifact are installed."""


class IncompatibilityWarning(JarDepsWarning):
    """Two artifacts known to be incompatible are installed together."""
