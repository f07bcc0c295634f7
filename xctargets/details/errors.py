from typing import Optional


class XcTargetsError(Exception):
    """Base exception class for xctargets errors."""


class ConfigurationError(XcTargetsError):
    """A required value is missing or invalid.

    Fatal for the target being processed. When ``fatal_for_run`` is set
    (e.g. the host has no bundle identifier) the whole run is aborted.
    """

    def __init__(self, message: str, target: Optional[str] = None, fatal_for_run: bool = False):
        self.target = target
        self.fatal_for_run = fatal_for_run
        super().__init__(message)


class ManifestMissing(XcTargetsError):
    """The dependency manifest (Podfile) could not be found."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Podfile not found at {path}")


class GraphIntegrityWarning(XcTargetsError):
    """An expected project graph node could not be located.

    Logged by the stage that raised it; the sub-step degrades to a no-op.
    """


class IOWarning(XcTargetsError):
    """A best-effort file operation failed; the downstream build may fail."""
