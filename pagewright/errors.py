"""Error taxonomy for the build-and-publish pipeline.

Every failure aborts the run immediately. There is no retry and no
best-effort fallback, so each class below maps to one terminal outcome:

- ``ConfigurationError``  — bad or missing local inputs, raised before any
  network interaction (version declaration, assets directory).
- ``ProvisioningError``   — the pinned generator version cannot be obtained.
- ``GenerationError``     — the generator rejected the sources.
- ``PublishError``        — the hosting platform refused or lost the upload.
- ``RunCancelledError``   — a newer run in the same concurrency group
  superseded this one before it reached Deploy.
"""

from __future__ import annotations


class PagewrightError(RuntimeError):
    """Base class for all pipeline failures."""


class ConfigurationError(PagewrightError):
    """Raised when local pipeline inputs are missing or malformed."""


class VersionDeclarationError(ConfigurationError):
    """Raised when the pinned tool version cannot be read from the declaration file."""


class PackagingError(ConfigurationError):
    """Raised when the output tree cannot be assembled into an artifact."""


class ProvisioningError(PagewrightError):
    """Raised when the generator cannot be provisioned at the pinned version."""


class VersionDriftError(ProvisioningError):
    """Raised when the installed generator version differs from the pin."""


class GenerationError(PagewrightError):
    """Raised when the documentation generator exits with an error.

    ``output`` holds the generator's own diagnostics, unmodified.
    """

    def __init__(self, message: str, *, returncode: int, output: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class PublishError(PagewrightError):
    """Raised when an artifact cannot be published."""


class PublishAuthorizationError(PublishError):
    """Raised when the hosting platform rejects the identity grant."""


class RunCancelledError(PagewrightError):
    """Raised when a run is superseded by a newer run in its concurrency group."""


class TriggerRejectedError(PagewrightError):
    """Raised when an event is not a pipeline trigger (e.g. push to another branch)."""
