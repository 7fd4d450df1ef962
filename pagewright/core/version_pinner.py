"""Version pinning — enforces that the provisioned generator matches the pin.

The pin is read once per Build; the pinner compares it against whatever
version string the installed binary reports and fails hard on drift.
"""

from __future__ import annotations

import re

from pagewright.errors import VersionDriftError
from pagewright.models.versioning import ToolVersionPin

# "mdbook v0.4.25", "mdbook 0.4.25", "0.4.25"
_REPORTED_RE = re.compile(r"v?(\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.+-]+)?)")


def parse_reported_version(output: str) -> str:
    """Extract the version number from a ``--version`` banner.

    Returns the empty string if no version is present.
    """
    match = _REPORTED_RE.search(output)
    return match.group(1) if match else ""


class VersionPinner:
    """Records the run's pin and detects drift against installed tools."""

    def __init__(self, pin: ToolVersionPin) -> None:
        self._pin = pin

    @property
    def pin(self) -> ToolVersionPin:
        return self._pin

    def check_drift(self, reported: str, *, strict: bool = True) -> list[str]:
        """Compare a tool's ``--version`` output against the pin.

        Returns a list of drift descriptions. Empty list means no drift.
        Raises VersionDriftError if strict=True and drift is detected.
        """
        drifts: list[str] = []
        installed = parse_reported_version(reported)
        if installed != self._pin.version:
            drifts.append(
                f"{self._pin.key}: pinned={self._pin.version!r}, "
                f"installed={installed or reported.strip()!r}"
            )

        if strict and drifts:
            raise VersionDriftError(f"Version drift detected: {'; '.join(drifts)}")

        return drifts
