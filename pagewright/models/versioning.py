"""Pinned tool version model — one active value per run."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ToolVersionPin(BaseModel):
    """The exact generator version declared for a reproducible build.

    Version history lives in source control; the pipeline only ever holds
    the single value read at the start of the Build stage.
    """

    model_config = ConfigDict(frozen=True)

    key: str = "MDBOOK_VERSION"
    version: str
    source: Path | None = None

    @property
    def tag(self) -> str:
        """Release tag for this version (``v0.4.25``)."""
        return f"v{self.version}"
