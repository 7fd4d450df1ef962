"""Artifact and deployment models (immutable)."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class SiteArtifact(BaseModel):
    """A packaged, immutable bundle of the generated site plus its assets.

    ``content_address`` is the SHA-256 of the archive bytes and doubles as
    the integrity check. The archive itself lives in the artifact store.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    content_address: str  # "sha256:<hex>"
    archive_path: Path
    file_count: int
    size_bytes: int
    tree_digest: str = ""  # SHA-256 over (relative path, file digest) pairs
    asset_files: list[str] = []  # relative to the output root, e.g. "assets/intro_demo.mp4"
    collisions: list[str] = []  # generator files overwritten by assets
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class DeploymentResult(BaseModel):
    """Outcome of a successful publish."""

    model_config = ConfigDict(frozen=True)

    page_url: str
    environment: str
    artifact_address: str
    deployed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
