"""Pipeline and run configuration models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from pagewright.config import ProdConfig
from pagewright.models.triggers import TriggerEvent


class PipelineConfig(BaseModel):
    """Project-level paths and names for the build-and-publish pipeline.

    Relative paths resolve against ``source_dir``.
    """

    model_config = ConfigDict(frozen=True)

    source_dir: Path = Path(".")
    output_dir: Path = Path("_site")
    assets_dir: Path = Path("assets")
    env_file: Path = Path(".env")
    version_key: str = "MDBOOK_VERSION"
    tools_dir: Path = Path(".pagewright/tools")
    artifact_store_path: Path = Path(".pagewright/artifacts")
    artifact_name: str = "github-pages"
    deploy_branch: str = "doc"
    concurrency_group: str = "pages"
    groups_dir: Path = Path(".pagewright/groups")
    pages_environment: str = "github-pages"

    @classmethod
    def from_settings(cls, settings: ProdConfig) -> PipelineConfig:
        return cls(
            source_dir=settings.source_dir,
            output_dir=settings.output_dir,
            assets_dir=settings.assets_dir,
            env_file=settings.env_file,
            version_key=settings.version_key,
            tools_dir=settings.tools_dir,
            artifact_store_path=settings.artifact_store_path,
            artifact_name=settings.artifact_name,
            deploy_branch=settings.deploy_branch,
            concurrency_group=settings.concurrency_group,
            groups_dir=settings.groups_dir,
            pages_environment=settings.pages_environment,
        )

    def resolve(self, path: Path) -> Path:
        """Resolve *path* against the source tree unless already absolute."""
        return path if path.is_absolute() else self.source_dir / path

    @property
    def output_path(self) -> Path:
        return self.resolve(self.output_dir)

    @property
    def assets_path(self) -> Path:
        return self.resolve(self.assets_dir)

    @property
    def env_file_path(self) -> Path:
        return self.resolve(self.env_file)

    @property
    def tools_path(self) -> Path:
        return self.resolve(self.tools_dir)

    @property
    def artifact_store_dir(self) -> Path:
        return self.resolve(self.artifact_store_path)

    @property
    def groups_path(self) -> Path:
        return self.resolve(self.groups_dir)


class RunConfig(BaseModel):
    """Per-run configuration, created when a trigger starts a run."""

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=lambda: f"pw-{uuid.uuid4().hex[:12]}")
    trigger: TriggerEvent
    deploy_allowed: bool = False
    pipeline_config: PipelineConfig = PipelineConfig()
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
