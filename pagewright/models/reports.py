"""Run report — the outcome of one pipeline run."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from pagewright.models.artifacts import DeploymentResult, SiteArtifact
from pagewright.models.stages import RunState, StageState
from pagewright.models.triggers import TriggerEvent


class RunReport(BaseModel):
    """Terminal summary of a run, built from the stage machine and context."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    trigger: TriggerEvent
    state: RunState
    stage_states: dict[str, StageState]
    artifact: SiteArtifact | None = None
    deployment: DeploymentResult | None = None
    tool_version: str = ""
    error_type: str = ""
    error: str = ""
    finished_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def succeeded(self) -> bool:
        return self.state.succeeded

    @property
    def page_url(self) -> str:
        return self.deployment.page_url if self.deployment else ""
