"""Pagewright data models — all Pydantic v2, all frozen (immutable)."""

from pagewright.models.artifacts import DeploymentResult, SiteArtifact
from pagewright.models.config import PipelineConfig, RunConfig
from pagewright.models.ledger import RunLogEntry
from pagewright.models.reports import RunReport
from pagewright.models.stages import (
    BUILD_STAGE_ID,
    DEFAULT_STAGE_DEFINITIONS,
    DEPLOY_STAGE_ID,
    VALID_TRANSITIONS,
    RunState,
    StageDefinition,
    StageState,
)
from pagewright.models.triggers import EventName, TriggerDecision, TriggerEvent, TriggerPolicy
from pagewright.models.versioning import ToolVersionPin

__all__ = [
    # versioning
    "ToolVersionPin",
    # stages
    "StageState",
    "RunState",
    "StageDefinition",
    "VALID_TRANSITIONS",
    "DEFAULT_STAGE_DEFINITIONS",
    "BUILD_STAGE_ID",
    "DEPLOY_STAGE_ID",
    # triggers
    "EventName",
    "TriggerEvent",
    "TriggerDecision",
    "TriggerPolicy",
    # artifacts
    "SiteArtifact",
    "DeploymentResult",
    # run log
    "RunLogEntry",
    # reports
    "RunReport",
    # config
    "PipelineConfig",
    "RunConfig",
]
