"""Pipeline stages, in execution order: Build, then Deploy."""

from __future__ import annotations

from pagewright.stages.base import BaseStage, StageExecutionError
from pagewright.stages.build import BuildStage
from pagewright.stages.deploy import DeployStage

STAGE_ORDER: list[str] = ["build", "deploy"]

__all__ = [
    "BaseStage",
    "BuildStage",
    "DeployStage",
    "StageExecutionError",
    "STAGE_ORDER",
]
