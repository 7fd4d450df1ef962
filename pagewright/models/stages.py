"""Stage and run state models — strictly linear, no retry transitions."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class StageState(str, Enum):
    """State of a single pipeline stage within one run."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"


# Valid stage transitions — enforced by StageMachine.
# A failed run requires a new trigger, so every outcome is terminal.
VALID_TRANSITIONS: dict[StageState, set[StageState]] = {
    StageState.NOT_STARTED: {
        StageState.RUNNING,
        StageState.BLOCKED,
        StageState.CANCELLED,
    },
    StageState.RUNNING: {StageState.PASSED, StageState.FAILED, StageState.CANCELLED},
    StageState.PASSED: set(),
    StageState.FAILED: set(),
    StageState.BLOCKED: set(),
    StageState.CANCELLED: set(),
}


class RunState(str, Enum):
    """Combined state of a pipeline run, derived from its stage states.

    ``Idle -> Building -> {BuildFailed | Built} -> Deploying
    -> {DeployFailed | Deployed}``, plus ``Cancelled`` when a newer run
    supersedes this one and ``Skipped`` when the trigger only builds.
    """

    IDLE = "idle"
    BUILDING = "building"
    BUILD_FAILED = "build_failed"
    BUILT = "built"
    DEPLOYING = "deploying"
    DEPLOY_FAILED = "deploy_failed"
    DEPLOYED = "deployed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"

    @property
    def succeeded(self) -> bool:
        return self in (RunState.DEPLOYED, RunState.SKIPPED)


class StageDefinition(BaseModel):
    """Defines a pipeline stage and its prerequisites.

    A stage cannot enter RUNNING unless every prerequisite is PASSED.
    """

    model_config = ConfigDict(frozen=True)

    stage_id: str
    display_name: str
    prerequisites: list[str] = []


BUILD_STAGE_ID = "build"
DEPLOY_STAGE_ID = "deploy"

DEFAULT_STAGE_DEFINITIONS: list[StageDefinition] = [
    StageDefinition(
        stage_id=BUILD_STAGE_ID,
        display_name="Build",
        prerequisites=[],
    ),
    StageDefinition(
        stage_id=DEPLOY_STAGE_ID,
        display_name="Deploy",
        prerequisites=[BUILD_STAGE_ID],
    ),
]
