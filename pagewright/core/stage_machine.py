"""Deterministic stage state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- Prerequisites PASSED before a stage enters RUNNING
- Dependents BLOCKED when a prerequisite fails
- Every transition recorded in the run log
"""

from __future__ import annotations

from pagewright.core.run_log import RunLog
from pagewright.models.ledger import RunLogEntry
from pagewright.models.stages import (
    BUILD_STAGE_ID,
    DEPLOY_STAGE_ID,
    VALID_TRANSITIONS,
    RunState,
    StageDefinition,
    StageState,
)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class StagePrerequisiteError(RuntimeError):
    """Raised when a stage cannot run because prerequisites are not met."""


class StageMachine:
    """Tracks stage states for one run and records every transition.

    Parameters
    ----------
    log:
        The run log to record transitions into.
    definitions:
        Stage plan for the run, in execution order.
    """

    def __init__(self, log: RunLog, definitions: list[StageDefinition]) -> None:
        self._log = log
        self._definitions = {sd.stage_id: sd for sd in definitions}
        self._order = [sd.stage_id for sd in definitions]
        self._states: dict[str, StageState] = {
            sid: StageState.NOT_STARTED for sid in self._order
        }

    @property
    def run_id(self) -> str:
        return self._log.run_id

    def get_state(self, stage_id: str) -> StageState:
        return self._states[stage_id]

    def get_all_states(self) -> dict[str, StageState]:
        return dict(self._states)

    # ------------------------------------------------------------------
    # Transition logic
    # ------------------------------------------------------------------

    def transition(
        self,
        stage_id: str,
        target_state: StageState,
        *,
        input_hash: str = "",
        output_hash: str = "",
        artifact_references: list[str] | None = None,
        detail: str = "",
    ) -> RunLogEntry:
        """Move a stage to *target_state*, returning the sealed log entry."""
        if stage_id not in self._states:
            raise InvalidTransitionError(f"Unknown stage {stage_id!r}")
        current = self._states[stage_id]

        allowed = VALID_TRANSITIONS.get(current, set())
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {stage_id} from {current.value} to {target_state.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )

        if target_state == StageState.RUNNING:
            blocking = self.blocking_reasons(stage_id)
            if blocking:
                raise StagePrerequisiteError(
                    f"Cannot start {stage_id}: prerequisites not met. "
                    f"Blocked by: {'; '.join(blocking)}"
                )

        sealed = self._record(
            stage_id,
            current,
            target_state,
            input_hash=input_hash,
            output_hash=output_hash,
            artifact_references=artifact_references or [],
            detail=detail,
        )

        cascade = {
            StageState.FAILED: StageState.BLOCKED,
            StageState.CANCELLED: StageState.CANCELLED,
        }.get(target_state)
        if cascade is not None:
            for dependent in self.dependents(stage_id):
                if self._states[dependent] == StageState.NOT_STARTED:
                    self._record(
                        dependent,
                        StageState.NOT_STARTED,
                        cascade,
                        detail=f"{stage_id} {target_state.value}",
                    )

        return sealed

    def _record(
        self,
        stage_id: str,
        current: StageState,
        target: StageState,
        **fields,
    ) -> RunLogEntry:
        entry = RunLogEntry(
            run_id=self.run_id,
            stage_id=stage_id,
            state_transition=f"{current.value}->{target.value}",
            **fields,
        )
        sealed = self._log.append(entry)
        self._states[stage_id] = target
        return sealed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def blocking_reasons(self, stage_id: str) -> list[str]:
        reasons = []
        for prereq in self._definitions[stage_id].prerequisites:
            state = self._states.get(prereq, StageState.NOT_STARTED)
            if state != StageState.PASSED:
                reasons.append(f"{prereq} is {state.value}")
        return reasons

    def dependents(self, stage_id: str) -> list[str]:
        """Transitive dependents of *stage_id*, in plan order."""
        found: set[str] = {stage_id}
        for sid in self._order:
            if found.intersection(self._definitions[sid].prerequisites):
                found.add(sid)
        found.discard(stage_id)
        return [sid for sid in self._order if sid in found]

    def run_state(self, *, deploy_planned: bool = True) -> RunState:
        """Project the stage states onto the combined run state."""
        build = self._states.get(BUILD_STAGE_ID, StageState.NOT_STARTED)
        deploy = self._states.get(DEPLOY_STAGE_ID, StageState.NOT_STARTED)

        if StageState.CANCELLED in (build, deploy):
            return RunState.CANCELLED
        if build == StageState.NOT_STARTED:
            return RunState.IDLE
        if build == StageState.RUNNING:
            return RunState.BUILDING
        if build == StageState.FAILED:
            return RunState.BUILD_FAILED
        # build passed
        if deploy == StageState.RUNNING:
            return RunState.DEPLOYING
        if deploy == StageState.FAILED:
            return RunState.DEPLOY_FAILED
        if deploy == StageState.PASSED:
            return RunState.DEPLOYED
        return RunState.BUILT if deploy_planned else RunState.SKIPPED
