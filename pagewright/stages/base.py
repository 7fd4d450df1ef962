"""Stage base class: subclasses supply ``execute()``, the base owns the rest.

``run_stage()`` is final. For every stage, in every run, it checks that the
prerequisite stages passed, hashes the inputs, executes, hashes the result
and stores it in the run context for later stages.

Errors from ``execute()`` come out as ``StageExecutionError`` carrying the
original exception in ``cause``. The orchestrator maps that cause onto the
stage's terminal state (FAILED, or CANCELLED for a superseded run).
"""

from __future__ import annotations

import abc
import logging
from typing import Any, ClassVar, final

from pagewright.core.hasher import compute_input_hash, compute_output_hash
from pagewright.core.stage_machine import StagePrerequisiteError
from pagewright.models.stages import StageState

logger = logging.getLogger(__name__)


class StageExecutionError(RuntimeError):
    """Wraps whatever a stage raised while executing."""

    def __init__(self, stage_id: str, cause: BaseException) -> None:
        super().__init__(f"Stage {stage_id} failed: {cause}")
        self.stage_id = stage_id
        self.cause = cause


class BaseStage(abc.ABC):
    """One step of a run (Build or Deploy).

    Concrete stages provide ``stage_id``, ``display_name`` and ``execute``,
    and list the stages they depend on in ``prerequisites``.
    """

    prerequisites: ClassVar[tuple[str, ...]] = ()

    @property
    @abc.abstractmethod
    def stage_id(self) -> str:
        ...

    @property
    @abc.abstractmethod
    def display_name(self) -> str:
        ...

    @abc.abstractmethod
    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        """Do the stage's work.

        Parameters
        ----------
        run_context:
            Mutable dict carrying run-wide state: ``run_id``, ``stage_states``,
            prior stage results, the artifact handle, the cancellation token.

        Returns
        -------
        dict:
            JSON-friendly summary of what the stage produced.
        """
        ...

    # ------------------------------------------------------------------
    # Lifecycle (final)
    # ------------------------------------------------------------------

    @final
    def run_stage(self, run_context: dict[str, Any]) -> dict[str, Any]:
        """Check prerequisites, then execute with input and output hashing.

        The returned dict is ``execute()``'s result plus the ``_input_hash``
        and ``_output_hash`` keys.
        """
        self.validate_prerequisites(run_context)

        input_hash = self._compute_input_hash(run_context)
        logger.info("%s [%s] input_hash=%s", self.display_name, self.stage_id, input_hash[:12])

        try:
            result = self.execute(run_context)
        except Exception as exc:
            logger.error("%s [%s] execution failed: %s", self.display_name, self.stage_id, exc)
            raise StageExecutionError(self.stage_id, exc) from exc

        output_hash = self._compute_output_hash(result)
        logger.info("%s [%s] output_hash=%s", self.display_name, self.stage_id, output_hash[:12])

        run_context.setdefault("stage_results", {})[self.stage_id] = result
        result["_input_hash"] = input_hash
        result["_output_hash"] = output_hash
        return result

    @final
    def validate_prerequisites(self, run_context: dict[str, Any]) -> None:
        """Ensure every prerequisite stage is PASSED in ``run_context['stage_states']``."""
        stage_states: dict[str, StageState] = run_context.get("stage_states", {})
        blocking = [
            f"{prereq} is {stage_states.get(prereq, StageState.NOT_STARTED).value}"
            for prereq in self.prerequisites
            if stage_states.get(prereq, StageState.NOT_STARTED) != StageState.PASSED
        ]
        if blocking:
            raise StagePrerequisiteError(
                f"Cannot run {self.stage_id}: prerequisites not met — " + "; ".join(blocking)
            )

    @final
    def _compute_input_hash(self, run_context: dict[str, Any]) -> str:
        inputs: dict[str, Any] = {
            "run_id": run_context.get("run_id", ""),
            "prior_output_hashes": {
                sid: result.get("_output_hash", "")
                for sid, result in run_context.get("stage_results", {}).items()
            },
        }
        return compute_input_hash(self.stage_id, inputs)

    @final
    def _compute_output_hash(self, result: dict[str, Any]) -> str:
        hashable = {k: v for k, v in result.items() if not k.startswith("_")}
        return compute_output_hash(self.stage_id, hashable)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} stage_id={self.stage_id!r}>"
