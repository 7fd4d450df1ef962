"""Pipeline orchestrator — runs Build then Deploy for one trigger event.

The Orchestrator wires together the run log, stage machine, artifact
store, provisioner, publisher and concurrency groups. Control flow is
strictly linear: Deploy runs only after Build passed in the same run, and
only when the trigger grants the publish permission. Any failure ends the
run; there is no retry transition.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pagewright.config import ProdConfig
from pagewright.core.artifact_store import ArtifactStore
from pagewright.core.concurrency import CancellationToken, ConcurrencyGroups
from pagewright.core.packager import SitePackager
from pagewright.core.process import CommandRunner, run_command
from pagewright.core.provisioner import ToolProvisioner
from pagewright.core.publisher import Publisher, publisher_from_settings
from pagewright.core.run_log import RunLog
from pagewright.core.stage_machine import StageMachine
from pagewright.errors import RunCancelledError, TriggerRejectedError
from pagewright.models.artifacts import DeploymentResult, SiteArtifact
from pagewright.models.config import PipelineConfig, RunConfig
from pagewright.models.reports import RunReport
from pagewright.models.stages import (
    BUILD_STAGE_ID,
    DEFAULT_STAGE_DEFINITIONS,
    DEPLOY_STAGE_ID,
    StageState,
)
from pagewright.models.triggers import TriggerEvent, TriggerPolicy
from pagewright.stages.base import BaseStage, StageExecutionError
from pagewright.stages.build import BuildStage
from pagewright.stages.deploy import DeployStage

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs the two-stage pipeline for a single trigger event.

    Parameters
    ----------
    config:
        Pipeline configuration. Built from ``prod_config`` if not provided.
    prod_config:
        Environment settings (publish target, provisioning options).
    provisioner, publisher, runner:
        Collaborator overrides; defaults are built from the settings.
    groups:
        Concurrency-group registry. Defaults to one kept under
        ``config.groups_path``, shared with every process using that path.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        run_id: str | None = None,
        *,
        prod_config: ProdConfig | None = None,
        provisioner: ToolProvisioner | None = None,
        publisher: Publisher | None = None,
        runner: CommandRunner = run_command,
        groups: ConcurrencyGroups | None = None,
    ) -> None:
        self._prod_config = prod_config or ProdConfig()
        self.config = config or PipelineConfig.from_settings(self._prod_config)

        self.artifact_store = ArtifactStore(self.config.artifact_store_dir)
        self.packager = SitePackager(self.artifact_store)
        self.provisioner = provisioner or ToolProvisioner(
            self.config.tools_path,
            use_system=self._prod_config.use_system_generator,
            release_base_url=self._prod_config.release_base_url,
            runner=runner,
            timeout=self._prod_config.request_timeout_seconds,
        )
        self._publisher = publisher
        self._runner = runner
        self.policy = TriggerPolicy(self.config.deploy_branch)
        self.groups = groups or ConcurrencyGroups(self.config.groups_path)

        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.run_id = run_id or f"pw-{ts}-{uuid.uuid4().hex[:6]}"
        self.log = RunLog(self.run_id)
        self.stage_machine = StageMachine(self.log, DEFAULT_STAGE_DEFINITIONS)
        self.run_config: RunConfig | None = None
        self.context: dict[str, Any] = {"run_id": self.run_id}

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    def resolve_publisher(self) -> Publisher:
        """The publish target, resolved from settings on first use."""
        if self._publisher is None:
            self._publisher = publisher_from_settings(self._prod_config)
        return self._publisher

    def build_stage(self) -> BuildStage:
        return BuildStage(self.config, self.provisioner, self.packager, runner=self._runner)

    def deploy_stage(self) -> DeployStage:
        return DeployStage(self.resolve_publisher())

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def start_run(self, trigger: TriggerEvent) -> RunConfig:
        """Apply the trigger policy and create the run configuration."""
        decision = self.policy.decide(trigger)
        if not decision.run:
            raise TriggerRejectedError(decision.reason)

        self.run_config = RunConfig(
            run_id=self.run_id,
            trigger=trigger,
            deploy_allowed=decision.deploy,
            pipeline_config=self.config,
        )
        self.context["trigger"] = trigger
        logger.info("Run %s started: %s", self.run_id, decision.reason)
        return self.run_config

    def run(self, trigger: TriggerEvent) -> RunReport:
        """Execute the whole pipeline for *trigger* and report the outcome.

        Stage failures end the run and are reported, not raised. A trigger
        that is not a pipeline event raises TriggerRejectedError.
        """
        run_config = self.start_run(trigger)
        if run_config.deploy_allowed:
            # configuration errors surface before any stage runs
            self.resolve_publisher()

        token = self.groups.enter(self.config.concurrency_group, self.run_id)
        self.context["cancellation"] = token
        try:
            if self._cancel_if_superseded(token, BUILD_STAGE_ID):
                return self.report()
            try:
                self.execute_stage(self.build_stage())
            except StageExecutionError:
                return self.report()

            if not run_config.deploy_allowed:
                logger.info("Run %s: deploy skipped for %s", self.run_id, trigger.event_name.value)
                return self.report()

            if self._cancel_if_superseded(token, DEPLOY_STAGE_ID):
                return self.report()
            try:
                self.execute_stage(self.deploy_stage())
            except StageExecutionError:
                return self.report()
            return self.report()
        finally:
            self.groups.leave(token)

    def build(self) -> SiteArtifact:
        """Run only the Build stage; raises on failure."""
        self.execute_stage(self.build_stage())
        return self.context["artifact"]

    def deploy(self, artifact: SiteArtifact) -> DeploymentResult:
        """Publish an artifact from a previous, separate Build invocation.

        The Build stage of this run is recorded as passed with the handed
        over artifact so that the Deploy prerequisite is satisfied. The
        publish happens inside the concurrency group, so a newer run that
        claims the group first leaves this one cancelled.
        """
        self.resolve_publisher()
        self.stage_machine.transition(BUILD_STAGE_ID, StageState.RUNNING)
        self.stage_machine.transition(
            BUILD_STAGE_ID,
            StageState.PASSED,
            artifact_references=[artifact.content_address],
            detail="artifact handed over",
        )
        self.context["artifact"] = artifact

        token = self.groups.enter(self.config.concurrency_group, self.run_id)
        self.context["cancellation"] = token
        try:
            self.execute_stage(self.deploy_stage())
        finally:
            self.groups.leave(token)
        return self.context["deployment"]

    # ------------------------------------------------------------------
    # Stage execution
    # ------------------------------------------------------------------

    def execute_stage(self, stage: BaseStage) -> dict[str, Any]:
        """Run one stage through the state machine.

        RUNNING is entered only when prerequisites have passed; the stage
        then ends PASSED, FAILED (dependents blocked) or CANCELLED.
        """
        self.stage_machine.transition(stage.stage_id, StageState.RUNNING)
        self.context["stage_states"] = self.stage_machine.get_all_states()

        try:
            result = stage.run_stage(self.context)
        except StageExecutionError as exc:
            target = (
                StageState.CANCELLED
                if isinstance(exc.cause, RunCancelledError)
                else StageState.FAILED
            )
            self.stage_machine.transition(stage.stage_id, target, detail=str(exc.cause))
            self.context["error"] = exc.cause
            raise

        self.stage_machine.transition(
            stage.stage_id,
            StageState.PASSED,
            input_hash=result["_input_hash"],
            output_hash=result["_output_hash"],
            artifact_references=result.get("_artifact_refs", []),
        )
        self.context["stage_states"] = self.stage_machine.get_all_states()
        return result

    def _cancel_if_superseded(self, token: CancellationToken, stage_id: str) -> bool:
        if not token.cancelled:
            return False
        logger.warning("Run %s cancelled before %s: %s", self.run_id, stage_id, token.reason)
        self.stage_machine.transition(stage_id, StageState.CANCELLED, detail=token.reason)
        self.context["error"] = RunCancelledError(token.reason)
        return True

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def report(self) -> RunReport:
        """Snapshot the run as a RunReport."""
        error: BaseException | None = self.context.get("error")
        pin = self.context.get("tool_version")
        deploy_planned = bool(self.run_config and self.run_config.deploy_allowed)
        return RunReport(
            run_id=self.run_id,
            trigger=self.context.get("trigger") or TriggerEvent(event_name="workflow_dispatch"),
            state=self.stage_machine.run_state(deploy_planned=deploy_planned),
            stage_states=self.stage_machine.get_all_states(),
            artifact=self.context.get("artifact"),
            deployment=self.context.get("deployment"),
            tool_version=pin.version if pin else "",
            error_type=type(error).__name__ if error else "",
            error=str(error) if error else "",
        )

    def export_log(self, directory: Path) -> Path:
        """Write this run's transition log into *directory*."""
        return self.log.export(Path(directory) / f"{self.run_id}.json")
