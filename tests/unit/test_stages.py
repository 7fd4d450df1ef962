"""Tests for the Build and Deploy stages and the enforced stage lifecycle."""

from __future__ import annotations

import tarfile
from pathlib import Path

import pytest

from conftest import FakeMdBook, RecordingPublisher
from pagewright.core.concurrency import CancellationToken, ConcurrencyGroups
from pagewright.core.packager import SitePackager, list_archive
from pagewright.core.provisioner import ToolProvisioner
from pagewright.core.stage_machine import StagePrerequisiteError
from pagewright.errors import (
    GenerationError,
    PackagingError,
    PublishError,
    RunCancelledError,
    VersionDeclarationError,
)
from pagewright.models.artifacts import SiteArtifact
from pagewright.models.config import PipelineConfig
from pagewright.models.stages import StageState
from pagewright.models.versioning import ToolVersionPin
from pagewright.stages import STAGE_ORDER, BuildStage, DeployStage, StageExecutionError


@pytest.fixture
def build_stage(
    pipeline_config: PipelineConfig,
    provisioner: ToolProvisioner,
    packager: SitePackager,
    fake_mdbook: FakeMdBook,
) -> BuildStage:
    return BuildStage(pipeline_config, provisioner, packager, runner=fake_mdbook)


def _passed_build_context(artifact: SiteArtifact, **extra) -> dict:
    return {
        "run_id": "pw-test",
        "stage_states": {"build": StageState.PASSED, "deploy": StageState.RUNNING},
        "artifact": artifact,
        **extra,
    }


class TestStageOrder:
    def test_build_then_deploy(self):
        assert STAGE_ORDER == ["build", "deploy"]
        assert DeployStage.prerequisites == ("build",)
        assert BuildStage.prerequisites == ()


class TestBuildStage:
    def test_produces_artifact(self, build_stage: BuildStage, book: Path):
        ctx: dict = {"run_id": "pw-test"}
        result = build_stage.run_stage(ctx)

        artifact: SiteArtifact = ctx["artifact"]
        assert result["tool_version"] == "0.4.25"
        assert result["artifact_name"] == "github-pages"
        assert result["artifact_address"] == artifact.content_address
        assert result["_input_hash"] and result["_output_hash"]
        assert ctx["tool_version"].version == "0.4.25"
        assert "assets/intro_demo.mp4" in list_archive(artifact.archive_path)
        assert "index.html" in list_archive(artifact.archive_path)

    def test_generator_invoked_with_fixed_output(self, build_stage: BuildStage, fake_mdbook: FakeMdBook, book: Path):
        build_stage.run_stage({"run_id": "pw-test"})
        binary = build_stage._provisioner.binary_path(ToolVersionPin(version="0.4.25"))
        output = (book / "_site").resolve()
        assert fake_mdbook.build_calls == [[str(binary), "build", "-d", str(output)]]

    def test_asset_bytes_identical(self, build_stage: BuildStage, book: Path):
        ctx: dict = {"run_id": "pw-test"}
        build_stage.run_stage(ctx)
        with tarfile.open(ctx["artifact"].archive_path) as tar:
            data = tar.extractfile("./assets/intro_demo.mp4").read()
        assert data == (book / "assets" / "intro_demo.mp4").read_bytes()

    def test_missing_declaration_stops_before_provisioning(
        self, build_stage: BuildStage, book: Path, fake_mdbook: FakeMdBook
    ):
        (book / ".env").unlink()
        ctx: dict = {"run_id": "pw-test"}
        with pytest.raises(StageExecutionError) as excinfo:
            build_stage.run_stage(ctx)
        assert isinstance(excinfo.value.cause, VersionDeclarationError)
        assert fake_mdbook.calls == []
        assert "artifact" not in ctx

    def test_missing_assets_stops_before_provisioning(
        self, build_stage: BuildStage, book: Path, fake_mdbook: FakeMdBook
    ):
        (book / "assets" / "intro_demo.mp4").unlink()
        (book / "assets").rmdir()
        with pytest.raises(StageExecutionError) as excinfo:
            build_stage.run_stage({"run_id": "pw-test"})
        assert isinstance(excinfo.value.cause, PackagingError)
        assert fake_mdbook.calls == []

    def test_generation_error(self, build_stage: BuildStage, fake_mdbook: FakeMdBook):
        fake_mdbook.fail_with = "[ERROR] (mdbook::utils): Error: Couldn't open SUMMARY.md\n"
        with pytest.raises(StageExecutionError) as excinfo:
            build_stage.run_stage({"run_id": "pw-test"})
        cause = excinfo.value.cause
        assert isinstance(cause, GenerationError)
        assert cause.output == fake_mdbook.fail_with

    def test_collision_reported(self, build_stage: BuildStage, fake_mdbook: FakeMdBook):
        fake_mdbook.extra_files = {"assets/intro_demo.mp4": b"placeholder"}
        result = build_stage.run_stage({"run_id": "pw-test"})
        assert result["collisions"] == ["assets/intro_demo.mp4"]


class TestDeployStage:
    def test_publishes_artifact(self, site_artifact: SiteArtifact, publisher: RecordingPublisher):
        ctx = _passed_build_context(site_artifact)
        result = DeployStage(publisher).run_stage(ctx)

        assert publisher.published == [site_artifact]
        assert result["page_url"] == "https://octo.github.io/handbook/"
        assert ctx["deployment"].artifact_address == site_artifact.content_address

    def test_requires_passed_build(self, site_artifact: SiteArtifact, publisher: RecordingPublisher):
        ctx = _passed_build_context(site_artifact)
        ctx["stage_states"]["build"] = StageState.FAILED
        with pytest.raises(StagePrerequisiteError, match="build is failed"):
            DeployStage(publisher).run_stage(ctx)
        assert publisher.published == []

    def test_requires_artifact(self, publisher: RecordingPublisher):
        ctx = {"run_id": "pw-test", "stage_states": {"build": StageState.PASSED}}
        with pytest.raises(StageExecutionError) as excinfo:
            DeployStage(publisher).run_stage(ctx)
        assert isinstance(excinfo.value.cause, PublishError)

    def test_cancelled_run_never_publishes(self, site_artifact: SiteArtifact, publisher: RecordingPublisher):
        token = CancellationToken("pw-test", "pages")
        token.cancel("superseded by run pw-newer")
        ctx = _passed_build_context(site_artifact, cancellation=token)
        with pytest.raises(StageExecutionError) as excinfo:
            DeployStage(publisher).run_stage(ctx)
        assert isinstance(excinfo.value.cause, RunCancelledError)
        assert publisher.published == []

    def test_publish_failure(self, site_artifact: SiteArtifact, failing_publisher: RecordingPublisher):
        with pytest.raises(StageExecutionError) as excinfo:
            DeployStage(failing_publisher).run_stage(_passed_build_context(site_artifact))
        assert isinstance(excinfo.value.cause, PublishError)

    def test_altered_archive_never_publishes(self, site_artifact: SiteArtifact, publisher: RecordingPublisher):
        stale = site_artifact.model_copy(update={"content_address": "sha256:" + "0" * 64})
        with pytest.raises(StageExecutionError) as excinfo:
            DeployStage(publisher).run_stage(_passed_build_context(stale))
        assert isinstance(excinfo.value.cause, PublishError)
        assert "no longer matches" in str(excinfo.value.cause)
        assert publisher.published == []

    def test_superseded_in_group_never_publishes(
        self, site_artifact: SiteArtifact, publisher: RecordingPublisher, groups: ConcurrencyGroups
    ):
        token = groups.enter("pages", "pw-test")
        groups.enter("pages", "pw-newer")
        ctx = _passed_build_context(site_artifact, cancellation=token)
        with pytest.raises(StageExecutionError) as excinfo:
            DeployStage(publisher).run_stage(ctx)
        assert isinstance(excinfo.value.cause, RunCancelledError)
        assert "pw-newer" in str(excinfo.value.cause)
        assert publisher.published == []
