"""Deploy stage — publish the artifact handed over by Build.

Only ever invoked with a concrete artifact from a passed Build. The archive
is re-hashed against its content address before upload. The publish call
runs while the run holds its concurrency group, and a superseded run never
reaches the hosting platform.
"""

from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import Any, ClassVar

from pagewright.core.concurrency import CancellationToken
from pagewright.core.hasher import sha256_file
from pagewright.core.publisher import Publisher
from pagewright.errors import PublishError
from pagewright.models.artifacts import SiteArtifact
from pagewright.models.stages import BUILD_STAGE_ID, DEPLOY_STAGE_ID
from pagewright.stages.base import BaseStage

logger = logging.getLogger(__name__)


class DeployStage(BaseStage):
    """Publishes a previously built artifact and returns its public URL."""

    prerequisites: ClassVar[tuple[str, ...]] = (BUILD_STAGE_ID,)

    def __init__(self, publisher: Publisher) -> None:
        self._publisher = publisher

    @property
    def stage_id(self) -> str:
        return DEPLOY_STAGE_ID

    @property
    def display_name(self) -> str:
        return "Deploy"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        artifact: SiteArtifact | None = run_context.get("artifact")
        if artifact is None:
            raise PublishError("No artifact was handed over by the Build stage")

        try:
            digest = sha256_file(artifact.archive_path)
        except OSError as exc:
            raise PublishError(f"Cannot read artifact {artifact.archive_path}: {exc}") from exc
        if f"sha256:{digest}" != artifact.content_address:
            raise PublishError(
                f"Artifact {artifact.archive_path} no longer matches {artifact.content_address}"
            )

        token: CancellationToken | None = run_context.get("cancellation")
        with token.exclusive() if token is not None else nullcontext():
            deployment = self._publisher.publish(artifact)
        run_context["deployment"] = deployment

        return {
            "page_url": deployment.page_url,
            "environment": deployment.environment,
            "artifact_address": deployment.artifact_address,
            "_artifact_refs": [artifact.content_address],
        }
