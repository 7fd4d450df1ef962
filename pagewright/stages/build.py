"""Build stage — source tree in, one immutable site artifact out.

Steps, each completing before the next begins:
    1. Resolve the pinned generator version from the declaration file.
    2. Provision the generator at exactly that version.
    3. Run the generator into the fixed output directory.
    4. Overlay the static-assets directory into the output.
    5. Package the output as a named artifact.

Local configuration (version declaration, assets directory) is checked
before provisioning so that configuration errors never reach the network.
Nothing is published here.
"""

from __future__ import annotations

import logging
from typing import Any

from pagewright.core.assets import overlay_assets
from pagewright.core.env_declaration import resolve_tool_version
from pagewright.core.generator import MdBookGenerator
from pagewright.core.packager import SitePackager
from pagewright.core.process import CommandRunner, run_command
from pagewright.core.provisioner import ToolProvisioner
from pagewright.errors import PackagingError
from pagewright.models.config import PipelineConfig
from pagewright.models.stages import BUILD_STAGE_ID
from pagewright.stages.base import BaseStage

logger = logging.getLogger(__name__)


class BuildStage(BaseStage):
    """Produces a deployable static-site artifact from source."""

    def __init__(
        self,
        config: PipelineConfig,
        provisioner: ToolProvisioner,
        packager: SitePackager,
        *,
        runner: CommandRunner = run_command,
    ) -> None:
        self._config = config
        self._provisioner = provisioner
        self._packager = packager
        self._runner = runner

    @property
    def stage_id(self) -> str:
        return BUILD_STAGE_ID

    @property
    def display_name(self) -> str:
        return "Build"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        cfg = self._config

        pin = resolve_tool_version(cfg.env_file_path, cfg.version_key)
        run_context["tool_version"] = pin

        if not cfg.assets_path.is_dir():
            raise PackagingError(f"Assets directory not found: {cfg.assets_path}")

        binary = self._provisioner.provision(pin)

        generator = MdBookGenerator(binary, runner=self._runner)
        output_dir = generator.build(cfg.source_dir, cfg.output_path)

        overlay = overlay_assets(cfg.assets_path, output_dir)

        artifact = self._packager.package(output_dir, cfg.artifact_name, overlay)
        run_context["artifact"] = artifact

        return {
            "tool_key": pin.key,
            "tool_version": pin.version,
            "artifact_name": artifact.name,
            "artifact_address": artifact.content_address,
            "file_count": artifact.file_count,
            "asset_count": len(artifact.asset_files),
            "collisions": artifact.collisions,
            "tree_digest": artifact.tree_digest,
            "_artifact_refs": [artifact.content_address],
        }
