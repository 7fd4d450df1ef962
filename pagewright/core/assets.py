"""Overlay the static-assets directory onto the generated site.

Equivalent to ``cp -r assets <output>/``: the directory lands as
``<output>/assets`` and generator output is never deleted. When a
generated file and an asset share a path, the asset wins; files are
copied in sorted order so the result is deterministic.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from pagewright.core.hasher import walk_tree
from pagewright.errors import PackagingError

logger = logging.getLogger(__name__)


class OverlayResult(BaseModel):
    """Relative paths (from the output root) touched by an overlay."""

    model_config = ConfigDict(frozen=True)

    copied: list[str] = []
    collisions: list[str] = []


def overlay_assets(assets_dir: Path, output_dir: Path) -> OverlayResult:
    """Copy *assets_dir* recursively into *output_dir*.

    Raises PackagingError if the assets directory is missing, since
    published pages may reference its files.
    """
    assets_dir = Path(assets_dir)
    output_dir = Path(output_dir)
    if not assets_dir.is_dir():
        raise PackagingError(f"Assets directory not found: {assets_dir}")
    if not output_dir.is_dir():
        raise PackagingError(f"Output directory not found: {output_dir}")

    destination_root = output_dir / assets_dir.name
    if destination_root.exists() and not destination_root.is_dir():
        raise PackagingError(
            f"Cannot overlay {assets_dir}: {destination_root} exists and is not a directory"
        )

    destination_root.mkdir(exist_ok=True)
    copied: list[str] = []
    collisions: list[str] = []
    for source in walk_tree(assets_dir):
        relative = source.relative_to(assets_dir)
        target = destination_root / relative
        rel_name = target.relative_to(output_dir).as_posix()
        if source.is_dir():
            if target.exists() and not target.is_dir():
                raise PackagingError(
                    f"Asset directory {relative} collides with generated file {rel_name}"
                )
            target.mkdir(parents=True, exist_ok=True)
            continue

        if not source.exists():
            raise PackagingError(f"Asset {relative} is a dangling symlink")
        if target.is_dir():
            raise PackagingError(
                f"Asset file {relative} collides with generated directory {rel_name}"
            )
        if target.exists():
            collisions.append(rel_name)
            logger.warning("Asset %s overwrites generated %s", relative, rel_name)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        copied.append(rel_name)
        logger.debug("'%s' -> '%s'", source, target)

    logger.info(
        "Copied %d asset file(s) into %s (%d overwritten)",
        len(copied),
        destination_root,
        len(collisions),
    )
    return OverlayResult(copied=copied, collisions=collisions)
