"""Package the output tree as a single named, deterministic tar artifact.

The archive layout matches what static-hosting deploy steps expect: paths
are relative to the output root (``./index.html``, ``./assets/...``).
Entries are sorted and carry normalised ownership and timestamps so the
same tree always yields the same content address.
"""

from __future__ import annotations

import logging
import tarfile
import tempfile
from pathlib import Path

from pagewright.core.artifact_store import ArtifactStore
from pagewright.core.assets import OverlayResult
from pagewright.core.hasher import sha256_file, tree_digest, walk_tree
from pagewright.errors import PackagingError
from pagewright.models.artifacts import SiteArtifact

logger = logging.getLogger(__name__)

EXCLUDED_NAMES: frozenset[str] = frozenset({".git", ".github"})


def _normalise(info: tarfile.TarInfo) -> tarfile.TarInfo:
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    info.mtime = 0
    info.mode = 0o755 if info.isdir() else 0o644
    return info


def iter_site_files(root: Path) -> list[Path]:
    """All files and directories below *root*, sorted, minus VCS metadata."""
    entries: list[Path] = []
    for path in walk_tree(root):
        relative = path.relative_to(root)
        if EXCLUDED_NAMES.intersection(relative.parts):
            continue
        entries.append(path)
    return entries


class SitePackager:
    """Turns an output directory into a stored ``SiteArtifact``."""

    def __init__(self, store: ArtifactStore) -> None:
        self._store = store

    def package(
        self,
        output_dir: Path,
        name: str,
        overlay: OverlayResult | None = None,
    ) -> SiteArtifact:
        output_dir = Path(output_dir)
        if not output_dir.is_dir():
            raise PackagingError(f"Nothing to package: {output_dir} does not exist")

        entries = iter_site_files(output_dir)
        files = [p for p in entries if p.is_file()]
        if not files:
            raise PackagingError(f"Nothing to package: {output_dir} is empty")

        with tempfile.NamedTemporaryFile(
            dir=self._store.base_path, suffix=".tar.part", delete=False
        ) as tmp:
            tmp_path = Path(tmp.name)
        try:
            with tarfile.open(tmp_path, mode="w", format=tarfile.PAX_FORMAT) as tar:
                for path in entries:
                    arcname = f"./{path.relative_to(output_dir).as_posix()}"
                    # dereference symlinks: the hosting platform serves plain files
                    info = tar.gettarinfo(str(path.resolve()), arcname=arcname)
                    info = _normalise(info)
                    if info.isfile():
                        with path.open("rb") as fh:
                            tar.addfile(info, fh)
                    else:
                        tar.addfile(info)
            size = tmp_path.stat().st_size
            address, archive_path = self._store.store_file(tmp_path, name=name)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise PackagingError(f"Failed to package {output_dir}: {exc}") from exc

        artifact = SiteArtifact(
            name=name,
            content_address=address,
            archive_path=archive_path,
            file_count=len(files),
            size_bytes=size,
            tree_digest=tree_digest(output_dir),
            asset_files=list(overlay.copied) if overlay else [],
            collisions=list(overlay.collisions) if overlay else [],
        )
        logger.info(
            "Packaged %d file(s) from %s as %s (%s)",
            artifact.file_count,
            output_dir,
            name,
            address[:19],
        )
        return artifact


def list_archive(archive_path: Path) -> list[str]:
    """Relative file paths inside a packaged artifact (``./`` stripped)."""
    with tarfile.open(archive_path, mode="r") as tar:
        return sorted(
            member.name.removeprefix("./")
            for member in tar.getmembers()
            if member.isfile()
        )


def artifact_from_archive(archive_path: Path, name: str | None = None) -> SiteArtifact:
    """Describe an existing artifact archive, e.g. one handed over by a separate build."""
    archive_path = Path(archive_path)
    if not archive_path.is_file():
        raise PackagingError(f"Artifact archive not found: {archive_path}")
    try:
        files = list_archive(archive_path)
    except tarfile.TarError as exc:
        raise PackagingError(f"{archive_path} is not a tar archive: {exc}") from exc
    return SiteArtifact(
        name=name or archive_path.name.removesuffix(".tar"),
        content_address=f"sha256:{sha256_file(archive_path)}",
        archive_path=archive_path,
        file_count=len(files),
        size_bytes=archive_path.stat().st_size,
        asset_files=[f for f in files if f.startswith("assets/")],
    )
