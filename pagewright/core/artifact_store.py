"""Content-addressed, immutable artifact store for packaged sites.

Storage layout: {base_path}/{sha256[0:2]}/{sha256}/{name}.tar
No update or delete method — an artifact is never mutated in place; each
run produces a new one and the next successful run supersedes it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pagewright.core.hasher import sha256_file

logger = logging.getLogger(__name__)


class ArtifactIntegrityError(RuntimeError):
    """Raised when a stored artifact's hash does not match its address."""


class ArtifactStore:
    """SHA-256 keyed store of artifact archives.

    Storing identical bytes twice is a no-op. There is no update or delete.

    Parameters
    ----------
    base_path:
        Directory the archives are kept under.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base

    def _artifact_dir(self, digest: str) -> Path:
        return self._base / digest[:2] / digest

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def store_file(self, source: Path, *, name: str) -> tuple[str, Path]:
        """Move an archive into the store and return ``(address, path)``.

        If the same content is already stored, its integrity is verified
        and the incoming file is discarded.
        """
        source = Path(source)
        digest = sha256_file(source)
        path = self._artifact_dir(digest) / f"{name}.tar"

        if path.exists():
            if sha256_file(path) != digest:
                raise ArtifactIntegrityError(
                    f"Existing artifact at {digest} failed integrity check"
                )
            source.unlink()
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            source.replace(path)
            path.chmod(0o444)

        logger.info("Stored artifact %s as sha256:%s", name, digest[:12])
        return f"sha256:{digest}", path

