"""Provision the documentation generator at exactly the pinned version.

Binaries are cached per version under ``{tools_dir}/mdbook/{version}/``.
On a cache miss the official release archive for the host platform is
downloaded and the ``mdbook`` executable extracted from it. Whatever binary
is chosen, its ``--version`` output must match the pin.
"""

from __future__ import annotations

import io
import logging
import os
import platform
import shutil
import tarfile
import zipfile
from pathlib import Path

import requests

from pagewright.core.process import CommandRunner, run_command
from pagewright.core.version_pinner import VersionPinner
from pagewright.errors import ProvisioningError
from pagewright.models.versioning import ToolVersionPin

logger = logging.getLogger(__name__)

TOOL_NAME = "mdbook"
DEFAULT_RELEASE_BASE_URL = "https://github.com/rust-lang/mdBook/releases/download"

# (system, machine) -> (target triple, archive extension)
_RELEASE_TARGETS: dict[tuple[str, str], tuple[str, str]] = {
    ("linux", "x86_64"): ("x86_64-unknown-linux-gnu", "tar.gz"),
    ("linux", "amd64"): ("x86_64-unknown-linux-gnu", "tar.gz"),
    ("linux", "aarch64"): ("aarch64-unknown-linux-musl", "tar.gz"),
    ("linux", "arm64"): ("aarch64-unknown-linux-musl", "tar.gz"),
    ("darwin", "x86_64"): ("x86_64-apple-darwin", "tar.gz"),
    ("darwin", "arm64"): ("aarch64-apple-darwin", "tar.gz"),
    ("windows", "amd64"): ("x86_64-pc-windows-msvc", "zip"),
    ("windows", "x86_64"): ("x86_64-pc-windows-msvc", "zip"),
}


def release_target(system: str | None = None, machine: str | None = None) -> tuple[str, str]:
    """Return the release target triple and archive extension for a host."""
    system = (system or platform.system()).lower()
    machine = (machine or platform.machine()).lower()
    try:
        return _RELEASE_TARGETS[(system, machine)]
    except KeyError:
        raise ProvisioningError(
            f"No {TOOL_NAME} release is published for {system}/{machine}"
        ) from None


def release_url(pin: ToolVersionPin, base_url: str = DEFAULT_RELEASE_BASE_URL,
                target: tuple[str, str] | None = None) -> str:
    """URL of the release archive for *pin* on the given target."""
    triple, ext = target or release_target()
    return f"{base_url.rstrip('/')}/{pin.tag}/{TOOL_NAME}-{pin.tag}-{triple}.{ext}"


class ToolProvisioner:
    """Obtains a verified generator binary for a version pin.

    Parameters
    ----------
    tools_dir:
        Cache root for downloaded binaries.
    use_system:
        Use the generator found on ``PATH`` instead of downloading one.
    session:
        ``requests`` session used for downloads.
    runner:
        Command runner used for the ``--version`` probe.
    """

    def __init__(
        self,
        tools_dir: Path,
        *,
        use_system: bool = False,
        release_base_url: str = DEFAULT_RELEASE_BASE_URL,
        session: requests.Session | None = None,
        runner: CommandRunner = run_command,
        timeout: float = 60.0,
        target: tuple[str, str] | None = None,
    ) -> None:
        self._tools_dir = Path(tools_dir)
        self._use_system = use_system
        self._base_url = release_base_url
        self._session = session or requests.Session()
        self._runner = runner
        self._timeout = timeout
        self._target = target

    def binary_path(self, pin: ToolVersionPin) -> Path:
        """Cache location of the binary for *pin*."""
        triple, _ = self._target or release_target()
        name = f"{TOOL_NAME}.exe" if "windows" in triple else TOOL_NAME
        return self._tools_dir / TOOL_NAME / pin.version / name

    def provision(self, pin: ToolVersionPin) -> Path:
        """Return a path to a generator binary verified against *pin*."""
        if self._use_system:
            found = shutil.which(TOOL_NAME)
            if found is None:
                raise ProvisioningError(f"{TOOL_NAME} is not on PATH")
            binary = Path(found)
        else:
            binary = self.binary_path(pin)
            if binary.is_file():
                logger.info("Using cached %s %s at %s", TOOL_NAME, pin.version, binary)
            else:
                self._download(pin, binary)

        self.verify(pin, binary)
        return binary

    def verify(self, pin: ToolVersionPin, binary: Path) -> None:
        """Run ``binary --version`` and fail on any mismatch with *pin*."""
        try:
            result = self._runner([str(binary), "--version"])
        except OSError as exc:
            raise ProvisioningError(f"Cannot execute {binary}: {exc}") from exc
        if result.returncode != 0:
            raise ProvisioningError(
                f"{binary} --version exited with {result.returncode}: "
                f"{(result.stderr or result.stdout).strip()}"
            )
        VersionPinner(pin).check_drift(result.stdout or result.stderr)
        logger.info("Provisioned %s %s (%s)", TOOL_NAME, pin.version, binary)

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------

    def _download(self, pin: ToolVersionPin, binary: Path) -> None:
        url = release_url(pin, self._base_url, self._target or release_target())
        logger.info("Downloading %s %s from %s", TOOL_NAME, pin.version, url)
        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise ProvisioningError(f"Download of {url} failed: {exc}") from exc

        if response.status_code == 404:
            raise ProvisioningError(f"{TOOL_NAME} {pin.version} is not available ({url})")
        if response.status_code >= 400:
            raise ProvisioningError(
                f"Download of {url} failed with HTTP {response.status_code}"
            )

        data = self._extract_binary(response.content, url, binary.name)
        binary.parent.mkdir(parents=True, exist_ok=True)
        partial = binary.with_name(binary.name + ".part")
        partial.write_bytes(data)
        os.chmod(partial, 0o755)
        partial.replace(binary)

    @staticmethod
    def _extract_binary(archive: bytes, url: str, member_name: str) -> bytes:
        """Pull the single executable out of a release archive."""
        try:
            if url.endswith(".zip"):
                with zipfile.ZipFile(io.BytesIO(archive)) as zf:
                    for info in zf.infolist():
                        if Path(info.filename).name == member_name:
                            return zf.read(info)
            else:
                with tarfile.open(fileobj=io.BytesIO(archive), mode="r:*") as tf:
                    for member in tf.getmembers():
                        if member.isfile() and Path(member.name).name == member_name:
                            fh = tf.extractfile(member)
                            if fh is not None:
                                return fh.read()
        except (tarfile.TarError, zipfile.BadZipFile) as exc:
            raise ProvisioningError(f"Corrupt release archive {url}: {exc}") from exc
        raise ProvisioningError(f"{member_name} not found in release archive {url}")
