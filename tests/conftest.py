"""Shared test fixtures for Pagewright."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest

from pagewright.config import ProdConfig
from pagewright.core.artifact_store import ArtifactStore
from pagewright.core.concurrency import ConcurrencyGroups
from pagewright.core.packager import SitePackager
from pagewright.core.provisioner import ToolProvisioner
from pagewright.core.run_log import RunLog
from pagewright.core.stage_machine import StageMachine
from pagewright.errors import PublishError
from pagewright.models.artifacts import DeploymentResult, SiteArtifact
from pagewright.models.config import PipelineConfig
from pagewright.models.stages import DEFAULT_STAGE_DEFINITIONS
from pagewright.models.versioning import ToolVersionPin

PINNED_VERSION = "0.4.25"
LINUX_TARGET = ("x86_64-unknown-linux-gnu", "tar.gz")
PAGE_URL = "https://octo.github.io/handbook/"


# ---------------------------------------------------------------------------
# Generator emulation
# ---------------------------------------------------------------------------


class FakeMdBook:
    """Command runner that honours the mdbook CLI contract.

    ``--version`` reports ``version``; ``build -d <dir>`` renders an index
    page into ``<dir>`` unless ``fail_with`` is set, in which case it exits
    101 with that text on stderr (mdbook's exit code for a broken book).
    ``on_build`` is called after a successful build, before returning.
    """

    def __init__(
        self,
        version: str = PINNED_VERSION,
        *,
        fail_with: str = "",
        extra_files: dict[str, bytes] | None = None,
        on_build: Any = None,
    ) -> None:
        self.version = version
        self.fail_with = fail_with
        self.extra_files = extra_files or {}
        self.on_build = on_build
        self.calls: list[tuple[list[str], Path | None]] = []

    def __call__(
        self, args: Sequence[str], *, cwd: Path | None = None
    ) -> subprocess.CompletedProcess[str]:
        args = list(args)
        self.calls.append((args, cwd))
        if args[1:] == ["--version"]:
            return subprocess.CompletedProcess(args, 0, stdout=f"mdbook v{self.version}\n", stderr="")

        assert args[1] == "build" and args[2] == "-d"
        if self.fail_with:
            return subprocess.CompletedProcess(args, 101, stdout="", stderr=self.fail_with)

        output = Path(args[3])
        output.mkdir(parents=True)
        (output / "index.html").write_text("<html><body>Handbook</body></html>")
        (output / "intro.html").write_text("<html><body>Intro</body></html>")
        for rel, data in self.extra_files.items():
            target = output / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        if self.on_build is not None:
            self.on_build()
        return subprocess.CompletedProcess(
            args, 0, stdout="", stderr="[INFO] (mdbook::book): Book building has started\n"
        )

    @property
    def build_calls(self) -> list[list[str]]:
        return [args for args, _ in self.calls if args[1:2] == ["build"]]


class RecordingPublisher:
    """Publisher double that records what it was asked to publish."""

    def __init__(self, page_url: str = PAGE_URL, *, error: Exception | None = None) -> None:
        self.page_url = page_url
        self.error = error
        self.published: list[SiteArtifact] = []

    def publish(self, artifact: SiteArtifact) -> DeploymentResult:
        if self.error is not None:
            raise self.error
        self.published.append(artifact)
        return DeploymentResult(
            page_url=self.page_url,
            environment="github-pages",
            artifact_address=artifact.content_address,
        )


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        *,
        content: bytes = b"",
        json_data: Any = None,
        text: str = "",
    ) -> None:
        self.status_code = status_code
        self.content = content
        self._json = json_data
        self.text = text

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json


class FakeSession:
    """Minimal ``requests.Session`` stand-in returning canned responses."""

    def __init__(self, response: FakeResponse | Exception | None = None) -> None:
        self.response = response or FakeResponse()
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def _respond(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._respond("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        if "files" in kwargs:
            # read the upload while the file handle is still open
            _, fh, _ = kwargs["files"]["artifact"]
            kwargs["uploaded"] = fh.read()
        return self._respond("POST", url, **kwargs)


# ---------------------------------------------------------------------------
# Source tree
# ---------------------------------------------------------------------------


def make_book(root: Path, *, version: str | None = PINNED_VERSION, assets: bool = True) -> Path:
    """Create an mdBook source tree with a version declaration and assets."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "book.toml").write_text('[book]\ntitle = "Handbook"\nsrc = "src"\n')
    (root / "src").mkdir(exist_ok=True)
    (root / "src" / "SUMMARY.md").write_text("# Summary\n\n- [Intro](./intro.md)\n")
    (root / "src" / "intro.md").write_text("# Intro\n\n<video src=\"assets/intro_demo.mp4\"></video>\n")
    if version is not None:
        (root / ".env").write_text(f"MDBOOK_VERSION={version}\n")
    if assets:
        (root / "assets").mkdir(exist_ok=True)
        (root / "assets" / "intro_demo.mp4").write_bytes(b"\x00\x00\x00\x18ftypmp42demo")
    return root


def make_provisioner(tools_dir: Path, runner: FakeMdBook, version: str = PINNED_VERSION) -> ToolProvisioner:
    """A provisioner whose cache already holds an mdbook binary for *version*."""
    provisioner = ToolProvisioner(tools_dir, runner=runner, session=FakeSession(), target=LINUX_TARGET)
    binary = provisioner.binary_path(ToolVersionPin(version=version))
    binary.parent.mkdir(parents=True, exist_ok=True)
    binary.write_bytes(b"#!/bin/sh\n")
    binary.chmod(0o755)
    return provisioner


@pytest.fixture
def book(tmp_path: Path) -> Path:
    """An mdBook source tree pinned to MDBOOK_VERSION=0.4.25."""
    return make_book(tmp_path / "book")


@pytest.fixture
def fake_mdbook() -> FakeMdBook:
    return FakeMdBook()


@pytest.fixture
def provisioner(tmp_path: Path, fake_mdbook: FakeMdBook) -> ToolProvisioner:
    return make_provisioner(tmp_path / "tools", fake_mdbook)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def groups(tmp_path: Path) -> ConcurrencyGroups:
    """A concurrency-group registry private to the test."""
    return ConcurrencyGroups(tmp_path / "groups")


@pytest.fixture
def prod_config() -> ProdConfig:
    """Settings that ignore the developer's environment file."""
    return ProdConfig(_env_file=None)


@pytest.fixture
def pipeline_config(book: Path) -> PipelineConfig:
    return PipelineConfig(source_dir=book)


# ---------------------------------------------------------------------------
# Core components
# ---------------------------------------------------------------------------


@pytest.fixture
def artifact_store(tmp_path: Path) -> ArtifactStore:
    """Provide a fresh ArtifactStore in a temp directory."""
    return ArtifactStore(tmp_path / "artifacts")


@pytest.fixture
def packager(artifact_store: ArtifactStore) -> SitePackager:
    return SitePackager(artifact_store)


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """A generated site with one asset already overlaid."""
    site = tmp_path / "_site"
    (site / "assets").mkdir(parents=True)
    (site / "index.html").write_text("<html>Handbook</html>")
    (site / "assets" / "intro_demo.mp4").write_bytes(b"video")
    return site


@pytest.fixture
def site_artifact(packager: SitePackager, site_dir: Path) -> SiteArtifact:
    return packager.package(site_dir, "github-pages")


@pytest.fixture
def run_id() -> str:
    """Provide a deterministic test run ID."""
    return "pw-test-run-001"


@pytest.fixture
def run_log(run_id: str) -> RunLog:
    return RunLog(run_id)


@pytest.fixture
def stage_machine(run_log: RunLog) -> StageMachine:
    """Provide a StageMachine wired to a fresh run log."""
    return StageMachine(run_log, DEFAULT_STAGE_DEFINITIONS)


@pytest.fixture
def failing_publisher() -> RecordingPublisher:
    return RecordingPublisher(error=PublishError("hosting platform returned HTTP 502"))
