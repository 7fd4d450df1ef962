"""Publish a packaged artifact to a static-hosting target.

The pipeline never reads or reconciles what is currently live: publishing
is a stateless replace. Two targets are provided:

- ``HttpPublisher`` uploads the archive to a hosting platform's deployment
  endpoint with a per-run bearer token and reads back the public URL.
- ``DirectoryPublisher`` serves from a local path. Each artifact is
  extracted into its own release directory and the served path (a symlink)
  is swapped atomically, so readers see either the old or the new site.

Any failure is fatal to the run; the previous publication stays live.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from typing import Protocol

import requests

from pagewright.config import ProdConfig
from pagewright.core.hasher import sha256_file
from pagewright.core.identity import ActionsOidcTokenProvider, StaticTokenProvider, TokenProvider
from pagewright.errors import ConfigurationError, PublishAuthorizationError, PublishError
from pagewright.models.artifacts import DeploymentResult, SiteArtifact

logger = logging.getLogger(__name__)


class Publisher(Protocol):
    """Anything that can turn an artifact into a public URL."""

    def publish(self, artifact: SiteArtifact) -> DeploymentResult:
        ...


def _check_integrity(artifact: SiteArtifact) -> None:
    path = Path(artifact.archive_path)
    if not path.is_file():
        raise PublishError(f"Artifact archive missing: {path}")
    if f"sha256:{sha256_file(path)}" != artifact.content_address:
        raise PublishError(f"Artifact {artifact.name} does not match {artifact.content_address}")


class HttpPublisher:
    """Uploads the artifact to an HTTP deployment endpoint.

    The endpoint receives a multipart form with the archive under
    ``artifact`` plus ``environment`` and ``artifact_address`` fields, and
    must answer 2xx with JSON containing ``page_url``.
    """

    def __init__(
        self,
        endpoint: str,
        token_provider: TokenProvider,
        *,
        environment: str = "github-pages",
        session: requests.Session | None = None,
        timeout: float = 60.0,
    ) -> None:
        if not endpoint:
            raise PublishError("No publish endpoint configured")
        self._endpoint = endpoint
        self._tokens = token_provider
        self._environment = environment
        self._session = session or requests.Session()
        self._timeout = timeout

    def publish(self, artifact: SiteArtifact) -> DeploymentResult:
        _check_integrity(artifact)
        token = self._tokens.request_token()

        logger.info(
            "Publishing %s (%s) to %s [%s]",
            artifact.name,
            artifact.content_address[:19],
            self._endpoint,
            self._environment,
        )
        try:
            with Path(artifact.archive_path).open("rb") as fh:
                response = self._session.post(
                    self._endpoint,
                    headers=token.authorization_header(),
                    data={
                        "environment": self._environment,
                        "artifact_address": artifact.content_address,
                    },
                    files={"artifact": (f"{artifact.name}.tar", fh, "application/x-tar")},
                    timeout=self._timeout,
                )
        except requests.RequestException as exc:
            raise PublishError(f"Transfer to {self._endpoint} failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise PublishAuthorizationError(
                f"{self._endpoint} rejected the publish grant (HTTP {response.status_code})"
            )
        if not 200 <= response.status_code < 300:
            raise PublishError(
                f"{self._endpoint} failed with HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            page_url = response.json()["page_url"]
        except (ValueError, KeyError, TypeError) as exc:
            raise PublishError(f"{self._endpoint} returned no page_url") from exc

        logger.info("Deployed to %s", page_url)
        return DeploymentResult(
            page_url=page_url,
            environment=self._environment,
            artifact_address=artifact.content_address,
        )


def _safe_members(tar: tarfile.TarFile) -> list[tarfile.TarInfo]:
    members = []
    for member in tar.getmembers():
        name = PurePosixPath(member.name)
        if name.is_absolute() or ".." in name.parts:
            raise PublishError(f"Refusing to extract unsafe path {member.name!r}")
        if not (member.isfile() or member.isdir()):
            raise PublishError(f"Refusing to extract non-regular entry {member.name!r}")
        members.append(member)
    return members


class DirectoryPublisher:
    """Publishes into a local directory with an atomic symlink swap.

    Layout::

        <target>                  -> symlink to the live release
        <target>.releases/<sha12> -> one directory per published artifact
    """

    def __init__(self, target: Path, *, environment: str = "local") -> None:
        self._target = Path(target).absolute()
        self._releases = self._target.with_name(self._target.name + ".releases")
        self._environment = environment

    @property
    def target(self) -> Path:
        return self._target

    def publish(self, artifact: SiteArtifact) -> DeploymentResult:
        _check_integrity(artifact)
        if self._target.exists() and not self._target.is_symlink():
            raise PublishError(
                f"{self._target} exists and is not a managed release link"
            )

        digest = artifact.content_address.removeprefix("sha256:")
        release_dir = self._releases / digest[:12]
        try:
            if not release_dir.is_dir():
                staging = self._releases / f".staging-{digest[:12]}"
                if staging.exists():
                    shutil.rmtree(staging)
                staging.mkdir(parents=True)
                with tarfile.open(artifact.archive_path, mode="r") as tar:
                    tar.extractall(staging, members=_safe_members(tar))
                staging.replace(release_dir)

            link_tmp = self._target.with_name(f".{self._target.name}.{digest[:12]}.link")
            if link_tmp.is_symlink() or link_tmp.exists():
                link_tmp.unlink()
            os.symlink(release_dir, link_tmp, target_is_directory=True)
            os.replace(link_tmp, self._target)
        except (OSError, tarfile.TarError) as exc:
            raise PublishError(f"Publishing to {self._target} failed: {exc}") from exc

        page_url = self._target.as_uri() + "/"
        logger.info("Deployed %s to %s", artifact.name, page_url)
        return DeploymentResult(
            page_url=page_url,
            environment=self._environment,
            artifact_address=artifact.content_address,
        )

    def live_release(self) -> Path | None:
        """Release directory currently served, if any."""
        if not self._target.is_symlink():
            return None
        return Path(os.readlink(self._target))


def publisher_from_settings(settings: ProdConfig, env: Mapping[str, str] | None = None) -> Publisher:
    """Choose the publish target configured in *settings*.

    A local target directory wins over an HTTP endpoint. The HTTP path
    prefers the Actions OIDC provider and falls back to a static token.
    """
    if settings.publish_target_dir is not None:
        return DirectoryPublisher(settings.publish_target_dir, environment=settings.pages_environment)
    if not settings.publish_endpoint:
        raise ConfigurationError(
            "No publish target configured: set PAGEWRIGHT_PUBLISH_ENDPOINT "
            "or PAGEWRIGHT_PUBLISH_TARGET_DIR"
        )

    if ActionsOidcTokenProvider.available(env):
        tokens: TokenProvider = ActionsOidcTokenProvider(
            settings.token_audience, env=env, timeout=settings.request_timeout_seconds
        )
    else:
        tokens = StaticTokenProvider(settings.publish_token, settings.token_audience)
    return HttpPublisher(
        settings.publish_endpoint,
        tokens,
        environment=settings.pages_environment,
        timeout=settings.request_timeout_seconds,
    )
