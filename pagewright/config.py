"""Runtime configuration — env-driven via pydantic-settings.

Reads PAGEWRIGHT_* environment variables and the repository's ``.env`` file.
The same ``.env`` also carries the pinned generator version
(``MDBOOK_VERSION``); that key has no prefix, so settings ignore it and
``core.env_declaration`` reads it separately.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ProdConfig(BaseSettings):
    """Pipeline settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export PAGEWRIGHT_LOG_LEVEL=DEBUG
        export PAGEWRIGHT_DEPLOY_BRANCH=main
        export PAGEWRIGHT_PUBLISH_TARGET_DIR=/srv/www/book
        export PAGEWRIGHT_GROUPS_DIR=/srv/www/.pagewright-groups

    Or via .env file::

        MDBOOK_VERSION=0.4.25
        PAGEWRIGHT_OUTPUT_DIR=_site
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PAGEWRIGHT_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime
    log_level: str = "INFO"
    debug: bool = False

    # Source layout
    source_dir: Path = Path(".")
    output_dir: Path = Path("_site")
    assets_dir: Path = Path("assets")
    env_file: Path = Path(".env")
    version_key: str = "MDBOOK_VERSION"

    # Generator provisioning
    tools_dir: Path = Path(".pagewright/tools")
    use_system_generator: bool = False
    release_base_url: str = "https://github.com/rust-lang/mdBook/releases/download"

    # Artifact
    artifact_store_path: Path = Path(".pagewright/artifacts")
    artifact_name: str = "github-pages"

    # Triggers and single-flight
    deploy_branch: str = "doc"
    concurrency_group: str = "pages"
    groups_dir: Path = Path(".pagewright/groups")  # shared by every run that must coordinate

    # Publishing
    pages_environment: str = "github-pages"
    publish_endpoint: str = ""       # HTTP deployment endpoint of the hosting platform
    publish_target_dir: Path | None = None  # local hosting target (atomic swap)
    publish_token: str = ""          # static token when no OIDC provider is available
    token_audience: str = "pages"
    request_timeout_seconds: float = 60.0


# Module-level singleton — import as `from pagewright.config import config`
config = ProdConfig()
