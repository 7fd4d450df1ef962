"""Pagewright: build an mdBook documentation site and publish it to static hosting.

Two stages, strictly in order:
  - Build: resolve MDBOOK_VERSION from .env, provision mdbook at exactly
    that version, build into _site, overlay assets/, package the result
  - Deploy: publish the packaged artifact with a short-lived identity
    token and report the page URL

Pushes to the deploy branch build and deploy; pull requests only build.
Runs share a single-flight concurrency group, so a newer run cancels an
in-flight one before it can publish.
"""

__version__ = "0.1.0"
__description__ = "Pinned mdBook build and static-hosting publish pipeline"

from pagewright.core.orchestrator import Orchestrator
from pagewright.cli.app import app as cli

__all__ = ["Orchestrator", "cli", "__version__"]
