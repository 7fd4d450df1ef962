"""Trigger events and the policy that decides what a run may do."""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import Enum

from pydantic import BaseModel, ConfigDict


class EventName(str, Enum):
    PUSH = "push"
    PULL_REQUEST = "pull_request"
    WORKFLOW_DISPATCH = "workflow_dispatch"


class TriggerEvent(BaseModel):
    """A version-control event that starts a pipeline run."""

    model_config = ConfigDict(frozen=True)

    event_name: EventName
    ref: str = ""
    sha: str = ""
    repository: str = ""

    @property
    def branch(self) -> str:
        """Branch name for ``refs/heads/*`` refs, else the empty string."""
        prefix = "refs/heads/"
        return self.ref[len(prefix):] if self.ref.startswith(prefix) else ""

    @classmethod
    def from_environment(cls, env: Mapping[str, str] | None = None) -> TriggerEvent:
        """Build the event from GitHub Actions' ``GITHUB_*`` variables."""
        env = os.environ if env is None else env
        return cls(
            event_name=EventName(env.get("GITHUB_EVENT_NAME", "push")),
            ref=env.get("GITHUB_REF", ""),
            sha=env.get("GITHUB_SHA", ""),
            repository=env.get("GITHUB_REPOSITORY", ""),
        )


class TriggerDecision(BaseModel):
    """What a run is allowed to do for a given event."""

    model_config = ConfigDict(frozen=True)

    run: bool
    deploy: bool
    reason: str


class TriggerPolicy:
    """Build on pushes to the deploy branch and on every pull request.

    Only the branch push path carries the publish permission; pull
    requests build and stop.
    """

    def __init__(self, deploy_branch: str = "doc") -> None:
        self.deploy_branch = deploy_branch

    def decide(self, event: TriggerEvent) -> TriggerDecision:
        if event.event_name == EventName.PULL_REQUEST:
            return TriggerDecision(
                run=True, deploy=False, reason="pull requests build without publishing"
            )
        if event.branch == self.deploy_branch:
            return TriggerDecision(
                run=True, deploy=True, reason=f"{event.event_name.value} to {self.deploy_branch}"
            )
        return TriggerDecision(
            run=False,
            deploy=False,
            reason=f"ref {event.ref or '<none>'} is not the deploy branch {self.deploy_branch!r}",
        )
