"""Tests for trigger events and the trigger policy."""

from __future__ import annotations

import pytest

from pagewright.models.triggers import EventName, TriggerEvent, TriggerPolicy


class TestTriggerEvent:
    def test_branch(self):
        assert TriggerEvent(event_name="push", ref="refs/heads/doc").branch == "doc"
        assert TriggerEvent(event_name="push", ref="refs/tags/v1.0").branch == ""

    def test_from_environment(self):
        event = TriggerEvent.from_environment(
            {
                "GITHUB_EVENT_NAME": "pull_request",
                "GITHUB_REF": "refs/pull/42/merge",
                "GITHUB_SHA": "0a1b2c3",
                "GITHUB_REPOSITORY": "octo/handbook",
            }
        )
        assert event.event_name == EventName.PULL_REQUEST
        assert event.ref == "refs/pull/42/merge"
        assert event.sha == "0a1b2c3"
        assert event.repository == "octo/handbook"

    def test_from_empty_environment(self):
        event = TriggerEvent.from_environment({})
        assert event.event_name == EventName.PUSH
        assert event.ref == ""

    def test_unknown_event(self):
        with pytest.raises(ValueError):
            TriggerEvent.from_environment({"GITHUB_EVENT_NAME": "schedule"})


class TestTriggerPolicy:
    @pytest.fixture
    def policy(self) -> TriggerPolicy:
        return TriggerPolicy("doc")

    def test_push_to_deploy_branch_deploys(self, policy: TriggerPolicy):
        decision = policy.decide(TriggerEvent(event_name="push", ref="refs/heads/doc"))
        assert decision.run is True
        assert decision.deploy is True

    def test_pull_request_builds_only(self, policy: TriggerPolicy):
        decision = policy.decide(TriggerEvent(event_name="pull_request", ref="refs/pull/7/merge"))
        assert decision.run is True
        assert decision.deploy is False

    def test_pull_request_into_deploy_branch_still_builds_only(self, policy: TriggerPolicy):
        decision = policy.decide(TriggerEvent(event_name="pull_request", ref="refs/heads/doc"))
        assert decision.deploy is False

    def test_push_elsewhere_is_not_a_pipeline_event(self, policy: TriggerPolicy):
        decision = policy.decide(TriggerEvent(event_name="push", ref="refs/heads/main"))
        assert decision.run is False
        assert "main" in decision.reason

    def test_manual_dispatch_on_deploy_branch(self, policy: TriggerPolicy):
        decision = policy.decide(TriggerEvent(event_name="workflow_dispatch", ref="refs/heads/doc"))
        assert decision.deploy is True

    def test_custom_deploy_branch(self):
        decision = TriggerPolicy("gh-pages-src").decide(
            TriggerEvent(event_name="push", ref="refs/heads/gh-pages-src")
        )
        assert decision.deploy is True
