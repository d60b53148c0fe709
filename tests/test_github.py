"""Tests for release and pull-request annotation."""

from __future__ import annotations

import logging

import pytest

from fakes import FakeGitHub, FakeResponse

from aumai_skillpublish.github import (
    GitHubClient,
    annotate_result,
    annotate_safely,
    annotation_marker,
)
from aumai_skillpublish.models import TriggerContext

MARKDOWN = "### Skill publish result"


def _client(fake: FakeGitHub) -> GitHubClient:
    return GitHubClient("ghs_token", "https://api.github.com", session=fake.session)


def _release_trigger(body: object = "Release notes") -> TriggerContext:
    return TriggerContext(
        event_name="release",
        event={"release": {"id": 77, "body": body}},
        repository="acme/skills",
        sha="abc123",
    )


def _annotate(trigger: TriggerContext, fake: FakeGitHub, **overrides: object) -> str:
    kwargs: dict = {
        "enabled": True,
        "token": "ghs_token",
        "markdown": MARKDOWN,
        "job_id": "J",
        "trigger": trigger,
        "github": _client(fake),
    }
    kwargs.update(overrides)
    return annotate_result(**kwargs)


class TestReleaseAnnotation:
    """Tests for the release-published branch."""

    def test_appends_block_to_existing_body(self) -> None:
        fake = FakeGitHub({("PATCH", "/repos/acme/skills/releases/77"): {"id": 77}})
        assert _annotate(_release_trigger(), fake) == "release:77"
        body = fake.calls[0]["json"]["body"]
        assert body == f"Release notes\n\n{annotation_marker('J')}\n{MARKDOWN}"

    @pytest.mark.parametrize("existing", ["", "   \n", None])
    def test_blank_body_replaced_by_block(self, existing: object) -> None:
        fake = FakeGitHub({("PATCH", "/repos/acme/skills/releases/77"): {"id": 77}})
        _annotate(_release_trigger(existing), fake)
        assert fake.calls[0]["json"]["body"] == f"{annotation_marker('J')}\n{MARKDOWN}"

    def test_existing_marker_means_no_write(self) -> None:
        """A release already annotated for job J is left alone."""
        fake = FakeGitHub()
        trigger = _release_trigger(f"notes\n\n{annotation_marker('J')}\nold summary")
        assert _annotate(trigger, fake) == "release:77"
        assert fake.calls == []

    def test_marker_of_other_job_does_not_count(self) -> None:
        fake = FakeGitHub({("PATCH", "/repos/acme/skills/releases/77"): {"id": 77}})
        trigger = _release_trigger(f"notes\n{annotation_marker('OTHER')}")
        _annotate(trigger, fake)
        assert len(fake.calls) == 1

    def test_release_event_without_id(self) -> None:
        fake = FakeGitHub()
        trigger = TriggerContext(event_name="release", event={}, repository="acme/skills")
        assert _annotate(trigger, fake) == "none"
        assert fake.calls == []

    @pytest.mark.parametrize("release_id", [[77], {"id": 77}, "abc", True, 0])
    def test_unusable_release_id(self, release_id: object) -> None:
        fake = FakeGitHub()
        trigger = TriggerContext(
            event_name="release", event={"release": {"id": release_id}}, repository="acme/skills"
        )
        assert _annotate(trigger, fake) == "none"
        assert fake.calls == []

    def test_numeric_string_release_id(self) -> None:
        fake = FakeGitHub({("PATCH", "/repos/acme/skills/releases/77"): {"id": 77}})
        trigger = TriggerContext(
            event_name="release", event={"release": {"id": "77"}}, repository="acme/skills"
        )
        assert _annotate(trigger, fake) == "release:77"

    def test_request_headers(self) -> None:
        fake = FakeGitHub({("PATCH", "/repos/acme/skills/releases/77"): {"id": 77}})
        _annotate(_release_trigger(), fake)
        headers = fake.calls[0]["headers"]
        assert headers["authorization"] == "Bearer ghs_token"
        assert headers["x-github-api-version"] == "2022-11-28"


class TestPushAnnotation:
    """Tests for the push branch."""

    def _trigger(self, sha: str = "abc123") -> TriggerContext:
        return TriggerContext(event_name="push", repository="acme/skills", sha=sha)

    def test_comments_on_first_pull_request(self) -> None:
        fake = FakeGitHub(
            {
                ("GET", "/repos/acme/skills/commits/abc123/pulls"): [{"number": 12}, {"number": 3}],
                ("POST", "/repos/acme/skills/issues/12/comments"): FakeResponse(201, payload={"id": 1}),
            }
        )
        assert _annotate(self._trigger(), fake) == "pr:12"
        assert fake.calls[1]["json"] == {"body": f"{annotation_marker('J')}\n{MARKDOWN}"}

    def test_no_pull_requests(self) -> None:
        fake = FakeGitHub({("GET", "/repos/acme/skills/commits/abc123/pulls"): []})
        assert _annotate(self._trigger(), fake) == "none"
        assert len(fake.calls) == 1

    @pytest.mark.parametrize("pull", [{}, {"number": "12"}, {"number": 0}, "12"])
    def test_unusable_pull_number(self, pull: object) -> None:
        fake = FakeGitHub({("GET", "/repos/acme/skills/commits/abc123/pulls"): [pull]})
        assert _annotate(self._trigger(), fake) == "none"
        assert len(fake.calls) == 1

    def test_missing_sha(self) -> None:
        fake = FakeGitHub()
        assert _annotate(self._trigger(sha=""), fake) == "none"
        assert fake.calls == []


class TestSkippedAnnotation:
    """Tests for the cases where nothing is written."""

    def test_disabled(self) -> None:
        fake = FakeGitHub()
        assert _annotate(_release_trigger(), fake, enabled=False) == "none"
        assert fake.calls == []

    def test_missing_token(self) -> None:
        fake = FakeGitHub()
        assert _annotate(_release_trigger(), fake, token=None) == "none"
        assert fake.calls == []

    def test_other_event(self) -> None:
        fake = FakeGitHub()
        trigger = TriggerContext(event_name="workflow_dispatch", repository="acme/skills", sha="abc")
        assert _annotate(trigger, fake) == "none"

    def test_repository_without_owner(self) -> None:
        fake = FakeGitHub()
        trigger = TriggerContext(event_name="push", repository="skills", sha="abc")
        assert _annotate(trigger, fake) == "none"


class TestAnnotateSafely:
    """annotate_safely() must never raise."""

    def test_api_failure_becomes_failed(self, caplog: pytest.LogCaptureFixture) -> None:
        fake = FakeGitHub(
            {("PATCH", "/repos/acme/skills/releases/77"): FakeResponse(403, payload={"message": "Forbidden"})}
        )
        with caplog.at_level(logging.WARNING):
            target = annotate_safely(
                enabled=True,
                token="ghs_token",
                markdown=MARKDOWN,
                job_id="J",
                trigger=_release_trigger(),
                github=_client(fake),
            )
        assert target == "failed"
        assert "GitHub API PATCH /repos/acme/skills/releases/77 failed with 403" in caplog.text

    def test_success_passes_through(self) -> None:
        fake = FakeGitHub({("GET", "/repos/acme/skills/commits/abc/pulls"): []})
        target = annotate_safely(
            enabled=True,
            token="ghs_token",
            markdown=MARKDOWN,
            job_id="J",
            trigger=TriggerContext(event_name="push", repository="acme/skills", sha="abc"),
            github=_client(fake),
        )
        assert target == "none"

    def test_malformed_release_payload_never_raises(self) -> None:
        target = annotate_safely(
            enabled=True,
            token="ghs_token",
            markdown=MARKDOWN,
            job_id="J",
            trigger=TriggerContext(
                event_name="release", event={"release": {"id": [77]}}, repository="acme/skills"
            ),
            github=_client(FakeGitHub()),
        )
        assert target == "none"
