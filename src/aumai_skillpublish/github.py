"""Release and pull-request annotation through the GitHub REST API."""

from __future__ import annotations

import logging
from typing import Any

import requests

from aumai_skillpublish.client import send_json
from aumai_skillpublish.errors import SkillPublishError
from aumai_skillpublish.models import DEFAULT_GITHUB_API_URL, TriggerContext

__all__ = [
    "GitHubClient",
    "annotation_marker",
    "annotate_result",
    "annotate_safely",
    "TARGET_NONE",
    "TARGET_FAILED",
]

logger = logging.getLogger(__name__)

TARGET_NONE = "none"
TARGET_FAILED = "failed"
GITHUB_API_VERSION = "2022-11-28"


class GitHubClient:
    """The three GitHub endpoints annotation needs."""

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_GITHUB_API_URL,
        session: requests.Session | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self._token = token
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, endpoint: str, body: dict[str, object] | None = None) -> Any:
        headers = {
            "authorization": f"Bearer {self._token}",
            "content-type": "application/json",
            "accept": "application/vnd.github+json",
            "x-github-api-version": GITHUB_API_VERSION,
        }
        return send_json(
            self._session,
            method,
            f"{self.api_url}{endpoint}",
            headers=headers,
            body=body,
            label=f"GitHub API {method} {endpoint}",
        )

    def list_pull_requests_for_commit(self, owner: str, repo: str, sha: str) -> Any:
        return self._request("GET", f"/repos/{owner}/{repo}/commits/{sha}/pulls")

    def update_release_body(self, owner: str, repo: str, release_id: int, body: str) -> Any:
        return self._request("PATCH", f"/repos/{owner}/{repo}/releases/{release_id}", {"body": body})

    def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> Any:
        return self._request("POST", f"/repos/{owner}/{repo}/issues/{number}/comments", {"body": body})


def annotation_marker(job_id: str) -> str:
    """Hidden HTML comment that identifies an annotation for ``job_id``."""
    return f"<!-- skills-publish:{job_id} -->"


def annotate_result(
    *,
    enabled: bool,
    token: str | None,
    markdown: str,
    job_id: str,
    trigger: TriggerContext,
    github: GitHubClient | None = None,
) -> str:
    """Write the publish summary to the release or pull request behind ``trigger``.

    Returns ``release:<id>``, ``pr:<number>`` or ``none``. A release whose
    body already carries the marker for ``job_id`` is left unchanged.
    """
    if not enabled or not token:
        return TARGET_NONE
    if "/" not in trigger.repository:
        return TARGET_NONE
    owner, repo = trigger.repository.split("/", 1)

    marker = annotation_marker(job_id)
    content = f"{marker}\n{markdown}"
    client = github or GitHubClient(token, trigger.api_url)
    try:
        if trigger.event_name == "release":
            release = trigger.event.get("release")
            release_id = _release_id(release)
            if release_id is not None:
                return _annotate_release(client, owner, repo, release_id, release, marker, content)
            return TARGET_NONE

        if trigger.event_name == "push":
            return _annotate_pull_request(client, owner, repo, trigger.sha, content)

        return TARGET_NONE
    finally:
        if github is None:
            client.close()


def _release_id(release: Any) -> int | None:
    """Return the release id as an int, or None when it is absent or not numeric."""
    if not isinstance(release, dict):
        return None
    value = release.get("id")
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdecimal():
        value = int(value)
    if not isinstance(value, int) or not value:
        return None
    return value


def _annotate_release(
    client: GitHubClient,
    owner: str,
    repo: str,
    release_id: int,
    release: dict[str, Any],
    marker: str,
    content: str,
) -> str:
    existing = release.get("body") if isinstance(release.get("body"), str) else ""
    if marker in existing:
        return f"release:{release_id}"
    merged = f"{existing}\n\n{content}" if existing.strip() else content
    client.update_release_body(owner, repo, release_id, merged)
    return f"release:{release_id}"


def _annotate_pull_request(
    client: GitHubClient,
    owner: str,
    repo: str,
    sha: str,
    content: str,
) -> str:
    if not sha:
        return TARGET_NONE
    pulls = client.list_pull_requests_for_commit(owner, repo, sha)
    if not isinstance(pulls, list) or not pulls:
        return TARGET_NONE
    first = pulls[0]
    number = first.get("number") if isinstance(first, dict) else None
    if isinstance(number, bool) or not isinstance(number, int) or not number:
        return TARGET_NONE
    client.create_issue_comment(owner, repo, number, content)
    return f"pr:{number}"


def annotate_safely(**kwargs: Any) -> str:
    """Run :func:`annotate_result`, turning any failure into ``failed``.

    Annotation never fails the run; the error is logged as a warning.
    """
    try:
        return annotate_result(**kwargs)
    except (SkillPublishError, requests.RequestException, TypeError, ValueError) as exc:
        logger.warning("Annotation failed: %s", exc)
        return TARGET_FAILED
