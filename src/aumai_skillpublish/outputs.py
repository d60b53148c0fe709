"""Step outputs and the markdown summary for aumai-skillpublish."""

from __future__ import annotations

import os
import re
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from aumai_skillpublish.models import PublishResult

__all__ = [
    "OutputSink",
    "GitHubActionsSink",
    "render_publish_markdown",
    "emit_outputs",
]


class OutputSink(Protocol):
    """Where named step outputs and the step summary are written."""

    def set_output(self, name: str, value: str) -> None: ...

    def append_summary(self, markdown: str) -> None: ...


class GitHubActionsSink:
    """Appends to the files GitHub Actions exposes as ``$GITHUB_OUTPUT`` and
    ``$GITHUB_STEP_SUMMARY``. Either path may be unset, which makes the
    matching method a no-op."""

    def __init__(self, output_path: Path | None = None, summary_path: Path | None = None) -> None:
        self.output_path = output_path
        self.summary_path = summary_path

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> GitHubActionsSink:
        env = os.environ if environ is None else environ
        output = env.get("GITHUB_OUTPUT")
        summary = env.get("GITHUB_STEP_SUMMARY")
        return cls(
            output_path=Path(output) if output else None,
            summary_path=Path(summary) if summary else None,
        )

    @property
    def available(self) -> bool:
        return self.output_path is not None

    def set_output(self, name: str, value: str) -> None:
        if self.output_path is None:
            return
        # Heredoc form so multi-line values such as result-json survive.
        delimiter = f"EOF_{re.sub(r'[^A-Z0-9_]', '_', name.upper())}_{uuid.uuid4().hex}"
        with open(self.output_path, "a", encoding="utf-8") as f:
            f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")

    def append_summary(self, markdown: str) -> None:
        if self.summary_path is None:
            return
        with open(self.summary_path, "a", encoding="utf-8") as f:
            f.write(f"{markdown}\n")


def _code(value: object) -> str:
    return f"`{'n/a' if value is None else value}`"


def render_publish_markdown(result: PublishResult) -> str:
    """Render the human-readable summary used for annotations and the step summary."""
    lines = [
        "### Skill publish result",
        "",
        f"- Name: {_code(result.skill_name)}",
        f"- Version: {_code(result.skill_version)}",
        f"- Quote ID: {_code(result.quote_id)}",
        f"- Job ID: {_code(result.job_id)}",
        f"- Directory Topic: {_code(result.directory_topic_id)}",
        f"- Package Topic: {_code(result.package_topic_id)}",
        f"- skill.json HRL: {_code(result.skill_json_hrl)}",
        f"- Credits: {_code(result.credits)}",
        f"- Estimated Cost: `{result.estimated_cost_hbar} HBAR`",
        "",
        f"- Repo: {_code(result.repo_url)}",
        f"- Commit: {_code(result.commit_sha)}",
    ]
    return "\n".join(lines)


def emit_outputs(
    sink: OutputSink,
    result: PublishResult,
    annotation_target: str,
    markdown: str,
) -> None:
    """Append the summary and record every named output of a successful run."""
    sink.append_summary(markdown)
    outputs = {
        "skill-name": result.skill_name,
        "skill-version": result.skill_version,
        "quote-id": result.quote_id,
        "job-id": result.job_id,
        "directory-topic-id": result.directory_topic_id or "",
        "package-topic-id": result.package_topic_id or "",
        "skill-json-hrl": result.skill_json_hrl or "",
        "annotation-target": annotation_target,
        "result-json": result.to_json(),
    }
    for name, value in outputs.items():
        sink.set_output(name, value)
