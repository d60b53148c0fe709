"""Pydantic models for aumai-skillpublish."""

from __future__ import annotations

import enum
import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "FileRole",
    "SkillFile",
    "UploadFile",
    "RemoteConfig",
    "Quote",
    "PublishJob",
    "JobStatus",
    "PublishResult",
    "TriggerContext",
]

DEFAULT_SERVER_URL = "https://github.com"
DEFAULT_GITHUB_API_URL = "https://api.github.com"


class _CamelModel(BaseModel):
    """Base for registry wire models; fields travel in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)


class FileRole(str, enum.Enum):
    """Role the registry assigns to an uploaded file."""

    SKILL_MD = "skill-md"
    SKILL_JSON = "skill-json"
    SKILL_ICON = "skill-icon"
    FILE = "file"


class SkillFile(BaseModel):
    """A regular file discovered inside the skill directory."""

    model_config = ConfigDict(frozen=True)

    relative_path: str = Field(description="Path relative to the skill root, forward slashes.")
    absolute_path: Path


class UploadFile(_CamelModel):
    """One entry of the ``files`` array sent to the quote and publish endpoints."""

    name: str
    base64: str
    mime_type: str
    role: FileRole


class RemoteConfig(_CamelModel):
    """Package constraints advertised by ``GET /skills/config``."""

    max_files: int = Field(default=0, description="0 means unlimited.")
    max_total_size_bytes: int = Field(default=0, description="0 means unlimited.")
    allowed_mime_types: frozenset[str] | None = Field(
        default=None, description="None means any mime type is accepted."
    )

    @field_validator("max_files", "max_total_size_bytes", mode="before")
    @classmethod
    def _coerce_limit(cls, value: object) -> int:
        try:
            return int(float(value))  # type: ignore[arg-type]
        except (TypeError, ValueError, OverflowError):
            return 0

    @field_validator("allowed_mime_types", mode="before")
    @classmethod
    def _coerce_mime_types(cls, value: object) -> frozenset[str] | None:
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(str(item) for item in value)
        return None


class Quote(_CamelModel):
    """Priced offer returned by ``POST /skills/quote``."""

    quote_id: str
    credits: int | float = 0
    estimated_cost_hbar: str = ""

    @field_validator("quote_id", mode="before")
    @classmethod
    def _require_quote_id(cls, value: object) -> str:
        text = "" if value is None else str(value).strip()
        if not text:
            raise ValueError("quoteId is blank")
        return text

    @field_validator("credits", mode="before")
    @classmethod
    def _coerce_credits(cls, value: object) -> int | float:
        if isinstance(value, bool) or value is None:
            return 0
        if isinstance(value, (int, float)):
            return value
        try:
            number = float(str(value))
        except ValueError:
            return 0
        return int(number) if number.is_integer() else number

    @field_validator("estimated_cost_hbar", mode="before")
    @classmethod
    def _coerce_cost(cls, value: object) -> str:
        return "" if value is None else str(value)


class PublishJob(_CamelModel):
    """Job handle returned by ``POST /skills/publish``."""

    job_id: str

    @field_validator("job_id", mode="before")
    @classmethod
    def _require_job_id(cls, value: object) -> str:
        text = "" if value is None else str(value).strip()
        if not text:
            raise ValueError("jobId is blank")
        return text


class JobStatus(_CamelModel):
    """Snapshot of a publish job from ``GET /skills/jobs/{jobId}``.

    Only ``completed`` and ``failed`` are terminal; every other status string,
    including ones this client has never seen, means the job is still running.
    """

    status: str = ""
    name: str | None = None
    version: str | None = None
    directory_topic_id: str | None = None
    package_topic_id: str | None = None
    skill_json_hrl: str | None = None
    failure_reason: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: object) -> str:
        return "" if value is None else str(value).strip()

    @field_validator(
        "name",
        "version",
        "directory_topic_id",
        "package_topic_id",
        "skill_json_hrl",
        "failure_reason",
        mode="before",
    )
    @classmethod
    def _coerce_optional(cls, value: object) -> str | None:
        return _optional_str(value)


class PublishResult(_CamelModel):
    """Final outcome of a successful publish, used for annotation and outputs."""

    model_config = ConfigDict(frozen=True)

    skill_name: str
    skill_version: str
    quote_id: str
    job_id: str
    directory_topic_id: str | None = None
    package_topic_id: str | None = None
    skill_json_hrl: str | None = None
    credits: int | float = 0
    estimated_cost_hbar: str = ""
    repo_url: str | None = None
    commit_sha: str | None = None

    def to_json(self) -> str:
        """Serialize with camelCase keys, 2-space indented."""
        return self.model_dump_json(by_alias=True, indent=2)


class TriggerContext(BaseModel):
    """Describes the CI event that invoked the publish step."""

    event_name: str = ""
    event: dict[str, Any] = Field(default_factory=dict)
    repository: str = ""
    server_url: str = DEFAULT_SERVER_URL
    sha: str = ""
    api_url: str = DEFAULT_GITHUB_API_URL

    @property
    def repo_url(self) -> str | None:
        """Browser URL of the repository, or None outside a repository context."""
        if not self.repository:
            return None
        return f"{self.server_url}/{self.repository}"

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> TriggerContext:
        """Build a context from the ``GITHUB_*`` variables of a workflow run.

        An unset, missing, or malformed event file yields an empty payload.
        """
        env = os.environ if environ is None else environ
        return cls(
            event_name=env.get("GITHUB_EVENT_NAME", ""),
            event=_load_event(env.get("GITHUB_EVENT_PATH", "")),
            repository=env.get("GITHUB_REPOSITORY", ""),
            server_url=env.get("GITHUB_SERVER_URL") or DEFAULT_SERVER_URL,
            sha=env.get("GITHUB_SHA", ""),
            api_url=env.get("GITHUB_API_URL") or DEFAULT_GITHUB_API_URL,
        )


def _load_event(event_path: str) -> dict[str, Any]:
    if not event_path:
        return {}
    try:
        payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return payload if isinstance(payload, dict) else {}
