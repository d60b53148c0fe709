"""Run configuration for aumai-skillpublish."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from aumai_skillpublish.client import normalize_api_base_url
from aumai_skillpublish.errors import ConfigurationError

__all__ = ["PublishSettings", "INPUT_ENV_VARS", "parse_flag"]

DEFAULT_POLL_TIMEOUT_MS = 720_000
DEFAULT_POLL_INTERVAL_MS = 4_000

# Field name -> environment variable a GitHub Actions runner sets for the input.
INPUT_ENV_VARS: dict[str, str] = {
    "api_base_url": "INPUT_API_BASE_URL",
    "api_key": "INPUT_API_KEY",
    "account_id": "INPUT_ACCOUNT_ID",
    "skill_dir": "INPUT_SKILL_DIR",
    "name": "INPUT_NAME",
    "version": "INPUT_VERSION",
    "stamp_repo_commit": "INPUT_STAMP_REPO_COMMIT",
    "poll_timeout_ms": "INPUT_POLL_TIMEOUT_MS",
    "poll_interval_ms": "INPUT_POLL_INTERVAL_MS",
    "annotate": "INPUT_ANNOTATE",
    "github_token": "INPUT_GITHUB_TOKEN",
}


def parse_flag(value: object, default: bool) -> bool:
    """Interpret an action input as a boolean.

    Blank means ``default``; otherwise only ``1``, ``true`` and ``yes`` are true.
    """
    if isinstance(value, bool):
        return value
    normalized = "" if value is None else str(value).strip().lower()
    if not normalized:
        return default
    return normalized in {"1", "true", "yes"}


def parse_positive_int(value: object, default: int) -> int:
    """Interpret an action input as a positive integer, else ``default``."""
    if isinstance(value, bool):
        return default
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


class PublishSettings(BaseModel):
    """Inputs of one publish run.

    Every field accepts the raw strings a CI runner provides and normalizes
    them; required inputs are checked by :meth:`require` at the stage that
    needs them.
    """

    model_config = ConfigDict(frozen=True)

    api_base_url: str | None = None
    api_key: str | None = None
    account_id: str | None = None
    skill_dir: str | None = None
    name: str | None = None
    version: str | None = None
    stamp_repo_commit: bool = True
    poll_timeout_ms: int = DEFAULT_POLL_TIMEOUT_MS
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    annotate: bool = True
    github_token: str | None = None

    @field_validator("api_key", "account_id", "skill_dir", "name", "version", "github_token", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> str | None:
        if value is None:
            return None
        text = str(value)
        return text if text.strip() else None

    @field_validator("api_base_url", mode="before")
    @classmethod
    def _normalize_base_url(cls, value: object) -> str | None:
        normalized = normalize_api_base_url("" if value is None else str(value))
        return normalized or None

    @field_validator("stamp_repo_commit", "annotate", mode="before")
    @classmethod
    def _parse_flag(cls, value: object, info: ValidationInfo) -> bool:
        return parse_flag(value, cls.model_fields[info.field_name].default)

    @field_validator("poll_timeout_ms", "poll_interval_ms", mode="before")
    @classmethod
    def _parse_duration(cls, value: object, info: ValidationInfo) -> int:
        return parse_positive_int(value, cls.model_fields[info.field_name].default)

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> PublishSettings:
        """Read every input from its ``INPUT_*`` variable."""
        env = os.environ if environ is None else environ
        return cls.model_validate(
            {field: env[var] for field, var in INPUT_ENV_VARS.items() if var in env}
        )

    def require(self, *fields: str) -> None:
        """Raise ConfigurationError naming the first missing input among ``fields``."""
        for field in fields:
            if not getattr(self, field):
                raise ConfigurationError(f"Missing {field.replace('_', '-')} input.")
