"""Exception hierarchy for aumai-skillpublish."""

from __future__ import annotations

__all__ = [
    "SkillPublishError",
    "ConfigurationError",
    "DirectoryNotFoundError",
    "MissingRequiredFileError",
    "InvalidManifestError",
    "MissingFieldError",
    "TooManyFilesError",
    "UnsupportedMimeTypeError",
    "PackageTooLargeError",
    "QuoteRejectedError",
    "PublishRejectedError",
    "JobFailedError",
    "JobTimeoutError",
    "RemoteRequestError",
]


class SkillPublishError(Exception):
    """Base class for every fatal publish failure."""


class ConfigurationError(SkillPublishError):
    """Raised when a required input is missing."""


class DirectoryNotFoundError(SkillPublishError):
    """Raised when the skill directory does not exist or is not a directory."""


class MissingRequiredFileError(SkillPublishError):
    """Raised when SKILL.md or skill.json is absent from the package root."""


class InvalidManifestError(SkillPublishError):
    """Raised when skill.json is not a JSON object."""


class MissingFieldError(SkillPublishError):
    """Raised when a required manifest field is blank or absent."""

    def __init__(self, field: str) -> None:
        super().__init__(f"skill.json must include {field}.")
        self.field = field


class TooManyFilesError(SkillPublishError):
    """Raised when the package has more files than the registry accepts."""


class UnsupportedMimeTypeError(SkillPublishError):
    """Raised when a file's inferred mime type is not allowed by the registry."""

    def __init__(self, path: str, mime_type: str) -> None:
        super().__init__(f"Unsupported mime type for {path}: {mime_type}")
        self.path = path
        self.mime_type = mime_type


class PackageTooLargeError(SkillPublishError):
    """Raised when the aggregate package size exceeds the registry limit."""


class QuoteRejectedError(SkillPublishError):
    """Raised when the quote response carries no quoteId."""


class PublishRejectedError(SkillPublishError):
    """Raised when the publish response carries no jobId."""


class JobFailedError(SkillPublishError):
    """Raised when the registry reports the publish job as failed."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Publish job failed: {reason}")
        self.reason = reason


class JobTimeoutError(SkillPublishError):
    """Raised when the publish job does not finish before the poll timeout."""

    def __init__(self, job_id: str, timeout_ms: int) -> None:
        super().__init__(f"Publish job {job_id} did not complete within {timeout_ms}ms.")
        self.job_id = job_id
        self.timeout_ms = timeout_ms


class RemoteRequestError(SkillPublishError):
    """Raised for non-2xx responses and transport failures from either API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
