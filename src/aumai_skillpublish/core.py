"""Core packaging logic for aumai-skillpublish."""

from __future__ import annotations

import base64
import json
import os
import posixpath
import re
from pathlib import Path
from typing import Any

from aumai_skillpublish.errors import (
    DirectoryNotFoundError,
    InvalidManifestError,
    MissingFieldError,
    MissingRequiredFileError,
    PackageTooLargeError,
    TooManyFilesError,
    UnsupportedMimeTypeError,
)
from aumai_skillpublish.models import FileRole, RemoteConfig, SkillFile, UploadFile

__all__ = [
    "SkillPackage",
    "discover_files",
    "guess_mime_type",
    "resolve_role",
    "load_manifest",
    "apply_overrides",
    "stamp_provenance",
    "validate_manifest",
    "serialize_manifest",
]

MANIFEST_FILE = "skill.json"
SKILL_DOC_FILE = "SKILL.md"
REQUIRED_FIELDS = ("name", "version", "description")
DEFAULT_MIME_TYPE = "application/octet-stream"

_VCS_DIR = ".git"
_MIME_TYPES: tuple[tuple[tuple[str, ...], str], ...] = (
    ((".md", ".markdown"), "text/markdown"),
    ((".json",), "application/json"),
    ((".yaml", ".yml"), "text/yaml"),
    ((".txt",), "text/plain"),
    ((".svg",), "image/svg+xml"),
    ((".png",), "image/png"),
    ((".jpg", ".jpeg"), "image/jpeg"),
    ((".webp",), "image/webp"),
    ((".ico",), "image/x-icon"),
)
_ICON_RE = re.compile(r"^(?:logo|icon)\.(?:png|jpe?g|webp|svg|ico)$")


# ---------------------------------------------------------------------------
# Mime type and role inference
# ---------------------------------------------------------------------------


def guess_mime_type(path: str) -> str:
    """Infer a media type from the file suffix, case-insensitively."""
    lower = path.lower()
    for suffixes, mime_type in _MIME_TYPES:
        if lower.endswith(suffixes):
            return mime_type
    return DEFAULT_MIME_TYPE


def resolve_role(path: str) -> FileRole:
    """Classify a package-relative path for the registry.

    Only the root ``SKILL.md`` and ``skill.json`` get their dedicated roles;
    an icon may live anywhere as long as its basename is ``logo.*`` or
    ``icon.*`` with an image suffix.
    """
    if path == SKILL_DOC_FILE:
        return FileRole.SKILL_MD
    if path == MANIFEST_FILE:
        return FileRole.SKILL_JSON
    if _ICON_RE.match(posixpath.basename(path).lower()):
        return FileRole.SKILL_ICON
    return FileRole.FILE


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def discover_files(root: Path) -> list[SkillFile]:
    """List every regular file under ``root``, sorted by relative path.

    ``.git`` entries are skipped and symlinks are never followed.

    Raises:
        DirectoryNotFoundError: If ``root`` is missing or not a directory.
    """
    if not root.is_dir():
        raise DirectoryNotFoundError(f"Skill directory not found: {root}")
    files: list[SkillFile] = []
    _walk(root, "", files)
    files.sort(key=lambda item: item.relative_path)
    return files


def _walk(root: Path, relative_dir: str, out: list[SkillFile]) -> None:
    directory = root / relative_dir if relative_dir else root
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.name == _VCS_DIR:
                continue
            child = f"{relative_dir}/{entry.name}" if relative_dir else entry.name
            if entry.is_dir(follow_symlinks=False):
                _walk(root, child, out)
            elif entry.is_file(follow_symlinks=False):
                out.append(SkillFile(relative_path=child, absolute_path=Path(entry.path)))


# ---------------------------------------------------------------------------
# Manifest handling
# ---------------------------------------------------------------------------


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not allowed in JSON")


def load_manifest(raw: bytes | str) -> dict[str, Any]:
    """Parse skill.json content.

    Raises:
        InvalidManifestError: If the content is not JSON or not an object.
    """
    try:
        parsed = json.loads(raw, parse_constant=_reject_constant)
    except ValueError as exc:
        raise InvalidManifestError(f"skill.json is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise InvalidManifestError("skill.json must be a JSON object.")
    return parsed


def apply_overrides(
    manifest: dict[str, Any],
    name: str | None = None,
    version: str | None = None,
) -> None:
    """Replace ``name`` and ``version`` in place when an override is given."""
    if name:
        manifest["name"] = name
    if version:
        manifest["version"] = version


def stamp_provenance(
    manifest: dict[str, Any],
    repo_url: str | None,
    commit_sha: str | None,
) -> None:
    """Record the source repository and commit in the manifest.

    Values are mirrored into ``metadata`` only when it is already an object;
    any other ``metadata`` value is left as it is.
    """
    metadata = manifest.get("metadata")
    nested = metadata if isinstance(metadata, dict) else None
    for key, value in (("repo", repo_url), ("commit", commit_sha)):
        if not value:
            continue
        manifest[key] = value
        if nested is not None:
            nested[key] = value


def validate_manifest(manifest: dict[str, Any]) -> tuple[str, str, str]:
    """Return the trimmed ``(name, version, description)`` triple.

    Raises:
        MissingFieldError: For the first of name, version, description that
            is absent or blank.
    """
    values: list[str] = []
    for field in REQUIRED_FIELDS:
        raw = manifest.get(field)
        value = "" if raw is None else str(raw).strip()
        if not value:
            raise MissingFieldError(field)
        values.append(value)
    name, version, description = values
    return name, version, description


def serialize_manifest(manifest: dict[str, Any]) -> bytes:
    """Render the manifest as it is uploaded: 2-space JSON plus a newline."""
    return (json.dumps(manifest, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


# ---------------------------------------------------------------------------
# Package
# ---------------------------------------------------------------------------


class SkillPackage:
    """A discovered skill directory, validated and turned into upload entries."""

    def __init__(self, root: Path, files: list[SkillFile], label: str | None = None) -> None:
        self.root = root
        self.files = files
        self.label = label or str(root)

    @classmethod
    def discover(cls, skill_dir: str | Path, base_dir: Path | None = None) -> SkillPackage:
        """Locate the package and check that both required files exist.

        Args:
            skill_dir: Directory as given by the caller; relative paths are
                resolved against ``base_dir`` (default: the working directory).
            base_dir: Optional base for relative ``skill_dir`` values.

        Raises:
            DirectoryNotFoundError: If the directory is missing.
            MissingRequiredFileError: If skill.json or SKILL.md is missing.
        """
        label = str(skill_dir)
        root = ((base_dir or Path.cwd()) / Path(skill_dir)).resolve()
        if not root.is_dir():
            raise DirectoryNotFoundError(f"Skill directory not found: {label}")

        files = discover_files(root)
        present = {item.relative_path for item in files}
        for required in (MANIFEST_FILE, SKILL_DOC_FILE):
            if required not in present:
                raise MissingRequiredFileError(
                    f"Missing required file: {posixpath.join(label, required)}"
                )
        return cls(root=root, files=files, label=label)

    @property
    def relative_paths(self) -> list[str]:
        return [item.relative_path for item in self.files]

    def read_manifest(self) -> dict[str, Any]:
        """Parse the on-disk skill.json. The file itself is never rewritten."""
        return load_manifest((self.root / MANIFEST_FILE).read_bytes())

    def build_upload(
        self,
        manifest_bytes: bytes,
        config: RemoteConfig,
    ) -> tuple[list[UploadFile], int]:
        """Encode every file and enforce the registry constraints locally.

        The manifest entry carries ``manifest_bytes`` instead of the on-disk
        content. Checks run in order: file count, per-file mime type, total
        size.

        Returns:
            The upload entries in package order and the total byte count.

        Raises:
            TooManyFilesError: If the file count exceeds ``maxFiles``.
            UnsupportedMimeTypeError: For the first file whose type is not allowed.
            PackageTooLargeError: If the total size exceeds ``maxTotalSizeBytes``.
        """
        if config.max_files > 0 and len(self.files) > config.max_files:
            raise TooManyFilesError(
                f"Skill package has {len(self.files)} files but maxFiles is {config.max_files}."
            )

        uploads: list[UploadFile] = []
        total_bytes = 0
        for skill_file in self.files:
            path = skill_file.relative_path
            body = manifest_bytes if path == MANIFEST_FILE else skill_file.absolute_path.read_bytes()
            total_bytes += len(body)
            mime_type = guess_mime_type(path)
            if config.allowed_mime_types is not None and mime_type not in config.allowed_mime_types:
                raise UnsupportedMimeTypeError(path, mime_type)
            uploads.append(
                UploadFile(
                    name=path,
                    base64=base64.b64encode(body).decode("ascii"),
                    mime_type=mime_type,
                    role=resolve_role(path),
                )
            )

        if config.max_total_size_bytes > 0 and total_bytes > config.max_total_size_bytes:
            raise PackageTooLargeError(
                f"Skill package is {total_bytes} bytes but maxTotalSizeBytes is "
                f"{config.max_total_size_bytes}."
            )
        return uploads, total_bytes
