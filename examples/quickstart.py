"""Quickstart examples for aumai-skillpublish.

Demonstrates package discovery, manifest validation and stamping, and local
enforcement of registry constraints, all without contacting a registry.

Run this file directly to verify your installation:

    python examples/quickstart.py
"""

import json
import tempfile
from pathlib import Path

from aumai_skillpublish.core import SkillPackage
from aumai_skillpublish.errors import SkillPublishError, UnsupportedMimeTypeError
from aumai_skillpublish.models import RemoteConfig, TriggerContext
from aumai_skillpublish.pipeline import prepare_package
from aumai_skillpublish.settings import PublishSettings


def _write_demo_skill(root: Path) -> Path:
    skill_dir = root / "hello-skill"
    (skill_dir / "assets").mkdir(parents=True)
    (skill_dir / "SKILL.md").write_text("# Hello\n\nGreets the user.\n", encoding="utf-8")
    (skill_dir / "skill.json").write_text(
        json.dumps(
            {
                "name": "hello",
                "version": "0.1.0",
                "description": "Greets the user.",
                "metadata": {"tags": ["demo"]},
            }
        ),
        encoding="utf-8",
    )
    (skill_dir / "assets" / "logo.svg").write_text("<svg/>", encoding="utf-8")
    return skill_dir


# ---------------------------------------------------------------------------
# Demo 1: Validate a package and inspect the stamped manifest
# ---------------------------------------------------------------------------


def demo_prepare(skill_dir: Path) -> None:
    """Discover files and build the manifest exactly as it would be uploaded."""
    print("\n--- Demo 1: Prepare ---")

    settings = PublishSettings(skill_dir=str(skill_dir), version="0.2.0")
    trigger = TriggerContext(repository="acme/skills", sha="0123abcd")
    prepared = prepare_package(settings, trigger)

    print(f"Package: {prepared.skill_name}@{prepared.skill_version}")
    for path in prepared.package.relative_paths:
        print(f"  {path}")
    print(prepared.manifest_bytes.decode("utf-8"))


# ---------------------------------------------------------------------------
# Demo 2: Apply registry constraints locally
# ---------------------------------------------------------------------------


def demo_constraints(skill_dir: Path) -> None:
    """Show how a mime-type restriction rejects a file before any upload."""
    print("\n--- Demo 2: Constraints ---")

    package = SkillPackage.discover(skill_dir)
    manifest_bytes = (skill_dir / "skill.json").read_bytes()

    uploads, total = package.build_upload(manifest_bytes, RemoteConfig(max_files=10))
    print(f"Accepted {len(uploads)} files, {total} bytes")
    for upload in uploads:
        print(f"  {upload.name:<20} {upload.mime_type:<18} {upload.role.value}")

    strict = RemoteConfig(allowed_mime_types=["text/markdown", "application/json"])
    try:
        package.build_upload(manifest_bytes, strict)
    except UnsupportedMimeTypeError as exc:
        print(f"Rejected: {exc}")


def main() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        skill_dir = _write_demo_skill(Path(tmp))
        try:
            demo_prepare(skill_dir)
            demo_constraints(skill_dir)
        except SkillPublishError as exc:
            print(f"Error: {exc}")


if __name__ == "__main__":
    main()
