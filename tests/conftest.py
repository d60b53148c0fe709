"""Shared test fixtures for aumai-skillpublish."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from fakes import FakeClock, FakeRegistry, MemorySink

from aumai_skillpublish.models import TriggerContext
from aumai_skillpublish.settings import PublishSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Hide any workflow variables of the machine running the tests."""
    for key in list(os.environ):
        if key.startswith(("GITHUB_", "INPUT_")):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def skill_dir(tmp_path: Path) -> Path:
    """Return a minimal valid skill package directory."""
    root = tmp_path / "demo-skill"
    root.mkdir()
    (root / "SKILL.md").write_text("# Demo\n\nSays hello.\n", encoding="utf-8")
    (root / "skill.json").write_text(
        json.dumps({"name": "demo", "version": "1.0.0", "description": "x"}),
        encoding="utf-8",
    )
    return root


@pytest.fixture()
def settings(skill_dir: Path) -> PublishSettings:
    """Return settings pointing at the demo package with annotation off."""
    return PublishSettings(
        api_base_url="https://registry.example.test",
        api_key="key-123",
        skill_dir=str(skill_dir),
        annotate="false",
    )


@pytest.fixture()
def trigger() -> TriggerContext:
    """Return a push trigger for a repository."""
    return TriggerContext(
        event_name="push",
        repository="acme/skills",
        sha="abc123",
    )


@pytest.fixture()
def registry() -> FakeRegistry:
    """Return a registry that accepts the demo package and completes at once."""
    return FakeRegistry(
        config={
            "maxFiles": 10,
            "maxTotalSizeBytes": 1_000_000,
            "allowedMimeTypes": ["text/markdown", "application/json"],
        },
        jobs=[
            {
                "status": "completed",
                "directoryTopicId": "d1",
                "packageTopicId": "p1",
                "skillJsonHrl": "hrl1",
            }
        ],
    )


@pytest.fixture()
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
