"""End-to-end publish pipeline for aumai-skillpublish."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from aumai_skillpublish.client import RegistryClient
from aumai_skillpublish.core import (
    SkillPackage,
    apply_overrides,
    serialize_manifest,
    stamp_provenance,
    validate_manifest,
)
from aumai_skillpublish.github import GitHubClient, annotate_safely
from aumai_skillpublish.models import PublishResult, TriggerContext
from aumai_skillpublish.outputs import OutputSink, emit_outputs, render_publish_markdown
from aumai_skillpublish.settings import PublishSettings

__all__ = ["PreparedPackage", "PublishOutcome", "prepare_package", "publish_skill"]

logger = logging.getLogger(__name__)


class PreparedPackage(BaseModel):
    """A validated package with its manifest ready for upload."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    package: SkillPackage
    manifest: dict[str, Any]
    manifest_bytes: bytes
    skill_name: str
    skill_version: str


class PublishOutcome(BaseModel):
    """What a successful run produced."""

    result: PublishResult
    annotation_target: str
    markdown: str


def prepare_package(
    settings: PublishSettings,
    trigger: TriggerContext,
    base_dir: Path | None = None,
) -> PreparedPackage:
    """Discover the package, apply overrides and provenance, validate the manifest.

    Touches only the local file system.
    """
    settings.require("skill_dir")

    package = SkillPackage.discover(settings.skill_dir or "", base_dir)
    manifest = package.read_manifest()
    apply_overrides(manifest, settings.name, settings.version)
    if settings.stamp_repo_commit:
        stamp_provenance(manifest, trigger.repo_url, trigger.sha or None)
    name, version, _ = validate_manifest(manifest)

    return PreparedPackage(
        package=package,
        manifest=manifest,
        manifest_bytes=serialize_manifest(manifest),
        skill_name=name,
        skill_version=version,
    )


def publish_skill(
    settings: PublishSettings,
    trigger: TriggerContext,
    sink: OutputSink,
    *,
    registry: RegistryClient | None = None,
    github: GitHubClient | None = None,
    base_dir: Path | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> PublishOutcome:
    """Validate, quote, publish, poll, annotate and emit outputs.

    Every stage failure propagates as a SkillPublishError except annotation,
    which degrades to the ``failed`` target.
    """
    settings.require("api_base_url", "api_key", "skill_dir")

    prepared = prepare_package(settings, trigger, base_dir)
    client = registry or RegistryClient(settings.api_base_url or "", settings.api_key or "")
    try:
        result = _run_registry_stages(client, settings, trigger, prepared, sleep, clock)
    finally:
        if registry is None:
            client.close()

    markdown = render_publish_markdown(result)
    annotation_target = annotate_safely(
        enabled=settings.annotate,
        token=settings.github_token,
        markdown=markdown,
        job_id=result.job_id,
        trigger=trigger,
        github=github,
    )
    emit_outputs(sink, result, annotation_target, markdown)
    return PublishOutcome(result=result, annotation_target=annotation_target, markdown=markdown)


def _run_registry_stages(
    client: RegistryClient,
    settings: PublishSettings,
    trigger: TriggerContext,
    prepared: PreparedPackage,
    sleep: Callable[[float], None],
    clock: Callable[[], float],
) -> PublishResult:
    config = client.fetch_config()
    files, total_bytes = prepared.package.build_upload(prepared.manifest_bytes, config)
    logger.info(
        "Validated skill package %s@%s from %s",
        prepared.skill_name,
        prepared.skill_version,
        prepared.package.label,
    )
    logger.info("Files: %d, Total bytes: %d", len(files), total_bytes)

    quote = client.request_quote(files, settings.account_id)
    logger.info(
        "Quote complete: %s (%s credits, %s HBAR est)",
        quote.quote_id,
        quote.credits,
        quote.estimated_cost_hbar,
    )

    job = client.start_publish(files, quote.quote_id, settings.account_id)
    logger.info("Publish started: job %s", job.job_id)

    completed = client.wait_for_job(
        job.job_id,
        account_id=settings.account_id,
        timeout_ms=settings.poll_timeout_ms,
        interval_ms=settings.poll_interval_ms,
        sleep=sleep,
        clock=clock,
    )

    return PublishResult(
        skill_name=completed.name if completed.name is not None else prepared.skill_name,
        skill_version=completed.version if completed.version is not None else prepared.skill_version,
        quote_id=quote.quote_id,
        job_id=job.job_id,
        directory_topic_id=completed.directory_topic_id,
        package_topic_id=completed.package_topic_id,
        skill_json_hrl=completed.skill_json_hrl,
        credits=quote.credits,
        estimated_cost_hbar=quote.estimated_cost_hbar,
        repo_url=trigger.repo_url,
        commit_sha=trigger.sha or None,
    )
