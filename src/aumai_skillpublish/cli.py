"""CLI entry point for aumai-skillpublish."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

import click
from click.core import ParameterSource

import yaml  # type: ignore[import-untyped]

from aumai_skillpublish import __version__
from aumai_skillpublish.core import guess_mime_type, resolve_role
from aumai_skillpublish.errors import ConfigurationError, SkillPublishError
from aumai_skillpublish.github import TARGET_FAILED
from aumai_skillpublish.models import TriggerContext
from aumai_skillpublish.outputs import GitHubActionsSink
from aumai_skillpublish.pipeline import prepare_package, publish_skill
from aumai_skillpublish.settings import INPUT_ENV_VARS, PublishSettings


def _load_config_file(config: Path) -> dict[str, Any]:
    """Read a YAML or JSON settings file; keys may use dashes or underscores."""
    try:
        raw = config.read_text(encoding="utf-8")
        if config.suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw) or {}
        else:
            data = json.loads(raw)
    except (yaml.YAMLError, ValueError) as exc:
        raise ConfigurationError(f"Could not parse {config}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config} must contain a mapping of settings.")
    return {str(key).replace("-", "_"): value for key, value in data.items()}


def _collect_settings(ctx: click.Context, params: dict[str, Any]) -> PublishSettings:
    """Merge command-line/environment values over an optional settings file."""
    config_path: Path | None = params.pop("config", None)
    file_values = _load_config_file(config_path) if config_path else {}
    values: dict[str, Any] = {}
    for field in INPUT_ENV_VARS:
        if field not in params:
            continue
        source = ctx.get_parameter_source(field)
        if source in (ParameterSource.COMMANDLINE, ParameterSource.ENVIRONMENT):
            values[field] = params[field]
        elif field in file_values:
            values[field] = file_values[field]
    return PublishSettings.model_validate(values)


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


_INPUT_OPTIONS: dict[str, Any] = {
    "api_base_url": click.option(
        "--api-base-url", envvar=INPUT_ENV_VARS["api_base_url"], help="Registry base URL."
    ),
    "api_key": click.option("--api-key", envvar=INPUT_ENV_VARS["api_key"], help="Registry API key."),
    "account_id": click.option(
        "--account-id", envvar=INPUT_ENV_VARS["account_id"], help="Registry account ID."
    ),
    "skill_dir": click.option(
        "--skill-dir", envvar=INPUT_ENV_VARS["skill_dir"], help="Skill package directory."
    ),
    "name": click.option("--name", envvar=INPUT_ENV_VARS["name"], help="Override skill.json name."),
    "version": click.option(
        "--version", envvar=INPUT_ENV_VARS["version"], help="Override skill.json version."
    ),
    "stamp_repo_commit": click.option(
        "--stamp-repo-commit",
        envvar=INPUT_ENV_VARS["stamp_repo_commit"],
        help="Stamp repo/commit into skill.json (default: true).",
    ),
    "poll_timeout_ms": click.option(
        "--poll-timeout-ms",
        envvar=INPUT_ENV_VARS["poll_timeout_ms"],
        help="Publish job timeout in milliseconds (default: 720000).",
    ),
    "poll_interval_ms": click.option(
        "--poll-interval-ms",
        envvar=INPUT_ENV_VARS["poll_interval_ms"],
        help="Delay between job status checks in milliseconds (default: 4000).",
    ),
    "annotate": click.option(
        "--annotate",
        envvar=INPUT_ENV_VARS["annotate"],
        help="Annotate the release or pull request (default: true).",
    ),
    "github_token": click.option(
        "--github-token", envvar=INPUT_ENV_VARS["github_token"], help="Token for annotation."
    ),
}

_VALIDATE_INPUTS = ("skill_dir", "name", "version", "stamp_repo_commit")


def _input_options(*fields: str) -> Any:
    """Attach one option per named input, each bound to its INPUT_* variable, plus --config."""
    options = [_INPUT_OPTIONS[field] for field in fields or tuple(_INPUT_OPTIONS)]
    options.append(
        click.option(
            "--config",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            help="YAML/JSON file with default settings.",
        )
    )

    def decorator(func: Any) -> Any:
        for option in reversed(options):
            func = option(func)
        return func

    return decorator


@click.group()
@click.version_option(version=__version__, prog_name="skill-publish")
@click.option("--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """AumAI SkillPublish: publish skill packages to the registry from CI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
    )


@main.command("publish")
@_input_options()
@click.pass_context
def publish(ctx: click.Context, **params: Any) -> None:
    """Validate, quote, publish and annotate a skill package."""
    sink = GitHubActionsSink.from_environment()
    try:
        settings = _collect_settings(ctx, params)
        outcome = publish_skill(settings, TriggerContext.from_environment(), sink)
    except (SkillPublishError, OSError) as exc:
        if sink.available:
            sink.set_output("annotation-target", TARGET_FAILED)
        _fail(str(exc))
    click.echo(outcome.markdown)


@main.command("validate")
@_input_options(*_VALIDATE_INPUTS)
@click.pass_context
def validate(ctx: click.Context, **params: Any) -> None:
    """Check a skill package locally without contacting the registry."""
    try:
        settings = _collect_settings(ctx, params)
        prepared = prepare_package(settings, TriggerContext.from_environment())
    except (SkillPublishError, OSError) as exc:
        _fail(str(exc))
    click.echo(f"Valid skill package {prepared.skill_name}@{prepared.skill_version}")
    for path in prepared.package.relative_paths:
        click.echo(f"  {path}  {guess_mime_type(path)}  {resolve_role(path).value}")


if __name__ == "__main__":
    main()
