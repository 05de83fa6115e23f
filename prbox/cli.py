"""Command line entry point."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import click

from prbox.config import load_settings, with_overrides
from prbox.errors import ConfigurationError
from prbox.models.pr import (
    DEFAULT_COMMIT_MESSAGE,
    DEFAULT_PR_BODY,
    DEFAULT_PR_TITLE,
    CreatePrRequest,
    FileChange,
)
from prbox.workflow import PrWorkflow

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _parse_file_option(value: str) -> FileChange:
    dest, sep, source = value.partition("=")
    if not sep or not dest or not source:
        raise click.BadParameter(
            f"expected DEST=SOURCE, got {value!r}", param_hint="--file"
        )
    try:
        content = Path(source).read_text(encoding="utf-8")
    except OSError as exc:
        raise click.BadParameter(
            f"cannot read {source}: {exc.strerror}", param_hint="--file"
        ) from exc
    return FileChange(path=dest, content=content)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML settings file (defaults to config/prbox.yaml when present).",
)
@click.option("--log-level", default=None, help="Logging level, e.g. DEBUG.")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], log_level: Optional[str]) -> None:
    """Open GitHub pull requests from a remote sandbox."""
    try:
        settings = with_overrides(load_settings(config_path), log_level=log_level)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    ctx.obj = settings


@main.command("create-pr")
@click.argument("repo_url")
@click.option("--message", "-m", default=DEFAULT_COMMIT_MESSAGE, show_default=True)
@click.option("--title", "-t", default=DEFAULT_PR_TITLE)
@click.option("--body", "-b", default=DEFAULT_PR_BODY)
@click.option(
    "--file",
    "files",
    multiple=True,
    help="Write SOURCE (a local file) to DEST in the repository, as DEST=SOURCE.",
)
@click.option("--sandbox-id", default=None, help="Sandbox to resume.")
@click.option(
    "--provider",
    type=click.Choice(["daytona", "local"]),
    default=None,
    help="Sandbox provider.",
)
@click.option("--base-branch", default=None, help="Branch to target instead of the default branch.")
@click.pass_obj
def create_pr(
    settings,
    repo_url: str,
    message: str,
    title: str,
    body: str,
    files: tuple[str, ...],
    sandbox_id: Optional[str],
    provider: Optional[str],
    base_branch: Optional[str],
) -> None:
    """Commit changes to REPO_URL on a new branch and open a pull request."""
    changes = tuple(_parse_file_option(value) for value in files)
    try:
        settings = with_overrides(
            settings,
            sandbox_id=sandbox_id,
            sandbox_provider=provider,
            base_branch=base_branch,
        )
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    request = CreatePrRequest(
        repo_url=repo_url,
        commit_message=message,
        pr_title=title,
        pr_body=body,
        file_changes=changes,
    )
    result = PrWorkflow(settings).run(request)
    click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    if not result.success:
        raise SystemExit(1)
