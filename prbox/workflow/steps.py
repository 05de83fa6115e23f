"""The individual steps of the pull request workflow.

Each step takes the shared ``WorkflowContext``, mutates it, and raises on
failure. Failures a step tolerates are logged here and never reach the
runner.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Callable

from prbox.errors import CommandFailedError, ForkUnavailableError, InvalidRequestError
from prbox.models.scm import RepoRef
from prbox.workflow import content
from prbox.workflow.context import WorkflowContext

logger = logging.getLogger(__name__)

Step = Callable[[WorkflowContext], None]


def authenticate(ctx: WorkflowContext) -> None:
    ctx.scm.login(ctx.token)
    ctx.session.run(
        ["git", "config", "--global", "user.name", ctx.settings.commit_author_name]
    )
    ctx.session.run(
        ["git", "config", "--global", "user.email", ctx.settings.commit_author_email]
    )
    ctx.authed_user = ctx.scm.current_user()
    logger.info("Authenticated as %s", ctx.authed_user)


def resolve_fork(ctx: WorkflowContext) -> None:
    if ctx.repo.owner == ctx.authed_user:
        ctx.working_url = ctx.request.repo_url
        return

    fork = RepoRef(owner=ctx.authed_user, name=ctx.repo.name)
    if ctx.scm.repo_exists(fork):
        logger.info("Using existing fork %s", fork.https_url)
    elif not ctx.settings.create_missing_fork:
        raise ForkUnavailableError(
            "Failed to fork repository and no existing fork found: "
            "fork creation is disabled"
        )
    else:
        try:
            ctx.scm.fork_repo(ctx.repo)
        except CommandFailedError as exc:
            raise ForkUnavailableError(
                f"Failed to fork repository and no existing fork found: {exc}"
            ) from exc
        logger.info("Forked %s to %s", ctx.repo.full_name, fork.https_url)

    ctx.forked = True
    ctx.fork_url = fork.https_url
    ctx.working_url = fork.https_url


def _ensure_remote(ctx: WorkflowContext, name: str, url: str) -> None:
    added = ctx.session.try_run(["git", "remote", "add", name, url], cwd=ctx.repo_dir)
    if not added.ok:
        ctx.git("remote", "set-url", name, url)


def ensure_clone(ctx: WorkflowContext) -> None:
    if ctx.session.exists(ctx.repo_dir, kind="d"):
        if ctx.session.try_run(["git", "status"], cwd=ctx.repo_dir).ok:
            logger.info("Reusing existing clone in %s", ctx.repo_dir)
            if ctx.forked:
                _ensure_remote(ctx, "origin", ctx.working_url)
                _ensure_remote(ctx, "upstream", ctx.request.repo_url)
            return
        logger.warning("%s is not a usable git working tree; cloning fresh", ctx.repo_dir)
        ctx.session.run(["rm", "-rf", ctx.repo_dir])

    ctx.session.run(["git", "clone", ctx.working_url, ctx.repo_dir])
    if ctx.forked:
        _ensure_remote(ctx, "upstream", ctx.request.repo_url)


def sync_base_branch(ctx: WorkflowContext) -> None:
    if ctx.settings.base_branch:
        ctx.base_branch = ctx.settings.base_branch
    else:
        ctx.base_branch = ctx.scm.get_repo_default_branch(ctx.repo) or "main"

    ctx.git("checkout", ctx.base_branch)
    if not ctx.forked:
        ctx.git("pull", "origin", ctx.base_branch)
        return
    try:
        ctx.git("fetch", "upstream")
        ctx.git("merge", f"upstream/{ctx.base_branch}")
        ctx.git("push", "origin", ctx.base_branch)
    except CommandFailedError as exc:
        logger.warning("Could not sync fork with upstream: %s", exc)


def create_branch(ctx: WorkflowContext) -> None:
    ctx.branch_name = content.branch_name(ctx.settings.branch_prefix, ctx.clock_ms())
    ctx.git("checkout", "-b", ctx.branch_name)


def normalize_change_path(relative: str) -> str:
    normalized = posixpath.normpath(relative)
    if posixpath.isabs(relative) or normalized in (".", "..") or normalized.startswith("../"):
        raise InvalidRequestError(f"Invalid file path for change: {relative!r}")
    return normalized


def _repo_path(ctx: WorkflowContext, relative: str) -> str:
    return posixpath.join(ctx.repo_dir, normalize_change_path(relative))


def apply_changes(ctx: WorkflowContext) -> None:
    if ctx.request.file_changes:
        for change in ctx.request.file_changes:
            target = _repo_path(ctx, change.path)
            parent = posixpath.dirname(target)
            if parent != ctx.repo_dir:
                ctx.session.run(["mkdir", "-p", parent])
            ctx.session.write_text(target, change.content)
        logger.info("Applied %d file change(s)", len(ctx.request.file_changes))
        return

    readme = posixpath.join(ctx.repo_dir, "README.md")
    generated = content.isoformat_utc()
    agent = ctx.settings.commit_author_name
    if ctx.session.exists(readme, kind="f"):
        updated = content.appended_readme(ctx.session.read_text(readme), agent, generated)
    else:
        updated = content.new_readme(ctx.repo.name, agent, generated)
    ctx.session.write_text(readme, updated)


def commit_and_push(ctx: WorkflowContext) -> None:
    ctx.git("add", ".")
    email = ctx.scm.current_user_email()
    co_author = f"{ctx.authed_user} <{email}>"
    ctx.git("commit", "-m", content.commit_message(ctx.request.commit_message, co_author))
    ctx.git("push", "--set-upstream", "origin", ctx.branch_name)


def open_pull_request(ctx: WorkflowContext) -> None:
    body = content.pr_body(
        ctx.request.pr_body,
        agent=ctx.settings.commit_author_name,
        creator=ctx.authed_user,
        generated=content.isoformat_utc(),
        repository=ctx.repo.full_name,
        branch=ctx.branch_name,
        fork_url=ctx.fork_url if ctx.forked else None,
    )
    head = f"{ctx.authed_user}:{ctx.branch_name}" if ctx.forked else ctx.branch_name
    ctx.pull_request = ctx.scm.open_pr(
        ctx.repo,
        head_branch=head,
        base_branch=ctx.base_branch,
        title=ctx.request.pr_title,
        body=body,
        cwd=ctx.repo_dir,
        cross_repo=ctx.forked,
    )
    logger.info("Opened pull request %s", ctx.pull_request.url)


STEPS: tuple[tuple[str, Step], ...] = (
    ("authenticate", authenticate),
    ("resolve_fork", resolve_fork),
    ("ensure_clone", ensure_clone),
    ("sync_base_branch", sync_base_branch),
    ("create_branch", create_branch),
    ("apply_changes", apply_changes),
    ("commit_and_push", commit_and_push),
    ("open_pull_request", open_pull_request),
)
