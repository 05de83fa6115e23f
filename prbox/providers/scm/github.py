"""GitHub SCM provider backed by the ``gh`` CLI inside a sandbox."""

from __future__ import annotations

import logging
import re

from prbox.models.scm import PullRequestInfo, RepoRef
from prbox.providers.sandbox.session import SandboxSession
from prbox.providers.scm.base import ScmProvider

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "PRBOX_GITHUB_TOKEN"
PR_URL_PATTERN = re.compile(r"https://github\.com/\S+")
PR_NUMBER_PATTERN = re.compile(r"/pull/(\d+)")


def parse_pr_output(output: str, repo: RepoRef) -> PullRequestInfo:
    """Pull the PR URL out of ``gh pr create`` output.

    Falls back to the repository's pull request listing when no URL is
    printed.
    """
    match = PR_URL_PATTERN.search(output)
    if not match:
        return PullRequestInfo(url=f"{repo.https_url}/pulls", number=None)
    url = match.group(0)
    number = PR_NUMBER_PATTERN.search(url)
    return PullRequestInfo(url=url, number=int(number.group(1)) if number else None)


class GitHubProvider(ScmProvider):
    def __init__(self, session: SandboxSession) -> None:
        self._session = session
        self._login: str | None = None

    def login(self, token: str) -> None:
        # GH_TOKEN would make `gh auth login` refuse to run, hence a private name.
        self._session.run(
            ["sh", "-c", f'printf "%s" "${TOKEN_ENV_VAR}" | gh auth login --with-token'],
            env={TOKEN_ENV_VAR: token},
        )
        self._session.run(["gh", "auth", "setup-git"])

    def current_user(self) -> str:
        if self._login is None:
            output = self._session.run(["gh", "api", "user", "--jq", ".login"])
            self._login = output.strip().lower()
        return self._login

    def current_user_email(self) -> str:
        output = self._session.run(
            [
                "gh",
                "api",
                "user",
                "--jq",
                '.email // (.login + "@users.noreply.github.com")',
            ]
        )
        return output.strip().replace('"', "")

    def get_repo_default_branch(self, repo: RepoRef) -> str:
        output = self._session.run(
            [
                "gh",
                "repo",
                "view",
                repo.full_name,
                "--json",
                "defaultBranchRef",
                "--jq",
                ".defaultBranchRef.name",
            ]
        )
        return output.strip()

    def repo_exists(self, repo: RepoRef) -> bool:
        return self._session.try_run(["gh", "repo", "view", repo.full_name]).ok

    def fork_repo(self, repo: RepoRef) -> None:
        self._session.run(["gh", "repo", "fork", repo.full_name, "--clone=false"])

    def open_pr(
        self,
        repo: RepoRef,
        head_branch: str,
        base_branch: str,
        title: str,
        body: str,
        cwd: str | None = None,
        cross_repo: bool = False,
    ) -> PullRequestInfo:
        command = [
            "gh",
            "pr",
            "create",
            "--title",
            title,
            "--body",
            body,
            "--head",
            head_branch,
            "--base",
            base_branch,
        ]
        if cross_repo:
            command.extend(["--repo", repo.full_name])
        output = self._session.run(command, cwd=cwd)
        info = parse_pr_output(output, repo)
        if not PR_URL_PATTERN.search(output):
            logger.warning("No pull request URL in gh output; using %s", info.url)
        return info
