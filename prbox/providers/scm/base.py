"""SCM provider interface."""

from __future__ import annotations

from typing import Protocol

from prbox.models.scm import PullRequestInfo, RepoRef


class ScmProvider(Protocol):
    def login(self, token: str) -> None:
        ...

    def current_user(self) -> str:
        ...

    def current_user_email(self) -> str:
        ...

    def get_repo_default_branch(self, repo: RepoRef) -> str:
        ...

    def repo_exists(self, repo: RepoRef) -> bool:
        ...

    def fork_repo(self, repo: RepoRef) -> None:
        ...

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
        ...
