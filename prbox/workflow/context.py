"""State shared by the workflow steps."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from prbox.config import Settings
from prbox.models.pr import CreatePrRequest
from prbox.models.scm import PullRequestInfo, RepoRef
from prbox.providers.sandbox.session import SandboxSession
from prbox.providers.scm.base import ScmProvider


@dataclass
class WorkflowContext:
    settings: Settings
    request: CreatePrRequest
    repo: RepoRef
    session: SandboxSession
    scm: ScmProvider
    token: str
    clock_ms: Callable[[], int]
    authed_user: str = ""
    working_url: str = ""
    forked: bool = False
    fork_url: Optional[str] = None
    base_branch: str = "main"
    branch_name: str = ""
    pull_request: Optional[PullRequestInfo] = None

    @property
    def repo_dir(self) -> str:
        return self.repo.name

    @property
    def sandbox_id(self) -> str:
        return self.session.sandbox_id

    def git(self, *args: str) -> str:
        return self.session.run(["git", *args], cwd=self.repo_dir)
