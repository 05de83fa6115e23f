from __future__ import annotations

from typing import Callable

import pytest

from prbox.config import Settings
from prbox.workflow import PrWorkflow
from tests.fakes import FakeSandboxProvider, ok

PR_URL = "https://github.com/octocat/hello-world/pull/7"
EMAIL_QUERY = "gh api user --jq '.email"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        github_token="ghp_test",
        sandbox_provider="local",
        sandbox_id="sbx-1",
    )


def scripted_provider(login: str = "octocat", **overrides) -> FakeSandboxProvider:
    responses = {
        "gh api user --jq .login": ok(f"{login}\n"),
        EMAIL_QUERY: ok(f'"{login}@example.com"\n'),
        "gh repo view octocat/hello-world --json": ok("main\n"),
        "gh pr create": ok(f"Creating pull request...\n{PR_URL}\n"),
    }
    responses.update(overrides)
    return FakeSandboxProvider(responses=responses)


@pytest.fixture
def provider() -> FakeSandboxProvider:
    return scripted_provider()


@pytest.fixture
def make_workflow(settings: Settings) -> Callable[..., PrWorkflow]:
    def _make(provider: FakeSandboxProvider, **kwargs) -> PrWorkflow:
        kwargs.setdefault("clock", lambda: 1_700_000_000.0)
        return PrWorkflow(kwargs.pop("settings", settings), provider=provider, **kwargs)

    return _make
