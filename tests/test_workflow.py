from __future__ import annotations

from dataclasses import replace
import re

from prbox.config import Settings
from prbox.models.pr import CreatePrRequest, FileChange
from prbox.workflow import create_github_pr
from prbox.workflow.steps import STEPS
from tests.conftest import PR_URL, scripted_provider
from tests.fakes import FakeSandboxProvider, fail, ok

REPO_URL = "https://github.com/octocat/Hello-World"
BRANCH = "code0-1700000000000"


def _call(provider: FakeSandboxProvider, prefix: str):
    matches = [call for call in provider.calls if call.line.startswith(prefix)]
    assert matches, f"no command starting with {prefix!r}"
    return matches[-1]


def _raise_runtime_error(argv):
    raise RuntimeError("")


def test_owner_opens_pr_in_same_repository(make_workflow, provider) -> None:
    result = make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is True
    assert result.error is None
    assert result.data.pr_url == PR_URL
    assert result.data.branch_name == BRANCH
    assert result.data.sandbox_id == "sbx-1"
    assert result.data.forked is False
    assert result.data.fork_url is None
    assert provider.started == ["sbx-1"]
    assert provider.stopped == ["sbx-1"]

    lines = provider.lines()
    assert f"git clone {REPO_URL} hello-world" in lines
    assert "git checkout main" in lines
    assert "git pull origin main" in lines
    assert f"git checkout -b {BRANCH}" in lines
    assert not any(line.startswith("gh repo fork") for line in lines)
    assert not any(line.startswith("git remote") for line in lines)
    assert all("--json" in line for line in lines if line.startswith("gh repo view"))

    pr_call = _call(provider, "gh pr create")
    assert pr_call.cwd == "hello-world"
    assert pr_call.command[pr_call.command.index("--head") + 1] == BRANCH
    assert pr_call.command[pr_call.command.index("--base") + 1] == "main"
    assert "--repo" not in pr_call.command


def test_git_commands_run_inside_the_clone(make_workflow, provider) -> None:
    make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    for call in provider.calls:
        if call.command[0] == "git" and call.command[1] not in {"clone", "config"}:
            assert call.cwd == "hello-world", call.line


def test_token_only_travels_through_the_environment(make_workflow, provider) -> None:
    make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    login = _call(provider, "sh -c")
    assert "gh auth login --with-token" in login.command[2]
    assert login.env == {"PRBOX_GITHUB_TOKEN": "ghp_test"}
    assert not any("ghp_test" in line for line in provider.lines())
    assert "gh auth setup-git" in provider.lines()
    assert "git config --global user.name code0" in provider.lines()


def test_missing_readme_is_created(make_workflow, provider) -> None:
    make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    readme = provider.files["hello-world/README.md"]
    assert readme.startswith("# hello-world\n\n## AI Agent Update\n")
    assert "This repository was updated by an AI agent (code0)" in readme
    assert re.search(r"- Generated on: \d{4}-\d{2}-\d{2}T", readme)


def test_existing_readme_gets_a_new_section_per_run(make_workflow, provider) -> None:
    provider.files["hello-world/README.md"] = "# Hello\n\nExisting text"
    workflow = make_workflow(provider)

    workflow.run(CreatePrRequest(repo_url=REPO_URL))
    first = provider.files["hello-world/README.md"]
    workflow.run(CreatePrRequest(repo_url=REPO_URL))
    second = provider.files["hello-world/README.md"]

    assert first.startswith("# Hello\n\nExisting text\n\n## AI Agent Update\n")
    assert "This update was made by an AI agent (code0)" in first
    assert second.startswith(first)
    assert second.count("## AI Agent Update") == 2


def test_file_changes_replace_the_readme_default(make_workflow, provider) -> None:
    request = CreatePrRequest(
        repo_url=REPO_URL,
        file_changes=(FileChange(path="a.txt", content="x"),),
    )

    result = make_workflow(provider).run(request)

    assert result.success is True
    assert provider.files == {"hello-world/a.txt": "x"}
    assert not any(line.startswith("mkdir") for line in provider.lines())


def test_nested_file_change_creates_parent_directory(make_workflow, provider) -> None:
    request = CreatePrRequest(
        repo_url=REPO_URL,
        file_changes=(FileChange(path="docs/./notes.md", content="# Notes\n"),),
    )

    make_workflow(provider).run(request)

    assert "mkdir -p hello-world/docs" in provider.lines()
    assert provider.files["hello-world/docs/notes.md"] == "# Notes\n"


def test_commit_carries_co_author_trailer(make_workflow, provider) -> None:
    request = CreatePrRequest(repo_url=REPO_URL, commit_message="docs: refresh")

    make_workflow(provider).run(request)

    commit = _call(provider, "git commit")
    assert commit.command[:3] == ["git", "commit", "-m"]
    assert commit.command[3] == (
        "docs: refresh\n\nCo-authored-by: octocat <octocat@example.com>"
    )
    lines = provider.lines()
    assert lines.index("git add .") < lines.index(commit.line)
    assert f"git push --set-upstream origin {BRANCH}" in lines


def test_pr_body_gets_technical_details(make_workflow, provider) -> None:
    make_workflow(provider).run(
        CreatePrRequest(repo_url=REPO_URL, pr_title="Title", pr_body="Body")
    )

    pr_call = _call(provider, "gh pr create")
    assert pr_call.command[pr_call.command.index("--title") + 1] == "Title"
    body = pr_call.command[pr_call.command.index("--body") + 1]
    assert body.startswith("Body\n\n### Technical Details:\n")
    assert "- **PR Creator**: octocat (via personal access token)" in body
    assert "- **Repository**: octocat/hello-world" in body
    assert f"- **Branch**: {BRANCH}" in body
    assert "**Fork**" not in body


def test_existing_fork_is_used(make_workflow) -> None:
    provider = scripted_provider(login="bot", **{"gh repo view bot/hello-world": ok()})

    result = make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is True
    assert result.data.forked is True
    assert result.data.fork_url == "https://github.com/bot/hello-world"
    lines = provider.lines()
    assert not any(line.startswith("gh repo fork") for line in lines)
    assert "git clone https://github.com/bot/hello-world hello-world" in lines
    assert f"git remote add upstream {REPO_URL}" in lines
    assert "git fetch upstream" in lines
    assert "git merge upstream/main" in lines
    assert "git push origin main" in lines
    assert "git pull origin main" not in lines

    pr_call = _call(provider, "gh pr create")
    assert pr_call.command[pr_call.command.index("--head") + 1] == f"bot:{BRANCH}"
    assert pr_call.command[pr_call.command.index("--repo") + 1] == "octocat/hello-world"
    body = pr_call.command[pr_call.command.index("--body") + 1]
    assert "- **Fork**: https://github.com/bot/hello-world" in body
    assert "- **Created from fork**: Yes" in body


def test_missing_fork_is_created(make_workflow) -> None:
    provider = scripted_provider(
        login="bot", **{"gh repo view bot/hello-world": fail("not found")}
    )

    result = make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is True
    assert result.data.forked is True
    assert "gh repo fork octocat/hello-world --clone=false" in provider.lines()


def test_fork_failure_aborts_with_combined_message(make_workflow) -> None:
    provider = scripted_provider(
        login="bot",
        **{
            "gh repo view bot/hello-world": fail("not found"),
            "gh repo fork": fail("forbidden"),
        },
    )

    result = make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is False
    assert result.error.startswith("Failed to fork repository and no existing fork found:")
    assert "forbidden" in result.error
    assert not any(line.startswith("git clone") for line in provider.lines())
    assert provider.stopped == ["sbx-1"]


def test_fork_creation_can_be_disabled(make_workflow, settings) -> None:
    provider = scripted_provider(
        login="bot", **{"gh repo view bot/hello-world": fail("not found")}
    )
    workflow = make_workflow(provider, settings=replace(settings, create_missing_fork=False))

    result = workflow.run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is False
    assert "no existing fork found" in result.error
    assert not any(line.startswith("gh repo fork") for line in provider.lines())


def test_upstream_sync_failure_is_tolerated(make_workflow, caplog) -> None:
    provider = scripted_provider(
        login="bot",
        **{
            "gh repo view bot/hello-world": ok(),
            "git merge upstream/main": fail("CONFLICT"),
        },
    )

    result = make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is True
    assert "git push origin main" not in provider.lines()
    assert "Could not sync fork with upstream" in caplog.text


def test_existing_clone_remotes_are_repointed(make_workflow) -> None:
    provider = scripted_provider(
        login="bot",
        **{
            "gh repo view bot/hello-world": ok(),
            "git remote add origin": fail("error: remote origin already exists."),
        },
    )
    provider.dirs.add("hello-world")

    result = make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is True
    lines = provider.lines()
    assert not any(line.startswith("git clone") for line in lines)
    assert "git remote set-url origin https://github.com/bot/hello-world" in lines
    assert f"git remote add upstream {REPO_URL}" in lines
    assert not any(line.startswith("git remote set-url upstream") for line in lines)


def test_corrupted_clone_is_replaced(make_workflow, provider) -> None:
    provider.dirs.add("hello-world")
    provider.responses["git status"] = fail("fatal: not a git repository")

    result = make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is True
    lines = provider.lines()
    assert lines.index("rm -rf hello-world") < lines.index(f"git clone {REPO_URL} hello-world")


def test_missing_token_fails_without_sandbox(make_workflow, provider, settings) -> None:
    workflow = make_workflow(provider, settings=replace(settings, github_token=None))

    result = workflow.run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is False
    assert "GITHUB_PERSONAL_ACCESS_TOKEN" in result.error
    assert provider.started == []
    assert provider.calls == []


def test_invalid_url_fails_without_sandbox(make_workflow, provider) -> None:
    result = make_workflow(provider).run(CreatePrRequest(repo_url="not a url"))

    assert result.success is False
    assert result.error == "Invalid GitHub repository URL format"
    assert provider.started == []
    assert provider.calls == []


def test_escaping_file_path_fails_without_sandbox(make_workflow, provider) -> None:
    request = CreatePrRequest(
        repo_url=REPO_URL,
        file_changes=(FileChange(path="../outside.txt", content="x"),),
    )

    result = make_workflow(provider).run(request)

    assert result.success is False
    assert "../outside.txt" in result.error
    assert provider.started == []


def test_missing_sandbox_id_fails(make_workflow, provider, settings) -> None:
    workflow = make_workflow(provider, settings=replace(settings, sandbox_id=None))

    result = workflow.run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is False
    assert "sandbox id" in result.error
    assert provider.started == []


def test_command_failure_aborts_and_stops_sandbox(make_workflow, provider) -> None:
    provider.responses["git push --set-upstream"] = fail("! [rejected]")
    workflow = make_workflow(provider)

    result = workflow.run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is False
    assert "[rejected]" in result.error
    assert not any(line.startswith("gh pr create") for line in provider.lines())
    assert provider.stopped == ["sbx-1"]
    assert [outcome.name for outcome in workflow.outcomes][-1] == "commit_and_push"
    assert workflow.outcomes[-1].ok is False
    assert all(outcome.ok for outcome in workflow.outcomes[:-1])


def test_unexpected_exception_becomes_failure(make_workflow, provider) -> None:
    provider.responses["git checkout -b"] = _raise_runtime_error

    result = make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is False
    assert result.error == "Unknown error occurred"


def test_stop_failure_on_success_path_fails(make_workflow, provider) -> None:
    provider.fail_stop = True

    result = make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is False
    assert result.error == "sandbox shutdown failed"


def test_stop_failure_keeps_original_error(make_workflow, provider) -> None:
    provider.fail_stop = True
    provider.responses["git clone"] = fail("repository not found")

    result = make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is False
    assert "repository not found" in result.error


def test_pr_url_falls_back_to_listing(make_workflow, provider) -> None:
    provider.responses["gh pr create"] = ok("Warning: 1 uncommitted change\n")

    result = make_workflow(provider).run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is True
    assert result.data.pr_url == "https://github.com/octocat/hello-world/pulls"


def test_configured_base_branch_skips_detection(make_workflow, provider, settings) -> None:
    workflow = make_workflow(provider, settings=replace(settings, base_branch="develop"))

    workflow.run(CreatePrRequest(repo_url=REPO_URL))

    lines = provider.lines()
    assert not any(line.startswith("gh repo view") for line in lines)
    assert "git checkout develop" in lines
    pr_call = _call(provider, "gh pr create")
    assert pr_call.command[pr_call.command.index("--base") + 1] == "develop"


def test_branch_names_strictly_increase(make_workflow, provider) -> None:
    ticks = iter([100.0, 99.5, 101.0])
    workflow = make_workflow(provider, clock=lambda: next(ticks))

    names = [workflow.run(CreatePrRequest(repo_url=REPO_URL)).data.branch_name for _ in range(3)]

    assert all(re.fullmatch(r"code0-\d+", name) for name in names)
    millis = [int(name.split("-")[1]) for name in names]
    assert len(set(names)) == 3
    assert millis == [100000, 100001, 101000]


def test_create_github_pr_reports_missing_token(monkeypatch, tmp_path) -> None:
    for var in ("GITHUB_PERSONAL_ACCESS_TOKEN", "GITHUB_PAT", "GITHUB_TOKEN", "PRBOX_CONFIG"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    provider = FakeSandboxProvider()

    result = create_github_pr(CreatePrRequest(repo_url=REPO_URL), provider=provider)

    assert result.success is False
    assert "GITHUB_PERSONAL_ACCESS_TOKEN" in result.error
    assert provider.calls == []


def test_create_github_pr_with_explicit_settings(provider) -> None:
    settings = Settings(github_token="ghp_test", sandbox_provider="local", sandbox_id="sbx-9")

    result = create_github_pr(
        CreatePrRequest(repo_url=REPO_URL), settings=settings, provider=provider
    )

    assert result.success is True
    assert result.data.sandbox_id == "sbx-9"


def test_steps_without_pull_request_fail(make_workflow, provider) -> None:
    workflow = make_workflow(provider, steps=STEPS[:-1])

    result = workflow.run(CreatePrRequest(repo_url=REPO_URL))

    assert result.success is False
    assert "without opening a pull request" in result.error
    assert provider.stopped == ["sbx-1"]
