"""Entry point of the fork-branch-commit-PR workflow."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Callable, Optional, Sequence

from prbox.config import Settings, load_settings
from prbox.errors import ConfigurationError, PrBoxError
from prbox.models.pr import CreatePrData, CreatePrRequest, CreatePrResult
from prbox.models.scm import RepoRef
from prbox.providers.sandbox import SandboxProvider, SandboxSession, build_sandbox_provider
from prbox.providers.scm import GitHubProvider, ScmProvider
from prbox.workflow.content import MonotonicMillis
from prbox.workflow.context import WorkflowContext
from prbox.workflow.repo_url import parse_repo_url
from prbox.workflow.steps import STEPS, Step, normalize_change_path

logger = logging.getLogger(__name__)

ScmFactory = Callable[[SandboxSession], ScmProvider]


@dataclass(frozen=True)
class StepOutcome:
    name: str
    ok: bool
    duration_ms: int
    error: Optional[str] = None


class PrWorkflow:
    """Runs the workflow steps inside one sandbox per call.

    ``run`` never raises: every failure becomes a failed ``CreatePrResult``.
    Branch names strictly increase across calls on the same instance.
    """

    def __init__(
        self,
        settings: Settings,
        provider: Optional[SandboxProvider] = None,
        scm_factory: ScmFactory = GitHubProvider,
        steps: Sequence[tuple[str, Step]] = STEPS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._provider = provider
        self._scm_factory = scm_factory
        self._steps = tuple(steps)
        self._clock_ms = MonotonicMillis(clock)
        self.outcomes: list[StepOutcome] = []

    def run(self, request: CreatePrRequest) -> CreatePrResult:
        self.outcomes = []
        try:
            return self._run(request)
        except Exception as exc:
            logger.error("Pull request workflow failed: %s", exc)
            return CreatePrResult.failed(str(exc))

    def _run(self, request: CreatePrRequest) -> CreatePrResult:
        token = self._settings.github_token
        if not token:
            return CreatePrResult.failed(
                "GITHUB_PERSONAL_ACCESS_TOKEN environment variable is required"
            )
        try:
            repo = parse_repo_url(request.repo_url)
            for change in request.file_changes:
                normalize_change_path(change.path)
        except PrBoxError as exc:
            return CreatePrResult.failed(str(exc))
        if not self._settings.sandbox_id:
            raise ConfigurationError("A sandbox id is required (set PRBOX_SANDBOX_ID)")

        provider = self._provider or build_sandbox_provider(self._settings)
        sandbox_id = self._settings.sandbox_id
        provider.start_sandbox(sandbox_id)
        logger.info("Sandbox %s resumed for %s", sandbox_id, repo.full_name)
        session = SandboxSession(provider, sandbox_id, timeout_s=self._settings.command_timeout_s)
        ctx = self._context(request, repo, session, token)
        try:
            self._run_steps(ctx)
        except Exception:
            self._stop_quietly(provider, sandbox_id)
            raise

        provider.stop_sandbox(sandbox_id)
        logger.info("Sandbox %s stopped", sandbox_id)
        if ctx.pull_request is None:
            raise RuntimeError("Workflow finished without opening a pull request")
        return CreatePrResult.succeeded(
            CreatePrData(
                pr_url=ctx.pull_request.url,
                branch_name=ctx.branch_name,
                sandbox_id=sandbox_id,
                forked=ctx.forked,
                fork_url=ctx.fork_url if ctx.forked else None,
            )
        )

    def _context(
        self,
        request: CreatePrRequest,
        repo: RepoRef,
        session: SandboxSession,
        token: str,
    ) -> WorkflowContext:
        return WorkflowContext(
            settings=self._settings,
            request=request,
            repo=repo,
            session=session,
            scm=self._scm_factory(session),
            token=token,
            clock_ms=self._clock_ms,
        )

    def _run_steps(self, ctx: WorkflowContext) -> None:
        for name, step in self._steps:
            logger.info("Step %s started", name)
            start = time.monotonic()
            try:
                step(ctx)
            except Exception as exc:
                self._record(name, start, error=str(exc) or type(exc).__name__)
                logger.error("Step %s failed", name)
                raise
            self._record(name, start)
            logger.info("Step %s finished", name)

    def _record(self, name: str, start: float, error: Optional[str] = None) -> None:
        duration_ms = int((time.monotonic() - start) * 1000)
        self.outcomes.append(
            StepOutcome(name=name, ok=error is None, duration_ms=duration_ms, error=error)
        )

    def _stop_quietly(self, provider: SandboxProvider, sandbox_id: str) -> None:
        try:
            provider.stop_sandbox(sandbox_id)
        except Exception as exc:
            logger.warning("Could not stop sandbox %s: %s", sandbox_id, exc)


def create_github_pr(
    request: CreatePrRequest,
    settings: Optional[Settings] = None,
    provider: Optional[SandboxProvider] = None,
) -> CreatePrResult:
    """Run the workflow once with settings loaded from the environment."""
    try:
        resolved = settings or load_settings()
    except ConfigurationError as exc:
        return CreatePrResult.failed(str(exc))
    return PrWorkflow(resolved, provider=provider).run(request)
