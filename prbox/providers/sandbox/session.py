"""Command and file helpers bound to one running sandbox."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional, Sequence

from prbox.errors import CommandFailedError
from prbox.models.sandbox import ExecResult
from prbox.providers.sandbox.base import SandboxProvider

logger = logging.getLogger(__name__)


@dataclass
class SandboxSession:
    provider: SandboxProvider
    sandbox_id: str
    timeout_s: Optional[int] = None

    def try_run(
        self,
        command: Sequence[str],
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ) -> ExecResult:
        logger.debug("[%s] %s (cwd=%s)", self.sandbox_id, " ".join(command), cwd or ".")
        result = self.provider.exec(
            self.sandbox_id, command, cwd=cwd, env=env, timeout_s=self.timeout_s
        )
        if not result.ok:
            logger.debug("[%s] exit %s: %s", self.sandbox_id, result.exit_code, result.stderr.strip())
        return result

    def run(
        self,
        command: Sequence[str],
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ) -> str:
        result = self.try_run(command, cwd=cwd, env=env)
        if not result.ok:
            raise CommandFailedError(
                command, result.exit_code, stdout=result.stdout, stderr=result.stderr
            )
        return result.stdout

    def exists(self, path: str, kind: str = "e") -> bool:
        return self.try_run(["test", f"-{kind}", path]).ok

    def read_text(self, path: str) -> str:
        return self.provider.read_file(self.sandbox_id, path).decode("utf-8")

    def write_text(self, path: str, content: str) -> None:
        self.provider.write_file(self.sandbox_id, path, content.encode("utf-8"))
