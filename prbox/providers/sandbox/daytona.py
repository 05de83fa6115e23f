"""Daytona sandbox provider backed by the ``daytona`` SDK."""

from __future__ import annotations

import logging
import shlex
import time
from typing import Any, Sequence

from daytona import Daytona, DaytonaConfig

from prbox.models.sandbox import ExecResult
from prbox.providers.sandbox.base import SandboxProvider

logger = logging.getLogger(__name__)


class DaytonaProvider(SandboxProvider):
    """Drives existing Daytona sandboxes.

    ``start_sandbox`` resumes a stopped sandbox and ``stop_sandbox`` shuts it
    down again; sandboxes are never created or deleted here. Daytona merges
    stdout and stderr, so ``ExecResult.stderr`` is always empty and failures
    carry their output in ``stdout``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        target: str | None = None,
        client: Any | None = None,
    ) -> None:
        if client is None:
            config_kwargs = {
                key: value
                for key, value in (
                    ("api_key", api_key),
                    ("api_url", api_url),
                    ("target", target),
                )
                if value
            }
            client = Daytona(DaytonaConfig(**config_kwargs))
        self._client = client
        self._sandboxes: dict[str, Any] = {}

    def start_sandbox(self, sandbox_id: str) -> None:
        sandbox = self._client.get(sandbox_id)
        sandbox.start()
        self._sandboxes[sandbox_id] = sandbox
        logger.debug("Daytona sandbox %s started", sandbox_id)

    def stop_sandbox(self, sandbox_id: str) -> None:
        sandbox = self._get_sandbox(sandbox_id)
        sandbox.stop()
        self._sandboxes.pop(sandbox_id, None)
        logger.debug("Daytona sandbox %s stopped", sandbox_id)

    def exec(
        self,
        sandbox_id: str,
        command: Sequence[str],
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout_s: int | None = None,
    ) -> ExecResult:
        sandbox = self._get_sandbox(sandbox_id)
        start = time.monotonic()
        response = sandbox.process.exec(
            shlex.join(command), cwd=cwd, env=env, timeout=timeout_s
        )
        duration_ms = int((time.monotonic() - start) * 1000)
        return ExecResult(
            exit_code=int(response.exit_code),
            stdout=response.result or "",
            stderr="",
            duration_ms=duration_ms,
        )

    def read_file(self, sandbox_id: str, path: str) -> bytes:
        return self._get_sandbox(sandbox_id).fs.download_file(path)

    def write_file(self, sandbox_id: str, path: str, data: bytes) -> None:
        self._get_sandbox(sandbox_id).fs.upload_file(data, path)

    def _get_sandbox(self, sandbox_id: str) -> Any:
        if sandbox_id not in self._sandboxes:
            raise KeyError(f"Unknown sandbox id: {sandbox_id}")
        return self._sandboxes[sandbox_id]
