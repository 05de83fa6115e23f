"""Sandbox provider interface."""

from __future__ import annotations

from typing import Protocol, Sequence

from prbox.models.sandbox import ExecResult


class SandboxProvider(Protocol):
    def start_sandbox(self, sandbox_id: str) -> None:
        ...

    def stop_sandbox(self, sandbox_id: str) -> None:
        ...

    def exec(
        self,
        sandbox_id: str,
        command: Sequence[str],
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout_s: int | None = None,
    ) -> ExecResult:
        ...

    def read_file(self, sandbox_id: str, path: str) -> bytes:
        ...

    def write_file(self, sandbox_id: str, path: str, data: bytes) -> None:
        ...
