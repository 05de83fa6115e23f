"""Local sandbox provider implementation.

Each sandbox id maps to a directory under the base dir. The directory
survives ``stop_sandbox`` so a later ``start_sandbox`` resumes it, clone
included. Commands run with ``HOME`` inside the sandbox so ``git config
--global`` and ``gh auth`` never touch the host user's configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import subprocess
import tempfile
import time
from typing import Sequence

from prbox.models.sandbox import ExecResult
from prbox.providers.sandbox.base import SandboxProvider

logger = logging.getLogger(__name__)

# gh refuses `auth login` while any of these are set.
_HOST_ONLY_ENV = (
    "XDG_CONFIG_HOME",
    "GH_TOKEN",
    "GITHUB_TOKEN",
    "GH_ENTERPRISE_TOKEN",
    "GITHUB_ENTERPRISE_TOKEN",
)


@dataclass(frozen=True)
class _SandboxRecord:
    sandbox_id: str
    root: Path


class LocalProvider(SandboxProvider):
    def __init__(self, base_dir: str | None = None) -> None:
        self._base_dir = Path(base_dir) if base_dir else Path(
            tempfile.mkdtemp(prefix="prbox-local-")
        )
        self._sandboxes: dict[str, _SandboxRecord] = {}

    def start_sandbox(self, sandbox_id: str) -> None:
        if not sandbox_id or "/" in sandbox_id or sandbox_id in {".", ".."}:
            raise ValueError(f"Invalid sandbox id: {sandbox_id!r}")
        root = self._base_dir / sandbox_id
        root.mkdir(parents=True, exist_ok=True)
        self._sandboxes[sandbox_id] = _SandboxRecord(sandbox_id=sandbox_id, root=root)
        logger.debug("Local sandbox %s resumed at %s", sandbox_id, root)

    def stop_sandbox(self, sandbox_id: str) -> None:
        self._get_record(sandbox_id)
        self._sandboxes.pop(sandbox_id, None)

    def exec(
        self,
        sandbox_id: str,
        command: Sequence[str],
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout_s: int | None = None,
    ) -> ExecResult:
        root = self._get_record(sandbox_id).root
        workdir = self._resolve_path(sandbox_id, cwd) if cwd else root
        start = time.monotonic()
        process = subprocess.run(
            list(command),
            cwd=workdir,
            env=self._merge_env(root, env),
            capture_output=True,
            text=True,
            timeout=timeout_s,
            check=False,
        )
        duration_ms = int((time.monotonic() - start) * 1000)
        return ExecResult(
            exit_code=process.returncode,
            stdout=process.stdout,
            stderr=process.stderr,
            duration_ms=duration_ms,
        )

    def read_file(self, sandbox_id: str, path: str) -> bytes:
        target = self._resolve_path(sandbox_id, path)
        return target.read_bytes()

    def write_file(self, sandbox_id: str, path: str, data: bytes) -> None:
        target = self._resolve_path(sandbox_id, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("wb") as handle:
            handle.write(data)

    def _get_record(self, sandbox_id: str) -> _SandboxRecord:
        if sandbox_id not in self._sandboxes:
            raise KeyError(f"Unknown sandbox id: {sandbox_id}")
        return self._sandboxes[sandbox_id]

    def _resolve_path(self, sandbox_id: str, path: str) -> Path:
        root = self._get_record(sandbox_id).root.resolve()
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = root / candidate
        resolved = candidate.resolve()
        if root != resolved and root not in resolved.parents:
            raise ValueError(f"Path escapes sandbox: {path}")
        return resolved

    def _merge_env(self, root: Path, env: dict[str, str] | None) -> dict[str, str]:
        merged = os.environ.copy()
        for name in _HOST_ONLY_ENV:
            merged.pop(name, None)
        merged["HOME"] = str(root)
        if env:
            merged.update(env)
        return merged
