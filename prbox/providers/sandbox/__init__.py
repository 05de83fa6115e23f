"""Sandbox provider implementations and interfaces."""

from __future__ import annotations

from prbox.config import Settings
from prbox.providers.sandbox.base import SandboxProvider
from prbox.providers.sandbox.daytona import DaytonaProvider
from prbox.providers.sandbox.local import LocalProvider
from prbox.providers.sandbox.session import SandboxSession


def build_sandbox_provider(settings: Settings) -> SandboxProvider:
    if settings.sandbox_provider == "local":
        return LocalProvider(base_dir=settings.local_base_dir)
    return DaytonaProvider(
        api_key=settings.daytona_api_key,
        api_url=settings.daytona_api_url,
        target=settings.daytona_target,
    )


__all__ = [
    "DaytonaProvider",
    "LocalProvider",
    "SandboxProvider",
    "SandboxSession",
    "build_sandbox_provider",
]
