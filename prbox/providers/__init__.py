"""Provider package for sandbox and SCM integrations."""

from prbox.providers.sandbox import DaytonaProvider, LocalProvider, SandboxProvider
from prbox.providers.scm import GitHubProvider, ScmProvider

__all__ = [
    "DaytonaProvider",
    "GitHubProvider",
    "LocalProvider",
    "SandboxProvider",
    "ScmProvider",
]
