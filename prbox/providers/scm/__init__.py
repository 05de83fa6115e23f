"""SCM provider implementations and interfaces."""

from prbox.providers.scm.base import ScmProvider
from prbox.providers.scm.github import GitHubProvider, parse_pr_output

__all__ = ["GitHubProvider", "ScmProvider", "parse_pr_output"]
