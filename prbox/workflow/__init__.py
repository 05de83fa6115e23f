"""The fork-branch-commit-PR workflow."""

from prbox.workflow.repo_url import parse_repo_url
from prbox.workflow.runner import PrWorkflow, StepOutcome, create_github_pr

__all__ = ["PrWorkflow", "StepOutcome", "create_github_pr", "parse_repo_url"]
