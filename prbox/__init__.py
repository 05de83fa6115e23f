"""Open GitHub pull requests from a remote sandbox."""

from prbox.models import CreatePrRequest, CreatePrResult, FileChange
from prbox.workflow import PrWorkflow, create_github_pr

__all__ = [
    "CreatePrRequest",
    "CreatePrResult",
    "FileChange",
    "PrWorkflow",
    "create_github_pr",
]
