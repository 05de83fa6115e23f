"""Shared data models for prbox."""

from prbox.models.pr import (
    CreatePrData,
    CreatePrRequest,
    CreatePrResult,
    FileChange,
)
from prbox.models.sandbox import ExecResult
from prbox.models.scm import PullRequestInfo, RepoRef

__all__ = [
    "CreatePrData",
    "CreatePrRequest",
    "CreatePrResult",
    "ExecResult",
    "FileChange",
    "PullRequestInfo",
    "RepoRef",
]
