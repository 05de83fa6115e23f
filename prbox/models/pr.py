"""Request and result models for the pull request workflow."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

DEFAULT_COMMIT_MESSAGE = "feat: Automated update via AI agent"
DEFAULT_PR_TITLE = "🤖 AI Agent Update: Automated changes"
DEFAULT_PR_BODY = "This PR was automatically created by an AI agent."


@dataclass(frozen=True)
class FileChange:
    path: str
    content: str


@dataclass(frozen=True)
class CreatePrRequest:
    repo_url: str
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    pr_title: str = DEFAULT_PR_TITLE
    pr_body: str = DEFAULT_PR_BODY
    file_changes: tuple[FileChange, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CreatePrData:
    pr_url: str
    branch_name: str
    sandbox_id: str
    forked: bool = False
    fork_url: Optional[str] = None


@dataclass(frozen=True)
class CreatePrResult:
    success: bool
    data: Optional[CreatePrData] = None
    error: Optional[str] = None

    @classmethod
    def succeeded(cls, data: CreatePrData) -> CreatePrResult:
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str) -> CreatePrResult:
        return cls(success=False, error=error or "Unknown error occurred")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            payload["data"] = asdict(self.data)
        if self.error is not None:
            payload["error"] = self.error
        return payload
