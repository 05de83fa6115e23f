"""Request and response bodies for the HTTP API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from prbox.errors import InvalidRepoUrlError, InvalidRequestError
from prbox.models.pr import (
    DEFAULT_COMMIT_MESSAGE,
    DEFAULT_PR_BODY,
    DEFAULT_PR_TITLE,
    CreatePrRequest,
    FileChange,
)
from prbox.workflow.repo_url import parse_repo_url
from prbox.workflow.steps import normalize_change_path


class FileChangeIn(BaseModel):
    path: str = Field(..., min_length=1)
    content: str

    @field_validator("path")
    @classmethod
    def _validate_path(cls, v: str) -> str:
        try:
            normalize_change_path(v)
        except InvalidRequestError as exc:
            raise ValueError(str(exc)) from exc
        return v


class CreatePrIn(BaseModel):
    repo_url: str = Field(..., min_length=1)
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    pr_title: str = DEFAULT_PR_TITLE
    pr_body: str = DEFAULT_PR_BODY
    file_changes: list[FileChangeIn] = Field(default_factory=list)

    @field_validator("repo_url")
    @classmethod
    def _validate_repo_url(cls, v: str) -> str:
        try:
            parse_repo_url(v)
        except InvalidRepoUrlError as exc:
            raise ValueError(str(exc)) from exc
        return v

    def to_request(self) -> CreatePrRequest:
        return CreatePrRequest(
            repo_url=self.repo_url,
            commit_message=self.commit_message,
            pr_title=self.pr_title,
            pr_body=self.pr_body,
            file_changes=tuple(
                FileChange(path=change.path, content=change.content)
                for change in self.file_changes
            ),
        )


class CreatePrDataOut(BaseModel):
    pr_url: str
    branch_name: str
    sandbox_id: str
    forked: bool
    fork_url: Optional[str] = None


class CreatePrOut(BaseModel):
    success: bool
    data: Optional[CreatePrDataOut] = None
    error: Optional[str] = None
