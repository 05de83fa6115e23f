"""Data models for SCM interactions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RepoRef:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def https_url(self) -> str:
        return f"https://github.com/{self.full_name}"


@dataclass(frozen=True)
class PullRequestInfo:
    url: str
    number: Optional[int]
