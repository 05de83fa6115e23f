"""GitHub repository URL parsing."""

from __future__ import annotations

import re

from prbox.errors import InvalidRepoUrlError
from prbox.models.scm import RepoRef

_REPO_URL = re.compile(r"github\.com/([^/]+)/([^/]+?)(?:\.git)?/?$", re.IGNORECASE)


def _strip_git(value: str) -> str:
    return value[:-4] if value.lower().endswith(".git") else value


def parse_repo_url(repo_url: str) -> RepoRef:
    match = _REPO_URL.search(repo_url.strip())
    if not match:
        raise InvalidRepoUrlError("Invalid GitHub repository URL format")
    owner, name = match.groups()
    return RepoRef(owner=_strip_git(owner).lower(), name=_strip_git(name).lower())
