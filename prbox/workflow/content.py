"""Text produced by the workflow: branch names, README section, PR body."""

from __future__ import annotations

from datetime import datetime, timezone
import time
from typing import Callable, Optional

README_SECTION = (
    "## AI Agent Update\n"
    "\n"
    "This {subject} by an AI agent ({agent}) running in a remote sandbox.\n"
    "\n"
    "- Automated file modification\n"
    "- Demonstration of AI-driven development workflow\n"
    "- Generated on: {generated}"
)


class MonotonicMillis:
    """Epoch milliseconds, strictly increasing for one instance."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last: int | None = None

    def __call__(self) -> int:
        now = int(self._clock() * 1000)
        self._last = now if self._last is None else max(self._last + 1, now)
        return self._last


def isoformat_utc(now: Optional[datetime] = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def branch_name(prefix: str, millis: int) -> str:
    return f"{prefix}-{millis}"


def appended_readme(existing: str, agent: str, generated: str) -> str:
    section = README_SECTION.format(
        subject="update was made", agent=agent, generated=generated
    )
    return f"{existing}\n\n{section}"


def new_readme(repo_name: str, agent: str, generated: str) -> str:
    section = README_SECTION.format(
        subject="repository was updated", agent=agent, generated=generated
    )
    return f"# {repo_name}\n\n{section}"


def commit_message(message: str, co_author: str) -> str:
    return f"{message}\n\nCo-authored-by: {co_author}"


def pr_body(
    body: str,
    *,
    agent: str,
    creator: str,
    generated: str,
    repository: str,
    branch: str,
    fork_url: Optional[str] = None,
) -> str:
    lines = [
        body,
        "",
        "### Technical Details:",
        f"- **Commit Author**: {agent} (AI Agent)",
        f"- **PR Creator**: {creator} (via personal access token)",
        f"- **Generated**: {generated}",
        f"- **Repository**: {repository}",
        f"- **Branch**: {branch}",
    ]
    if fork_url:
        lines.append(f"- **Fork**: {fork_url}")
        lines.append("- **Created from fork**: Yes")
    return "\n".join(lines)
