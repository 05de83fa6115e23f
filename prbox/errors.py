"""Exceptions raised by prbox."""

from __future__ import annotations

from typing import Sequence


class PrBoxError(Exception):
    """Base class for prbox failures."""


class ConfigurationError(PrBoxError):
    pass


class InvalidRepoUrlError(PrBoxError):
    pass


class InvalidRequestError(PrBoxError):
    pass


class ForkUnavailableError(PrBoxError):
    pass


class CommandFailedError(PrBoxError):
    """A sandbox command exited with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str],
        exit_code: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = list(command)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        detail = stderr.strip() or stdout.strip()
        message = f"Command failed ({exit_code}): {' '.join(self.command)}"
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)
