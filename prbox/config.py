"""Runtime settings for the pull request workflow.

Settings are resolved from, in increasing precedence: field defaults, an
optional YAML file whose keys are the field names, and environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from prbox.errors import ConfigurationError

DEFAULT_CONFIG_PATH = "config/prbox.yaml"
SANDBOX_PROVIDERS = ("daytona", "local")

_TOKEN_ENV_VARS = ("GITHUB_PERSONAL_ACCESS_TOKEN", "GITHUB_PAT", "GITHUB_TOKEN")
_ENV_FIELDS = {
    "DAYTONA_API_KEY": "daytona_api_key",
    "DAYTONA_API_URL": "daytona_api_url",
    "DAYTONA_TARGET": "daytona_target",
    "PRBOX_SANDBOX_PROVIDER": "sandbox_provider",
    "PRBOX_SANDBOX_ID": "sandbox_id",
    "PRBOX_LOCAL_BASE_DIR": "local_base_dir",
    "PRBOX_BASE_BRANCH": "base_branch",
    "PRBOX_BRANCH_PREFIX": "branch_prefix",
    "PRBOX_COMMIT_AUTHOR_NAME": "commit_author_name",
    "PRBOX_COMMIT_AUTHOR_EMAIL": "commit_author_email",
    "PRBOX_CREATE_MISSING_FORK": "create_missing_fork",
    "PRBOX_COMMAND_TIMEOUT_S": "command_timeout_s",
    "PRBOX_LOG_LEVEL": "log_level",
}
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    github_token: Optional[str] = None
    sandbox_provider: str = "daytona"
    sandbox_id: Optional[str] = None
    daytona_api_key: Optional[str] = None
    daytona_api_url: Optional[str] = None
    daytona_target: Optional[str] = None
    local_base_dir: Optional[str] = None
    base_branch: Optional[str] = None
    branch_prefix: str = "code0"
    commit_author_name: str = "code0"
    commit_author_email: str = "code0@users.noreply.github.com"
    create_missing_fork: bool = True
    command_timeout_s: Optional[int] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.sandbox_provider not in SANDBOX_PROVIDERS:
            raise ConfigurationError(
                f"Unknown sandbox provider: {self.sandbox_provider} "
                f"(expected one of {', '.join(SANDBOX_PROVIDERS)})"
            )
        if not self.branch_prefix:
            raise ConfigurationError("branch_prefix must not be empty")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigurationError(f"Unknown log level: {self.log_level}")


def load_settings(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build settings from the YAML file (if any) and the environment.

    An explicit ``config_path`` must exist; the default path is optional.
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    path = Path(config_path or env.get("PRBOX_CONFIG") or DEFAULT_CONFIG_PATH)
    explicit = config_path is not None or "PRBOX_CONFIG" in env
    if path.exists():
        values.update(_load_yaml(path))
    elif explicit:
        raise ConfigurationError(f"Config file not found: {path}")

    for var in _TOKEN_ENV_VARS:
        if env.get(var):
            values["github_token"] = env[var]
            break
    for var, name in _ENV_FIELDS.items():
        if env.get(var):
            values[name] = env[var]

    return Settings(**_coerce(values))


def with_overrides(settings: Settings, **overrides: Any) -> Settings:
    present = {key: value for key, value in overrides.items() if value is not None}
    if not present:
        return settings
    return replace(settings, **_coerce(present))


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    known = {item.name for item in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown settings in {path}: {', '.join(map(str, unknown))}"
        )
    return data


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    coerced = dict(values)
    if "create_missing_fork" in coerced:
        coerced["create_missing_fork"] = _to_bool(coerced["create_missing_fork"])
    if coerced.get("command_timeout_s") is not None:
        coerced["command_timeout_s"] = _to_int(
            "command_timeout_s", coerced["command_timeout_s"]
        )
    if "log_level" in coerced:
        coerced["log_level"] = str(coerced["log_level"]).upper()
    return coerced


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Expected a boolean for create_missing_fork, got {value!r}")


def _to_int(name: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Expected an integer for {name}, got {value!r}") from exc
    if number <= 0:
        raise ConfigurationError(f"{name} must be positive")
    return number
