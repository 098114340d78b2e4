"""Runtime configuration for the notifier.

Configuration is resolved once at startup and passed explicitly into the
tracker client and the notifier. Each setting is looked up in order:

1. its environment variable (JIRA_USERNAME, JIRA_TOKEN, ...)
2. the CI step input of the same name (INPUT_JIRAUSERNAME, ...), which is
   how the CI runner exposes `with:` inputs to the step process
3. an optional YAML file

Example YAML:

    username: release-bot@example.com
    host: example.atlassian.net
    webhook_url: https://automation.atlassian.com/pro/hooks/abc123
    timeout: 15
"""

from __future__ import annotations

import base64
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

# field -> (environment variable, CI step input name)
ENV_SOURCES: dict[str, tuple[str, str]] = {
    "username": ("JIRA_USERNAME", "jiraUsername"),
    "token": ("JIRA_TOKEN", "jiraToken"),
    "host": ("JIRA_HOST", "jiraHost"),
    "webhook_url": ("JIRA_WEBHOOK_URL", "webhookUrl"),
    "verify_ssl": ("JIRA_VERIFY_SSL", "verifySsl"),
    "timeout": ("JIRA_TIMEOUT", "timeout"),
}


class ConfigError(ValueError):
    """Raised when configuration is missing or invalid."""


class NotifierConfig(BaseModel):
    """Tracker credentials and endpoints.

    Attributes:
        username: Jira account used for basic auth
        token: Jira API token (never logged)
        host: Jira host without scheme (e.g. "example.atlassian.net")
        webhook_url: Endpoint notified with the release contents
        verify_ssl: Verify TLS certificates on tracker and webhook calls
        timeout: Per-request timeout in seconds
        api_version: Jira REST API version
    """

    model_config = {"frozen": True, "extra": "forbid"}

    username: str = Field(..., min_length=1)
    token: str = Field(..., min_length=1, repr=False)
    host: str = Field(..., min_length=1)
    webhook_url: str = Field("", description="Webhook notified on release")
    verify_ssl: bool = True
    timeout: float = Field(30.0, gt=0)
    api_version: str = "2"

    @field_validator("host")
    @classmethod
    def strip_scheme(cls, value: str) -> str:
        host = value.strip()
        for scheme in ("https://", "http://"):
            if host.startswith(scheme):
                host = host[len(scheme):]
        return host.rstrip("/")

    @property
    def base_url(self) -> str:
        return f"https://{self.host}"

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/rest/api/{self.api_version}"

    def auth_headers(self) -> dict[str, str]:
        """Basic-auth and JSON headers shared by tracker and webhook calls."""
        credentials = f"{self.username}:{self.token}".encode()
        return {
            "Authorization": f"Basic {base64.b64encode(credentials).decode()}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }


def _input_variable(name: str) -> str:
    return "INPUT_" + name.replace(" ", "_").upper()


def _read_yaml(path: str | Path) -> dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        raw = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return raw


def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> NotifierConfig:
    """Resolve configuration from the environment, CI inputs and YAML.

    Args:
        path: Optional YAML file providing defaults.
        env: Environment mapping. Defaults to os.environ.

    Returns:
        A validated, read-only NotifierConfig.

    Raises:
        ConfigError: If the YAML is invalid, has unknown keys, or a required
            value is missing.
    """
    if env is None:
        env = os.environ

    values: dict[str, Any] = _read_yaml(path) if path else {}

    for field, (env_name, input_name) in ENV_SOURCES.items():
        value = env.get(env_name) or env.get(_input_variable(input_name))
        if value:
            values[field] = value

    try:
        return NotifierConfig.model_validate(values)
    except ValidationError as exc:
        missing = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
        raise ConfigError(
            f"Invalid notifier configuration ({', '.join(missing)}): {exc}"
        ) from exc
