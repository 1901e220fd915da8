"""
Process settings read from the environment.

WORKFLOW_CONFIG (inline JSON) or WORKFLOW_CONFIG_FILE (path) supplies the
status workflow. Everything else has a default except the Notion
credentials, which are required when TASK_BACKEND=notion.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from errors import ConfigError
from models.workflow import WorkflowConfig

DEFAULT_API_PORT = 9410
DEFAULT_NOTION_API_URL = "https://api.notion.com/v1"
BACKENDS = ("notion", "memory")


def _flag(raw: str) -> bool:
    return raw.lower() in ("true", "1", "yes")


@dataclass
class Settings:
    workflow_config: Optional[str] = None
    workflow_config_file: Optional[str] = None
    backend: str = "notion"
    notion_api_key: Optional[str] = None
    notion_database_id: Optional[str] = None
    notion_api_url: str = DEFAULT_NOTION_API_URL
    api_enabled: bool = False
    api_port: int = DEFAULT_API_PORT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        backend = env.get("TASK_BACKEND", "notion").strip().lower()
        if backend not in BACKENDS:
            raise ConfigError(f"TASK_BACKEND must be one of {', '.join(BACKENDS)}, got '{backend}'")

        port_raw = env.get("API_PORT", str(DEFAULT_API_PORT))
        try:
            api_port = int(port_raw)
        except ValueError:
            raise ConfigError(f"API_PORT must be an integer, got '{port_raw}'") from None

        return cls(
            workflow_config=env.get("WORKFLOW_CONFIG") or None,
            workflow_config_file=env.get("WORKFLOW_CONFIG_FILE") or None,
            backend=backend,
            notion_api_key=env.get("NOTION_API_KEY") or None,
            notion_database_id=env.get("NOTION_DATABASE_ID") or None,
            notion_api_url=env.get("NOTION_API_URL", DEFAULT_NOTION_API_URL),
            api_enabled=_flag(env.get("API_ENABLED", "false")),
            api_port=api_port,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )


def load_workflow_config(settings: Settings) -> WorkflowConfig:
    """
    Load and validate the workflow config named by settings.

    WORKFLOW_CONFIG takes precedence over WORKFLOW_CONFIG_FILE.

    Raises:
        ConfigError: if neither is set, the JSON is unreadable, or the
            config fails validation
    """
    if settings.workflow_config:
        raw, source = settings.workflow_config, "WORKFLOW_CONFIG"
    elif settings.workflow_config_file:
        path = Path(settings.workflow_config_file)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read WORKFLOW_CONFIG_FILE {path}: {e}") from e
        source = str(path)
    else:
        raise ConfigError("WORKFLOW_CONFIG or WORKFLOW_CONFIG_FILE environment variable is required")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {source}: {e}") from e

    return WorkflowConfig.from_dict(data)
