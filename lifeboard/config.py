# Lifeboard: configuration
# Override paths and endpoints via lifeboard.yaml, environment, or CLI args.

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".config" / "lifeboard" / "lifeboard.yaml"


@dataclass
class Config:
    """Runtime configuration for the lifeboard core and API server."""

    # Storage
    db_path: str = "~/.local/share/lifeboard/lifeboard.db"

    # Event sinks
    event_log: bool = True              # write task events to the events table
    webhook_url: Optional[str] = None   # None = no notification webhook
    webhook_timeout: float = 2.0

    # API server
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"

    def resolve(self) -> "Config":
        """Apply environment overrides and expand ~."""
        env_db = os.environ.get("LIFEBOARD_DB")
        if env_db:
            self.db_path = env_db
        env_webhook = os.environ.get("LIFEBOARD_WEBHOOK_URL")
        if env_webhook:
            self.webhook_url = env_webhook
        if self.db_path != ":memory:":
            self.db_path = str(Path(self.db_path).expanduser())
        return self

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """
        Load config from YAML, falling back to defaults.

        A missing default file is fine; a path given explicitly must exist
        and parse, otherwise ConfigError is raised.
        """
        cfg_path = Path(path).expanduser() if path else CONFIG_PATH
        if not cfg_path.exists():
            if path:
                raise ConfigError(f"Config file not found: {cfg_path}")
            return cls().resolve()

        try:
            with open(cfg_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config {cfg_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config {cfg_path} must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys in {cfg_path}: {', '.join(unknown)}")
        cfg = cls(**{k: v for k, v in data.items() if k in known})
        return cfg.resolve()
