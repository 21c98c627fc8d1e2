"""
Configuration loading for the Trac to GitHub migration tool.

The configuration is a YAML file::

    trac:
      database: /var/trac/project/db/trac.db
    github:
      repository: owner/repo
      identities:            # the first identity is the default
        - login: migration-bot
          pass_path: github/cli/token
        - login: alice
          token: ghp_...
    users:                   # Trac user name -> GitHub login
      alice@example.com: alice
    labels:                  # field -> ordered [pattern, label] rules
      priority:
        - ["^blocker$", "priority: blocker"]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError
from .labels import LabelRule, compile_rules

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """A GitHub account the migration can act as."""

    login: str
    token: str | None = None
    pass_path: str | None = None


@dataclass(frozen=True)
class MigrationConfig:
    """Validated migration settings."""

    database: Path
    repository: str
    identities: list[Identity]
    users: dict[str, str] = field(default_factory=dict)
    labels: dict[str, list[LabelRule]] = field(default_factory=dict)
    base_url: str | None = None


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name)
    if not isinstance(section, dict):
        msg = f"Missing or invalid '{name}' section in configuration"
        raise ConfigurationError(msg)
    return section


def _parse_identities(raw: object) -> list[Identity]:
    if not isinstance(raw, list) or not raw:
        msg = "'github.identities' must be a non-empty list"
        raise ConfigurationError(msg)

    identities: list[Identity] = []
    for entry in raw:
        if not isinstance(entry, dict) or not entry.get("login"):
            msg = f"Invalid GitHub identity: {entry!r}"
            raise ConfigurationError(msg)
        identities.append(
            Identity(login=str(entry["login"]), token=entry.get("token"), pass_path=entry.get("pass_path"))
        )
    return identities


def parse_config(data: object) -> MigrationConfig:
    """Validate a parsed YAML document.

    Raises:
        ConfigurationError: If required settings are missing or malformed
    """
    if not isinstance(data, dict):
        msg = "Configuration must be a mapping"
        raise ConfigurationError(msg)

    trac = _section(data, "trac")
    github = _section(data, "github")

    database = trac.get("database")
    if not database:
        msg = "Missing 'trac.database' in configuration"
        raise ConfigurationError(msg)

    repository = str(github.get("repository", "")).strip()
    owner, _, name = repository.partition("/")
    if not owner or not name or "/" in name:
        msg = f"Invalid GitHub repository path: {repository!r}. Expected format: 'owner/repository'"
        raise ConfigurationError(msg)

    users = data.get("users") or {}
    if not isinstance(users, dict):
        msg = "'users' must map Trac user names to GitHub logins"
        raise ConfigurationError(msg)

    labels = data.get("labels") or {}
    if not isinstance(labels, dict):
        msg = "'labels' must map field names to rule lists"
        raise ConfigurationError(msg)

    return MigrationConfig(
        database=Path(database),
        repository=repository,
        identities=_parse_identities(github.get("identities")),
        users={str(k): str(v) for k, v in users.items()},
        labels=compile_rules(labels),
        base_url=github.get("base_url"),
    )


def load_config(path: str | Path) -> MigrationConfig:
    """Load and validate the YAML configuration file.

    Raises:
        ConfigurationError: If the file cannot be read or is invalid
    """
    config_path = Path(path)
    try:
        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        msg = f"Cannot read configuration file {config_path}: {e}"
        raise ConfigurationError(msg) from e
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in {config_path}: {e}"
        raise ConfigurationError(msg) from e

    config = parse_config(data)
    logger.debug(
        f"Loaded configuration from {config_path}: {len(config.identities)} identities, "
        f"{len(config.users)} users, {len(config.labels)} label categories"
    )
    return config
