"""Configuration management for groupacl.

Handles loading and validation of the YAML configuration file that
describes where the action catalog lives, which group is used for
anonymous users and which grant acts as the superuser bypass.

Example::

    catalog:
      path: /etc/myapp/rights.xml
    guest_group_id: 9
    superuser:
      resource: app
      action: admin
    membership_cache:
      enabled: true
      ttl: 60
      maxsize: 1024
    logging:
      level: INFO
      dir: /var/log/myapp
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_GUEST_GROUP_ID = "9"


@dataclass
class CatalogConfig:
    """Location of the action catalog."""

    path: str = "rights.xml"


@dataclass
class SuperuserConfig:
    """Grant that bypasses every other check."""

    resource: str = "app"
    action: str = "admin"


@dataclass
class CacheConfig:
    """Per-user membership cache. Entries expire after ``ttl`` seconds."""

    enabled: bool = True
    ttl: float = 60.0
    maxsize: int = 1024


@dataclass
class LoggingConfig:
    """Logging output."""

    level: str = "INFO"
    dir: str = "/var/log/groupacl"
    file_logging: bool = False


@dataclass
class AclConfig:
    """Top-level configuration for groupacl."""

    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    guest_group_id: str = DEFAULT_GUEST_GROUP_ID
    superuser: SuperuserConfig = field(default_factory=SuperuserConfig)
    membership_cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    database_url: Optional[str] = None


def _section(config_dict: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = config_dict.get(name) or {}
    if not isinstance(value, dict):
        raise TypeError(f"Configuration section '{name}' must be a mapping")
    return value


def parse_config(
    config_dict: Dict[str, Any], base: Optional[AclConfig] = None
) -> AclConfig:
    """Parse the full configuration dictionary.

    Keys missing from ``config_dict`` keep their value from ``base``.

    Args:
        config_dict: Full configuration dictionary
        base: Configuration to overlay; defaults to ``AclConfig()``

    Returns:
        AclConfig instance
    """
    base = base or AclConfig()
    catalog = _section(config_dict, "catalog")
    superuser = _section(config_dict, "superuser")
    cache = _section(config_dict, "membership_cache")
    logging_dict = _section(config_dict, "logging")

    return AclConfig(
        catalog=CatalogConfig(path=str(catalog.get("path", base.catalog.path))),
        guest_group_id=str(config_dict.get("guest_group_id", base.guest_group_id)),
        superuser=SuperuserConfig(
            resource=superuser.get("resource", base.superuser.resource),
            action=superuser.get("action", base.superuser.action),
        ),
        membership_cache=CacheConfig(
            enabled=bool(cache.get("enabled", base.membership_cache.enabled)),
            ttl=float(cache.get("ttl", base.membership_cache.ttl)),
            maxsize=int(cache.get("maxsize", base.membership_cache.maxsize)),
        ),
        logging=LoggingConfig(
            level=logging_dict.get("level", base.logging.level),
            dir=logging_dict.get("dir", base.logging.dir),
            file_logging=bool(
                logging_dict.get("file_logging", base.logging.file_logging)
            ),
        ),
        database_url=config_dict.get("database_url", base.database_url),
    )


def load_config(config_path: str = "/etc/groupacl/config.yaml") -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration."""
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def load_typed_config(
    config_path: str = "/etc/groupacl/config.yaml", base: Optional[AclConfig] = None
) -> AclConfig:
    """Load and parse configuration into typed dataclass.

    Args:
        config_path: Path to configuration file
        base: Values for keys the file does not set

    Returns:
        AclConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_dict = load_config(config_path)
    return parse_config(config_dict, base)
