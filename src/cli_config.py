"""Runtime configuration for the dependency manager.

``ManagerConfig`` is built once by the CLI and passed explicitly to every
component. Precedence, lowest first: ``Constants`` defaults, the YAML/JSON
config file, the ``JARDEPS_CACHE_DIR`` environment variable, CLI flags.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)


def default_cache_dir() -> Path:
    """``$JARDEPS_CACHE_DIR`` or ``~/.jardeps/cache``."""
    env = os.environ.get(Constants.ENV_CACHE_DIR)
    if env and env.strip():
        return Path(env.strip()).expanduser()
    return Path.home() / Constants.CACHE_DIR_NAME / "cache"


def _default_incompatibles() -> Dict[str, List[str]]:
    return {k: list(v) for k, v in Constants.INCOMPATIBLE_ARTIFACTS.items()}


@dataclass
class ManagerConfig:
    """Configuration shared by resolver, downloader, cache and manifest."""

    search_url: str = Constants.REGISTRY_URL_MAVEN
    repository_url: str = Constants.REPOSITORY_URL_MAVEN
    user_agent: str = Constants.USER_AGENT
    timeout: float = Constants.REQUEST_TIMEOUT
    max_retries: int = Constants.HTTP_RETRY_MAX
    retry_base_delay: float = Constants.HTTP_RETRY_BASE_DELAY_SEC
    search_rows: int = Constants.SEARCH_ROWS
    cache_dir: Path = field(default_factory=lambda: Path.home() / Constants.CACHE_DIR_NAME / "cache")
    manifest_filename: str = Constants.MANIFEST_FILE
    lock_filename: str = Constants.LOCK_FILE
    libs_dirname: str = Constants.LIBS_DIR
    verify_checksums: bool = True
    lock_timeout: float = Constants.LOCK_TIMEOUT_SEC
    stale_lock_age: float = Constants.STALE_LOCK_AGE_SEC
    incompatible_artifacts: Dict[str, List[str]] = field(default_factory=_default_incompatibles)

    def apply(self, overrides: Mapping[str, Any]) -> "ManagerConfig":
        """Apply known keys from ``overrides``; unknown keys are logged and ignored."""
        known = {f.name for f in fields(self)}
        for key, value in overrides.items():
            name = str(key).replace("-", "_")
            if name not in known:
                logger.warning("Ignoring unknown configuration key: %s", key)
                continue
            if value is None:
                continue
            if name == "cache_dir":
                value = Path(str(value)).expanduser()
            setattr(self, name, value)
        return self

    @classmethod
    def from_args(cls, args: Any) -> "ManagerConfig":
        """Create config from CLI arguments.

        Args:
            args: Parsed CLI arguments namespace.

        Returns:
            ManagerConfig instance.
        """
        config = cls()
        config_path = getattr(args, "CONFIG", None)
        if config_path:
            config.apply(load_config_file(config_path))

        env = os.environ.get(Constants.ENV_CACHE_DIR)
        if env and env.strip():
            config.cache_dir = Path(env.strip()).expanduser()

        cli_overrides = {
            "cache_dir": getattr(args, "CACHE_DIR", None),
            "repository_url": getattr(args, "REPOSITORY_URL", None),
            "search_url": getattr(args, "SEARCH_URL", None),
            "timeout": getattr(args, "TIMEOUT", None),
            "max_retries": getattr(args, "RETRIES", None),
        }
        config.apply(cli_overrides)
        if getattr(args, "NO_VERIFY", False):
            config.verify_checksums = False
        return config


def load_config_file(path: str) -> Dict[str, Any]:
    """Read a YAML or JSON config file.

    A top-level ``jardeps`` section is used when present, otherwise the whole
    document. Missing or unreadable files yield an empty mapping.
    """
    if not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return {}
    if not isinstance(data, dict):
        return {}
    section = data.get("jardeps", data)
    return section if isinstance(section, dict) else {}


def build_config(args: Optional[Any] = None) -> ManagerConfig:
    """Config for ``args`` or, without args, defaults plus environment."""
    if args is None:
        config = ManagerConfig()
        config.cache_dir = default_cache_dir()
        return config
    return ManagerConfig.from_args(args)
