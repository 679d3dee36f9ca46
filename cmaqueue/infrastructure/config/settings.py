"""Loads configuration settings and turns them into ClientOptions.

Supports loading from .env files, environment variables, and a YAML
configuration file (~/.cmaqueue/config.yaml). Only the CLI composition root
uses this module; the library itself only ever receives ClientOptions.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from cmaqueue.domain.interfaces.config import ConfigurationProvider
from cmaqueue.domain.models.options import ClientOptions

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".cmaqueue"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"

SPACE_ID_KEY = "CONTENTFUL_SPACE"
ACCESS_TOKEN_KEY = "CONTENTFUL_MANAGEMENT_ACCESS_TOKEN"


def _coerce(value: str) -> Any:
    """Converts an environment string to bool/int/float where it looks like one."""
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value


def _lookup_dotted(data: Mapping[str, Any], key: str) -> Any:
    """Finds 'a.b.c' either as a flat key or as nested mappings."""
    if key in data:
        return data[key]
    node: Any = data
    for part in key.split('.'):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def find_dotenv_path(start: Optional[Path] = None) -> Optional[Path]:
    """Searches for the .env file upwards from the given (or current) directory."""
    cwd = start or Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


class YamlEnvConfiguration(ConfigurationProvider):
    """Configuration read from environment variables, a .env file and YAML.

    Priority order (highest to lowest):
    1. Explicit overrides (set())
    2. Environment Variables
    3. .env file (loaded into the environment without overriding it)
    4. YAML configuration file
    5. The default passed to get()
    """

    def __init__(self, config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None):
        self.config_file = config_file
        self.env_file = env_file
        self._config: Dict[str, Any] = {}
        self._overrides: Dict[str, Any] = {}
        self._loaded = False

    def load_config(self) -> None:
        """Loads the YAML file and the .env file. Safe to call more than once."""
        self._config = {}

        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    yaml_config = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Failed to load or parse YAML config {self.config_file}: {e}")
                yaml_config = None
            if isinstance(yaml_config, dict):
                self._config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {self.config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {self.config_file} did not contain a mapping.")
        else:
            logger.debug(f"YAML config file not found: {self.config_file}")

        dotenv_path = self.env_file or find_dotenv_path()
        if dotenv_path and load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
        else:
            logger.debug("No .env file loaded.")

        self._loaded = True

    def get(self, key: str, default: Optional[Any] = None) -> Optional[Any]:
        """Gets a configuration value; dotted keys map to QUEUE_CONCURRENCY style env names."""
        if not self._loaded:
            self.load_config()

        if key in self._overrides:
            return self._overrides[key]

        env_key = key.upper().replace('.', '_')
        if env_key in os.environ:
            return _coerce(os.environ[env_key])

        value = _lookup_dotted(self._config, key)
        if value is not None:
            return value

        logger.debug(f"Config key '{key}' not found. Returning default: {default}")
        return default

    def set(self, key: str, value: Any) -> None:
        """Overrides a value for the rest of the process (e.g. from CLI flags)."""
        logger.debug(f"Setting config override: {key}={value!r}")
        self._overrides[key] = value

    def build_client_options(self) -> ClientOptions:
        """Builds ClientOptions from every known configuration key."""
        defaults = ClientOptions()
        retry, queue = defaults.retry_options, defaults.queue_options
        return ClientOptions.from_dict({
            "locale": self.get('locale', defaults.locale),
            "space_id": self.get(SPACE_ID_KEY) or self.get('contentful.space'),
            "access_token": self.get(ACCESS_TOKEN_KEY) or self.get('contentful.access_token'),
            "environment": self.get('contentful.environment', defaults.environment),
            "progress": bool(self.get('progress', defaults.progress)),
            "retry_options": {
                "retries": int(self.get('retry.retries', retry.retries)),
                "factor": float(self.get('retry.factor', retry.factor)),
                "min_timeout": float(self.get('retry.min_timeout', retry.min_timeout)),
                "max_timeout": self.get('retry.max_timeout', retry.max_timeout),
                "randomize": bool(self.get('retry.randomize', retry.randomize)),
            },
            "queue_options": {
                "concurrency": int(self.get('queue.concurrency', queue.concurrency)),
                "delay": float(self.get('queue.delay', queue.delay)),
            },
        })
