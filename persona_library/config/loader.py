"""Configuration loading for personad.

This module handles loading configuration from a YAML file and environment
variables.

Contract:
- Inputs: Config file paths, environment variables
- Outputs: PersonaSettings objects
- Side Effects: Creates default config file if missing
"""

import logging
import os
from pathlib import Path

import yaml

from ..storage.paths import get_config_dir
from .settings import PersonaSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = """# personad configuration
# Environment variables (PERSONAD_<KEY>) take precedence over this file.

# Server settings
host: "127.0.0.1"
port: 8420
log_level: "info"
workers: 1

# Model provider
# gemini_api_key is best set through GEMINI_API_KEY or PERSONAD_GEMINI_API_KEY
model: "gemini-2.5-flash"
temperature: 0.7

# Chat clients
gateway_url: "http://127.0.0.1:8420/api/chat"
summary_length: 100
# stream_timeout_seconds: 120
"""


def get_config_path() -> Path:
    """Get path to config file.

    Returns:
        Path to daemon.yaml in config directory
    """
    return get_config_dir() / "daemon.yaml"


def create_default_config() -> None:
    """Create default config file if it doesn't exist."""
    config_path = get_config_path()

    if config_path.exists():
        logger.debug(f"Config file already exists: {config_path}")
        return

    config_path.write_text(DEFAULT_CONFIG, encoding="utf-8")
    logger.info(f"Created default config: {config_path}")


def load_config(config_path: Path | None = None) -> PersonaSettings:
    """Load configuration from YAML and environment.

    Precedence: defaults < YAML < environment variables. Variables are
    prefixed with PERSONAD_ (e.g., PERSONAD_PORT).

    Args:
        config_path: Optional config file path (default: daemon.yaml in config dir)

    Returns:
        Validated settings

    Raises:
        pydantic.ValidationError: If a value fails validation
    """
    if config_path is None:
        config_path = get_config_path()
        if not config_path.exists():
            create_default_config()

    yaml_settings: dict = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_settings = yaml.safe_load(f) or {}
            logger.debug(f"Loaded config from {config_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            logger.info("Using default settings and environment variables")

    # Only pass YAML values that don't have corresponding env vars
    filtered_yaml = {}
    for key, value in yaml_settings.items():
        env_key = f"PERSONAD_{key.upper()}"
        if env_key not in os.environ:
            filtered_yaml[key] = value

    settings = PersonaSettings(**filtered_yaml)

    logger.info(f"Configuration loaded: host={settings.host}, port={settings.port}, model={settings.model}")
    return settings
