"""Where personad keeps its files.

Everything lives below PERSONAD_HOME (default ``.personad`` in the working
directory)::

    $PERSONAD_HOME/
        config/   daemon.yaml
        state/    document store (users/, admin/, analytics/)
        logs/     daemon.log

Each subdirectory can be moved on its own with PERSONAD_CONFIG_DIR,
PERSONAD_STATE_DIR or PERSONAD_LOG_DIR. Resolving a directory creates it.
"""

import os
from pathlib import Path

HOME_ENV = "PERSONAD_HOME"
DEFAULT_HOME = ".personad"


def get_home_dir() -> Path:
    """Root of all personad files, from PERSONAD_HOME."""
    return Path(os.environ.get(HOME_ENV, DEFAULT_HOME)).resolve()


def _ensure_dir(subdir: str, override_env: str) -> Path:
    override = os.environ.get(override_env)
    directory = Path(override).resolve() if override is not None else get_home_dir() / subdir
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def get_config_dir() -> Path:
    """Directory holding daemon.yaml ($PERSONAD_HOME/config)."""
    return _ensure_dir("config", "PERSONAD_CONFIG_DIR")


def get_state_dir() -> Path:
    """Root of the document store ($PERSONAD_HOME/state).

    Characters, sessions, messages, admin records and analytics are all
    written below this directory.
    """
    return _ensure_dir("state", "PERSONAD_STATE_DIR")


def get_log_dir() -> Path:
    """Directory the CLI points daemon output at ($PERSONAD_HOME/logs)."""
    return _ensure_dir("logs", "PERSONAD_LOG_DIR")
