# ology/config.py
"""
Runtime settings.

Read from an optional YAML file, then overridden by environment:

    # ~/.ology/config.yaml
    store_dir: ~/.ology
    fetch_timeout: 30
    max_thread_depth: 64

    OLOGY_STORE_DIR, OLOGY_FETCH_TIMEOUT, OLOGY_MAX_THREAD_DEPTH
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".ology"
DEFAULT_CONFIG_PATH = DEFAULT_HOME / "config.yaml"


@dataclass
class Settings:
    """
    Attributes:
        store_dir: Where config, list and identity-document stores live
        fetch_timeout: Seconds to wait for an identity document
        max_thread_depth: Most ancestors a reply thread may hold
        user_agent: Sent with identity document requests
    """
    store_dir: Path = field(default_factory=lambda: DEFAULT_HOME)
    fetch_timeout: float = 30.0
    max_thread_depth: int = 64
    user_agent: str = "ology/0.1.0"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        settings = cls()
        if "store_dir" in data:
            settings.store_dir = Path(data["store_dir"]).expanduser()
        if "fetch_timeout" in data:
            settings.fetch_timeout = float(data["fetch_timeout"])
        if "max_thread_depth" in data:
            settings.max_thread_depth = int(data["max_thread_depth"])
        if "user_agent" in data:
            settings.user_agent = str(data["user_agent"])
        return settings


def _from_env(environ) -> Dict[str, Any]:
    data = {}
    if environ.get("OLOGY_STORE_DIR"):
        data["store_dir"] = environ["OLOGY_STORE_DIR"]
    if environ.get("OLOGY_FETCH_TIMEOUT"):
        data["fetch_timeout"] = environ["OLOGY_FETCH_TIMEOUT"]
    if environ.get("OLOGY_MAX_THREAD_DEPTH"):
        data["max_thread_depth"] = environ["OLOGY_MAX_THREAD_DEPTH"]
    return data


def load_settings(path: Optional[Path | str] = None, environ=None) -> Settings:
    """
    Load settings from a YAML file and the environment.

    A missing file is not an error; an explicit path that does not exist
    is logged and skipped.

    Raises:
        ValueError: if the file is not a YAML mapping or a value has the wrong type
        OSError: if the file exists but cannot be read
    """
    environ = os.environ if environ is None else environ
    config_path = Path(path).expanduser() if path else DEFAULT_CONFIG_PATH

    data: Dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            try:
                loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Config file {config_path} is not valid YAML: {e}") from e
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        data.update(loaded)
    elif path:
        logger.warning(f"Config file not found: {config_path}")

    data.update(_from_env(environ))
    try:
        return Settings.from_dict(data)
    except TypeError as e:
        raise ValueError(f"Invalid setting: {e}") from e
