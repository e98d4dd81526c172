"""Load and persist p2plauncher configuration."""

import json
import logging
import os
import time
from pathlib import Path

from pydantic import ValidationError

from p2plauncher.models import LauncherConfig

log = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".p2plauncher"
CONFIG_FILE = CONFIG_DIR / "config.json"

ENV_DISCOVERY_URL = "P2PLAUNCHER_DISCOVERY_URL"
ENV_CPU = "P2PLAUNCHER_CPU"


def _read_config_file(path: Path) -> dict:
    try:
        with open(path) as f:
            payload = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as e:
        log.warning("ignoring unreadable config %s: %s", path, e)
        return {}
    if not isinstance(payload, dict):
        log.warning("ignoring config %s: expected a JSON object", path)
        return {}
    return payload


def _env_overrides() -> dict:
    overrides: dict = {}
    url = os.environ.get(ENV_DISCOVERY_URL, "").strip()
    if url:
        overrides["discovery_url"] = url
    cpu = os.environ.get(ENV_CPU, "").strip()
    if cpu:
        try:
            overrides["cpu_index"] = int(cpu)
        except ValueError:
            log.warning("ignoring %s=%r: not an integer", ENV_CPU, cpu)
    return overrides


def load_config(path: Path | None = None) -> LauncherConfig:
    """Return the stored configuration merged with environment overrides."""
    config_path = path or CONFIG_FILE
    data = {**_read_config_file(config_path), **_env_overrides()}
    try:
        config = LauncherConfig.model_validate(data)
    except ValidationError as e:
        log.warning("invalid config in %s, using defaults: %s", config_path, e)
        config = LauncherConfig()
    log.debug("config=%s", config.model_dump())
    return config


def save_config(config: LauncherConfig, path: Path | None = None) -> Path:
    """Write the configuration atomically with owner-only permissions."""
    config_path = path or CONFIG_FILE
    os.makedirs(config_path.parent, mode=0o700, exist_ok=True)
    temp_file = config_path.with_name(f".{config_path.name}.{os.getpid()}.{time.time_ns()}.tmp")
    fd = os.open(temp_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(config.model_dump(), f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_file, config_path)
    except OSError:
        try:
            os.unlink(temp_file)
        except OSError:
            pass
        raise
    log.debug("saved config to %s", config_path)
    return config_path
