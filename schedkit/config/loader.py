"""Configuration file handling for schedkit."""

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from schedkit.config.schema import ENV_PREFIX, Config

DEFAULT_CONFIG_FILE = Path.home() / ".schedkit" / "config.json"

# Points at an alternative config file; not itself a setting.
CONFIG_PATH_ENV = f"{ENV_PREFIX}CONFIG"


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Pick the config file: explicit path, then $SCHEDKIT_CONFIG, then ~/.schedkit/config.json."""
    if config_path is not None:
        return config_path
    env_path = os.environ.get(CONFIG_PATH_ENV)
    return Path(env_path).expanduser() if env_path else DEFAULT_CONFIG_FILE


def _env_overrides() -> list[str]:
    return sorted(
        name for name in os.environ if name.startswith(ENV_PREFIX) and name != CONFIG_PATH_ENV
    )


def _read_file(path: Path) -> dict[str, Any] | None:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable config file {path}: {e}")
        return None

    if not isinstance(data, dict):
        logger.warning(f"Ignoring config file {path}: top level must be an object")
        return None
    return data


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file and environment variables.

    Priority: `SCHEDKIT_*` environment variables > config file > defaults,
    resolved per field.

    Args:
        config_path: Optional path to config file. See `resolve_config_path`.

    Returns:
        Loaded configuration. A missing, unreadable or invalid file falls
        back to environment variables and defaults.

    Raises:
        ValidationError: If the environment variables themselves are invalid.
    """
    path = resolve_config_path(config_path)
    data = _read_file(path)

    config: Config | None = None
    if data is not None:
        try:
            config = Config(**data)
        except ValidationError as e:
            logger.warning(f"Invalid config file {path}, ignoring it: {e.error_count()} error(s)\n{e}")

    source = f"file {path}" if config is not None else "defaults"
    if config is None:
        config = Config()

    overrides = _env_overrides()
    if overrides:
        source += f" + environment ({', '.join(overrides)})"
    logger.debug(f"Config loaded from {source}")
    return config


def save_default_config(config_path: Path | None = None, overwrite: bool = False) -> Path:
    """
    Write the default configuration to a file.

    Only defaults are written; values from the environment are not.

    Args:
        config_path: Optional path to save config. See `resolve_config_path`.
        overwrite: Replace an existing file.

    Returns:
        Path where config was saved.

    Raises:
        FileExistsError: If the file exists and `overwrite` is False.
    """
    path = resolve_config_path(config_path)
    if path.exists() and not overwrite:
        raise FileExistsError(f"Config file already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)

    data = Config.model_construct().model_dump(mode="json")
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    logger.info(f"Default config saved to {path}")
    return path
