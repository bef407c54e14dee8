"""YAML configuration loader and validator."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from jump.core.models import DEFAULT_WOL_PORT

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("config.yaml")

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}

# env var → (section, key, converter)
_ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "JUMP_SERVER_HOST": ("server", "host", str),
    "JUMP_SERVER_PORT": ("server", "port", int),
    "JUMP_LOG_LEVEL": ("server", "log_level", str),
    "JUMP_STATIC_DIR": ("server", "static_dir", str),
    "JUMP_STORAGE_FILE_PATH": ("storage", "file_path", str),
    "JUMP_WOL_DEFAULT_PORT": ("wol", "default_port", int),
}


class ConfigError(Exception):
    """Raised for invalid configuration."""


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    # Built frontend to serve at "/", if the directory exists.
    static_dir: Optional[str] = "static/dist"


@dataclass(frozen=True)
class StorageConfig:
    file_path: str = "devices.json"


@dataclass(frozen=True)
class WolConfig:
    default_port: int = DEFAULT_WOL_PORT


@dataclass(frozen=True)
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    wol: WolConfig = field(default_factory=WolConfig)


def load_config(path: Path) -> Optional[dict[str, Any]]:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the YAML config file

    Returns:
        Parsed configuration dictionary, or None if file is empty

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    with open(path) as f:
        result: Optional[dict[str, Any]] = yaml.safe_load(f)
        return result


def apply_env_overrides(
    raw: dict[str, Any], environ: Optional[Mapping[str, str]] = None
) -> dict[str, Any]:
    """
    Overlay ``JUMP_*`` environment variables on a raw config dict.

    Returns:
        A new dict; *raw* is left untouched

    Raises:
        ConfigError: If a numeric variable does not parse
    """
    env = os.environ if environ is None else environ
    merged: dict[str, Any] = {k: dict(v) if isinstance(v, dict) else v for k, v in raw.items()}
    for var, (section, key, convert) in _ENV_OVERRIDES.items():
        if var not in env:
            continue
        try:
            value = convert(env[var])
        except ValueError as exc:
            raise ConfigError(f"{var}: {exc}") from exc
        merged.setdefault(section, {})
        if not isinstance(merged[section], dict):
            merged[section] = {}
        merged[section][key] = value
    return merged


def _valid_port(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 65535


def validate_config(config: dict[str, Any]) -> list[str]:
    """
    Validate a loaded configuration dictionary.

    Returns:
        List of validation error messages (empty list = valid)
    """
    errors: list[str] = []

    if not isinstance(config, dict):
        return ["Config root must be a YAML mapping"]

    for section in ("server", "storage", "wol"):
        value = config.get(section, {})
        if not isinstance(value, dict):
            errors.append(f"'{section}' must be a mapping")
    if errors:
        return errors

    server = config.get("server", {})
    if "port" in server and not _valid_port(server["port"]):
        errors.append(f"server.port: invalid port '{server['port']}'")
    level = server.get("log_level")
    if level is not None and str(level).upper() not in _LOG_LEVELS:
        errors.append(f"server.log_level: unknown level '{level}'")

    storage = config.get("storage", {})
    if "file_path" in storage and not str(storage["file_path"] or "").strip():
        errors.append("storage.file_path: must not be empty")

    wol = config.get("wol", {})
    if "default_port" in wol and not _valid_port(wol["default_port"]):
        errors.append(f"wol.default_port: invalid port '{wol['default_port']}'")

    return errors


def config_from_dict(config: dict[str, Any]) -> AppConfig:
    """
    Construct an AppConfig from a validated config dict, filling defaults.

    Args:
        config: Parsed and validated config dictionary

    Returns:
        AppConfig instance
    """
    server = config.get("server", {})
    storage = config.get("storage", {})
    wol = config.get("wol", {})
    defaults = ServerConfig()
    return AppConfig(
        server=ServerConfig(
            host=str(server.get("host", defaults.host)),
            port=int(server.get("port", defaults.port)),
            log_level=str(server.get("log_level", defaults.log_level)).upper(),
            static_dir=server.get("static_dir", defaults.static_dir),
        ),
        storage=StorageConfig(
            file_path=str(storage.get("file_path", StorageConfig().file_path)),
        ),
        wol=WolConfig(default_port=int(wol.get("default_port", DEFAULT_WOL_PORT))),
    )


def read_app_config(
    path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None
) -> AppConfig:
    """
    Load, override from the environment, validate and build an AppConfig.

    A missing file is not an error; defaults and environment apply.

    Raises:
        ConfigError: If the file is unparseable or the result is invalid
    """
    path = path or DEFAULT_CONFIG_FILE
    raw: dict[str, Any] = {}
    if path.exists():
        try:
            raw = load_config(path) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    else:
        logger.debug("Config file %s not found, using defaults", path)

    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a YAML mapping")

    merged = apply_env_overrides(raw, environ)
    errors = validate_config(merged)
    if errors:
        raise ConfigError("; ".join(errors))
    return config_from_dict(merged)
