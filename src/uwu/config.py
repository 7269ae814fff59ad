"""Configuration loading and project checking."""

from __future__ import annotations

from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib

from pydantic import ValidationError

from uwu.errors import ConfigError
from uwu.models.config import Config

DEFAULT_CONFIG_PATH = Path("~/.config/uwu/config.toml")
DOTFILE_NAME = ".uwu.toml"


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e


def _validate(data: dict[str, Any], source: Path) -> Config:
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {source}:\n{e}") from e


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH.expanduser()
    else:
        config_path = Path(config_path).expanduser()

    if not config_path.exists():
        return Config()

    return _validate(_read_toml(config_path), config_path)


def find_dotfile(start_dir: Path) -> Path | None:
    """Find .uwu.toml walking up from start_dir."""
    current = start_dir.resolve()

    while True:
        dotfile = current / DOTFILE_NAME
        if dotfile.exists():
            return dotfile

        parent = current.parent
        if parent == current:  # Reached root
            break
        current = parent

    return None


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_project_config(config: Config, project_dir: Path) -> Config:
    """Overlay the project's .uwu.toml, if any, on the global config."""
    dotfile = find_dotfile(project_dir)
    if dotfile is None:
        return config

    data = _merge(config.model_dump(exclude_unset=True), _read_toml(dotfile))
    return _validate(data, dotfile)


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port``. IPv6 hosts go in brackets: ``[::1]:38910``."""
    host, sep, port_str = address.rpartition(":")
    if not sep or not host or not port_str:
        raise ConfigError(f"Bad peer address {address!r}, expected HOST:PORT")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    try:
        port = int(port_str)
    except ValueError:
        raise ConfigError(f"Bad port in peer address {address!r}") from None

    if not 1 <= port <= 65535:
        raise ConfigError(f"Port out of range in peer address {address!r}")

    return host, port


def resolve_assets_dir(project_dir: Path, assets_dir: str = "Assets") -> Path:
    """Return the project's assets directory, or fail if it is missing."""
    path = Path(project_dir).expanduser() / assets_dir

    if not path.is_dir():
        raise ConfigError(
            f"{assets_dir} dir not found at {path}. "
            "Are you sure that this is a valid Unity project?"
        )

    return path
