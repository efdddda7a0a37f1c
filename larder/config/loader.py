"""Layered TOML configuration for a larder device.

``default.toml`` is required and ``{LARDER_ENV}.toml`` is laid over it,
table by table. The merged result is checked for mistakes that would
otherwise only surface at runtime: an unknown top-level key (a typo such
as ``[synk]`` silently falls back to defaults), primary and archive
storage namespaces that overlap, and manifest tracking of a collection
that does not exist.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

from larder.errors import LarderError
from larder.repository.enums import Collection

CONFIG_DIR_VAR = "LARDER_CONFIG_DIR"
ENV_VAR = "LARDER_ENV"
DEFAULT_ENVIRONMENT = "development"

KNOWN_KEYS = frozenset(
    {
        "app_name",
        "debug",
        "log_level",
        "storage",
        "remote",
        "sync",
        "event_log",
        "observability",
    }
)


class ConfigError(LarderError):
    """Raised when the layered TOML configuration cannot be used."""


def find_config_dir(start: Path | None = None) -> Path:
    """Locate the directory holding ``default.toml``.

    LARDER_CONFIG_DIR wins when set. Otherwise ``config/`` is looked for in
    ``start`` (the working directory by default) and up to four parents.
    """
    override = os.environ.get(CONFIG_DIR_VAR)
    if override:
        path = Path(override)
        if not path.is_dir():
            raise FileNotFoundError(f"Config directory not found: {override}")
        return path

    origin = start or Path.cwd()
    for directory in [origin, *origin.parents][:5]:
        candidate = directory / "config"
        if (candidate / "default.toml").is_file():
            return candidate
    return origin / "config"


def current_environment() -> str:
    return os.environ.get(ENV_VAR) or DEFAULT_ENVIRONMENT


def read_layer(path: Path) -> dict[str, Any]:
    """Parse one TOML layer.

    Raises:
        ConfigError: If the file is not valid TOML; the path is named.
    """
    with path.open("rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}", cause=e) from e


def merge_layers(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Lay overlay over base. Tables merge key by key; other values replace."""
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_layers(current, value)
        else:
            merged[key] = value
    return merged


def _table(config: dict[str, Any], name: str) -> dict[str, Any]:
    value = config.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{name}] must be a table, got {type(value).__name__}")
    return value


def check_config(config: dict[str, Any]) -> dict[str, Any]:
    """Reject configuration that would misbehave at runtime.

    Field types and ranges are left to the Settings models.

    Raises:
        ConfigError: On an unknown top-level key, a section that is not a
            table, overlapping storage prefixes, or an unknown tracked
            collection.
    """
    unknown = sorted(set(config) - KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    storage = _table(config, "storage")
    primary = str(storage.get("key_prefix", "local_repo"))
    archive = str(storage.get("archive_prefix", "archived_repo"))
    if primary == archive or primary.startswith(f"{archive}:") or archive.startswith(f"{primary}:"):
        raise ConfigError(
            f"storage.key_prefix {primary!r} and storage.archive_prefix {archive!r} overlap"
        )

    known = {c.value for c in Collection}
    tracked = _table(config, "sync").get("tracked_collections", [])
    bad = [name for name in tracked if name not in known]
    if bad:
        raise ConfigError(f"sync.tracked_collections names unknown collections: {bad}")

    return config


def load_config(
    config_dir: Path | None = None,
    environment: str | None = None,
) -> dict[str, Any]:
    """Load ``default.toml``, overlay ``{environment}.toml``, then check.

    Raises:
        FileNotFoundError: If ``default.toml`` is missing.
        ConfigError: If a layer is invalid TOML or the merged result fails
            ``check_config``.
    """
    config_dir = config_dir or find_config_dir()
    environment = environment or current_environment()

    default_path = config_dir / "default.toml"
    if not default_path.is_file():
        raise FileNotFoundError(
            f"Default configuration file not found: {default_path}. "
            f"Create config/default.toml or set {CONFIG_DIR_VAR}."
        )
    config = read_layer(default_path)

    env_path = config_dir / f"{environment}.toml"
    if env_path.is_file():
        config = merge_layers(config, read_layer(env_path))

    return check_config(config)
