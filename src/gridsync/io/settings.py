"""Settings file I/O and connection configuration for gridsync.

Manages a JSON settings file at XDG_CONFIG_HOME/gridsync/settings.json.
Connection settings live under its "connection" key.

Resolution order, lowest to highest: dataclass defaults, settings file,
GRIDSYNC_* environment variables, explicit overrides (CLI flags).

Import as: import gridsync.io.settings
"""

import dataclasses
import json
import logging
import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_CONNECTION_KEY = "connection"
_QUERY_KEYS = ("user", "company", "products", "companies")


@dataclass(frozen=True)
class ConnectionSettings:
    """Everything needed to open and interpret one connection."""

    base_url: str = "ws://localhost:6060"
    route: str = "update"
    user: str = ""
    company: str = ""
    products: str = ""
    companies: str = ""
    # None = every frame carries its table address; set = single-table mode.
    table_address: str | None = None
    max_backoff_ms: int = 30_000
    interpolation_passes: int = 2
    inbox_limit: int = 256


_ENV_VARS = {
    "base_url": "GRIDSYNC_BASE_URL",
    "route": "GRIDSYNC_ROUTE",
    "user": "GRIDSYNC_USER",
    "company": "GRIDSYNC_COMPANY",
    "products": "GRIDSYNC_PRODUCTS",
    "companies": "GRIDSYNC_COMPANIES",
    "table_address": "GRIDSYNC_TABLE",
    "max_backoff_ms": "GRIDSYNC_MAX_BACKOFF_MS",
    "interpolation_passes": "GRIDSYNC_INTERPOLATION_PASSES",
    "inbox_limit": "GRIDSYNC_INBOX_LIMIT",
}
_INT_FIELDS = frozenset({"max_backoff_ms", "interpolation_passes", "inbox_limit"})


def get_config_path() -> Path:
    """Return path to settings file.

    Uses XDG_CONFIG_HOME (default ~/.config) / gridsync / settings.json.
    """
    config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(config_home) / "gridsync" / "settings.json"


def load_settings(path: Path | None = None) -> dict:
    """Load settings from JSON file. Returns empty dict on missing/corrupt file."""
    path = path or get_config_path()
    # [LAW:dataflow-not-control-flow] Always attempt read; empty dict is the "no data" value.
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def save_settings(data: dict, path: Path | None = None) -> None:
    """Atomic write of settings dict to JSON file.

    Creates parent directories if needed. Writes to temp file then renames
    to avoid partial writes on crash.
    """
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)
    except Exception:
        # Clean up temp file on failure
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def _coerce(name: str, value: object) -> object:
    if name in _INT_FIELDS:
        return int(value)
    if name == "table_address":
        return str(value) or None
    return str(value)


def _known(values: Mapping[str, object]) -> dict[str, object]:
    names = {f.name for f in dataclasses.fields(ConnectionSettings)}
    result = {}
    for key, value in values.items():
        if key not in names:
            logger.debug("ignoring unknown connection setting %r", key)
            continue
        try:
            result[key] = _coerce(key, value)
        except (TypeError, ValueError):
            logger.warning("ignoring invalid connection setting %s=%r", key, value)
    return result


def load_connection_settings(
    overrides: Mapping[str, object] | None = None,
    *,
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ConnectionSettings:
    """Resolve ConnectionSettings from file, environment and overrides.

    None values in overrides mean "not given" and are skipped.
    """
    environ = os.environ if environ is None else environ
    file_values = load_settings(path).get(_CONNECTION_KEY, {})
    merged: dict[str, object] = {}
    if isinstance(file_values, dict):
        merged.update(_known(file_values))
    env_values = {name: environ[var] for name, var in _ENV_VARS.items() if var in environ}
    merged.update(_known(env_values))
    if overrides:
        merged.update(_known({k: v for k, v in overrides.items() if v is not None}))
    return ConnectionSettings(**merged)


def save_connection_settings(settings: ConnectionSettings, path: Path | None = None) -> None:
    """Merge connection settings into the settings file."""
    data = load_settings(path)
    data[_CONNECTION_KEY] = dataclasses.asdict(settings)
    save_settings(data, path)


def connection_url(settings: ConnectionSettings) -> str:
    """Handshake URL. Query values are forwarded verbatim, not re-encoded."""
    query = "&".join(f"{key}={getattr(settings, key)}" for key in _QUERY_KEYS)
    return f"{settings.base_url.rstrip('/')}/{settings.route}?{query}"
