from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Mapping
import os


DEFAULT_APP_ENV = "development"
DEFAULT_BATCH_LIMIT = 500
DEFAULT_LOG_LEVEL = "INFO"


class SettingsError(ValueError):
    """Raised when settings values are invalid."""


@dataclass(frozen=True)
class AppSettings:
    app_env: str
    firestore_project_id: str
    firestore_database: str
    batch_limit: int
    batch_size: int
    log_level: str


def _read_dotenv(dotenv_path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    if not dotenv_path.exists():
        return values

    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("'").strip('"')
        if key:
            values[key] = value
    return values


def _get_str(values: Mapping[str, str], key: str, default: str) -> str:
    value = values.get(key, default).strip()
    if not value:
        raise SettingsError(f"{key} must not be empty.")
    return value


def _get_optional_str(values: Mapping[str, str], key: str) -> str:
    return values.get(key, "").strip()


def _get_int(values: Mapping[str, str], key: str, default: int) -> int:
    raw_value = values.get(key)
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise SettingsError(f"{key} must be integer: {raw_value}") from exc
    if value <= 0:
        raise SettingsError(f"{key} must be > 0: {value}")
    return value


def _get_log_level(values: Mapping[str, str], key: str, default: str) -> str:
    level = _get_str(values, key, default).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise SettingsError(f"{key} is not a logging level: {level}")
    return level


def load_settings(
    *,
    env: Mapping[str, str] | None = None,
    dotenv_path: str | Path = ".env",
) -> AppSettings:
    """Load settings from .env and environment variables.

    Priority: OS environment > .env > default.
    """

    env_values = dict(env) if env is not None else dict(os.environ)
    dotenv_values = _read_dotenv(Path(dotenv_path))
    merged: dict[str, str] = {**dotenv_values, **env_values}

    batch_limit = _get_int(merged, "FIRESTORE_BATCH_LIMIT", DEFAULT_BATCH_LIMIT)
    batch_size = _get_int(merged, "FIRESTORE_BATCH_SIZE", batch_limit)
    if batch_size > batch_limit:
        raise SettingsError(
            f"FIRESTORE_BATCH_SIZE must be <= FIRESTORE_BATCH_LIMIT: {batch_size} > {batch_limit}"
        )

    return AppSettings(
        app_env=_get_str(merged, "APP_ENV", DEFAULT_APP_ENV),
        firestore_project_id=_get_optional_str(merged, "FIRESTORE_PROJECT_ID"),
        firestore_database=_get_optional_str(merged, "FIRESTORE_DATABASE"),
        batch_limit=batch_limit,
        batch_size=batch_size,
        log_level=_get_log_level(merged, "LOG_LEVEL", DEFAULT_LOG_LEVEL),
    )
