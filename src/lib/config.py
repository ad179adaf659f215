"""YAML config loader with environment overrides.

Loads ingestion configuration from an optional YAML file, applies the
``CSV_FILE_PATH``, ``BATCH_SIZE``, ``DB_PATH`` and ``PORT`` environment
variables on top, and validates the result.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from src.ingestion.batch import DEFAULT_BATCH_SIZE
from src.ingestion.errors import ConfigError
from src.ingestion.loader import DEFAULT_DB_PATH

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 3000

ENV_SOURCE_PATH: str = "CSV_FILE_PATH"
ENV_BATCH_SIZE: str = "BATCH_SIZE"
ENV_DB_PATH: str = "DB_PATH"
ENV_PORT: str = "PORT"


@dataclass(frozen=True)
class PipelineConfig:
    """Resolved runtime configuration.

    Attributes:
        source_path: CSV file to ingest; None when not configured.
        batch_size: Rows per batch insert.
        db_path: DuckDB database location.
        host: Bind address for the HTTP trigger.
        port: Bind port for the HTTP trigger.
    """

    source_path: str | None = None
    batch_size: int = DEFAULT_BATCH_SIZE
    db_path: str = DEFAULT_DB_PATH
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    def require_source(self) -> str:
        """Return the configured source path.

        Raises:
            ConfigError: If no source location is configured.
        """
        if not self.source_path:
            msg = f"{ENV_SOURCE_PATH} not configured"
            raise ConfigError(msg)
        return self.source_path


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> PipelineConfig:
    """Load and validate configuration.

    Args:
        config_path: Optional path to a YAML configuration file.
        env: Environment mapping; defaults to ``os.environ``.

    Returns:
        The validated PipelineConfig.

    Raises:
        FileNotFoundError: If config_path is given but does not exist.
        ConfigError: If any config value is invalid.
    """
    raw: dict[str, Any] = {}
    if config_path is not None:
        if not config_path.exists():
            msg = f"Config file not found: {config_path}"
            raise FileNotFoundError(msg)
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            msg = f"Config file {config_path} must contain a mapping"
            raise ConfigError(msg)

    env = os.environ if env is None else env
    ingest = raw.get("ingest") or {}
    warehouse = raw.get("warehouse") or {}
    api = raw.get("api") or {}

    source_path = env.get(ENV_SOURCE_PATH) or ingest.get("source_path")
    batch_size = env.get(ENV_BATCH_SIZE) or ingest.get("batch_size", DEFAULT_BATCH_SIZE)
    db_path = env.get(ENV_DB_PATH) or warehouse.get("db_path", DEFAULT_DB_PATH)
    port = env.get(ENV_PORT) or api.get("port", DEFAULT_PORT)

    return PipelineConfig(
        source_path=str(source_path) if source_path else None,
        batch_size=_positive_int("batch_size", batch_size),
        db_path=str(db_path),
        host=str(api.get("host", DEFAULT_HOST)),
        port=_valid_port(port),
    )


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        msg = f"{name} must be an integer, got {value!r}"
        raise ConfigError(msg)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        msg = f"{name} must be an integer, got {value!r}"
        raise ConfigError(msg) from exc


def _positive_int(name: str, value: Any) -> int:
    number = _as_int(name, value)
    if number < 1:
        msg = f"{name} must be a positive integer, got {number}"
        raise ConfigError(msg)
    return number


def _valid_port(value: Any) -> int:
    port = _as_int("port", value)
    if port < 1 or port > 65535:
        msg = f"port must be between 1 and 65535, got {port}"
        raise ConfigError(msg)
    return port
