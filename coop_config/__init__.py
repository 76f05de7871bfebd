"""
coop_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  The parsed configuration is cached until
    ``reset_active_config()`` is called.

Resolution order:
    1. Explicit ``path`` argument.
    2. ``COOP_FINANCE_CONFIG`` environment variable.
    3. ``coop_config/defaults.yaml`` shipped with the package.

    ``DATABASE_URL`` in the environment overrides ``database.url``.

Failure modes:
    - ``FileNotFoundError`` -- configured path does not exist.
    - ``KeyError`` / ``ValueError`` -- schema validation failures.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import threading
from pathlib import Path

from coop_config.loader import load_config
from coop_config.schema import (
    CoopFinanceConfig,
    DatabaseConfig,
    ErpConfig,
    FeeStatusPolicy,
    IngestionConfig,
    ModuleVocabulary,
    RatioConfig,
    TokenTable,
)

__all__ = [
    "CoopFinanceConfig",
    "DatabaseConfig",
    "ErpConfig",
    "FeeStatusPolicy",
    "IngestionConfig",
    "ModuleVocabulary",
    "RatioConfig",
    "TokenTable",
    "DEFAULT_CONFIG_PATH",
    "get_active_config",
    "reset_active_config",
]

_logger = logging.getLogger("coop_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"
CONFIG_ENV_VAR = "COOP_FINANCE_CONFIG"

_active: CoopFinanceConfig | None = None
_lock = threading.Lock()


def _resolve_path(path: Path | str | None) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def get_active_config(path: Path | str | None = None) -> CoopFinanceConfig:
    """Return the active configuration, loading it on first use.

    Passing ``path`` always reloads and replaces the cached configuration.
    """
    global _active
    with _lock:
        if _active is not None and path is None:
            return _active

        resolved = _resolve_path(path)
        config = load_config(resolved)
        db_url = os.environ.get("DATABASE_URL")
        if db_url:
            config = dataclasses.replace(
                config, database=dataclasses.replace(config.database, url=db_url)
            )
        _active = config

    _logger.info(
        "COOP_CONFIG_TRACE",
        extra={
            "config_path": str(resolved),
            "checksum": config.checksum,
            "fee_status_policy": config.ingestion.fee_status_policy.value,
        },
    )
    return config


def reset_active_config() -> None:
    """Drop the cached configuration. FOR TESTING ONLY."""
    global _active
    with _lock:
        _active = None
