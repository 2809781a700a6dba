"""
signoff_config -- single public entrypoint for workflow configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration.  Sits above ``signoff_kernel`` and below
    ``signoff_services``.  The kernel MUST NEVER import from here.

Invariants enforced:
    - Single entrypoint: runtime config flows through ``get_active_config()``.
    - ``SIGNOFF_DATABASE_URL`` overrides ``database.url``; it is read here
      and nowhere else.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` / ``ValueError`` -- missing or invalid settings.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from signoff_config.loader import load_workflow_config
from signoff_config.schema import (
    DatabaseSettings,
    NotificationSettings,
    ReplacementSettings,
    WorkflowConfig,
)

_logger = logging.getLogger("signoff_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

DATABASE_URL_ENV = "SIGNOFF_DATABASE_URL"


def get_active_config(config_path: Path | str | None = None) -> WorkflowConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a configuration file.  Defaults to
            signoff_config/sets/default.yaml.

    Returns:
        A frozen ``WorkflowConfig``.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        KeyError: If a required setting is missing.
        ValueError: If a setting is invalid.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    config = load_workflow_config(path)

    override = os.environ.get(DATABASE_URL_ENV)
    if override:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=override),
        )

    _logger.info(
        "signoff_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "required_roles": [r.value for r in config.required_roles],
            "database_url_overridden": bool(override),
        },
    )
    return config


__all__ = [
    "DATABASE_URL_ENV",
    "DatabaseSettings",
    "NotificationSettings",
    "ReplacementSettings",
    "WorkflowConfig",
    "get_active_config",
]
