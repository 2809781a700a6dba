"""
Configuration Loader (``signoff_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``signoff_config.schema`` dataclasses.  Runtime callers go through
``signoff_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* No silent defaults for required keys (``config_id``, ``version``,
  ``required_roles``).
* Roles and statuses are parsed into the closed enums; unknown values fail.
* ``compute_checksum`` is deterministic for identical data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown role/status or an empty role list  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from signoff_config.schema import (
    DatabaseSettings,
    NotificationSettings,
    ReplacementSettings,
    WorkflowConfig,
)
from signoff_kernel.domain.signature import SignatureStatus, SignerRole


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    return data or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_notifications(data: dict[str, Any] | None) -> NotificationSettings:
    data = data or {}
    workers = int(data.get("dispatch_workers", 2))
    if workers < 1:
        raise ValueError(f"dispatch_workers must be at least 1, got {workers}")
    return NotificationSettings(
        on_reject=bool(data.get("on_reject", True)),
        on_reconsideration=bool(data.get("on_reconsideration", True)),
        dispatch_workers=workers,
    )


def parse_replacement(data: dict[str, Any] | None) -> ReplacementSettings:
    data = data or {}
    if "allowed_source_statuses" not in data:
        return ReplacementSettings()
    statuses = tuple(SignatureStatus(s) for s in data["allowed_source_statuses"])
    if SignatureStatus.PENDING in statuses:
        raise ValueError("A version still collecting signatures cannot be replaced")
    return ReplacementSettings(allowed_source_statuses=statuses)


def parse_database(data: dict[str, Any] | None) -> DatabaseSettings:
    data = data or {}
    return DatabaseSettings(
        url=data.get("url", DatabaseSettings.url),
        echo=bool(data.get("echo", False)),
    )


def parse_workflow_config(data: dict[str, Any]) -> WorkflowConfig:
    """Build a ``WorkflowConfig`` from a parsed YAML mapping."""
    roles = tuple(SignerRole(r) for r in data["required_roles"])
    if not roles:
        raise ValueError("required_roles must name at least one role")
    if len(set(roles)) != len(roles):
        raise ValueError(f"required_roles contains duplicates: {[r.value for r in roles]}")

    return WorkflowConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        required_roles=roles,
        notifications=parse_notifications(data.get("notifications")),
        replacement=parse_replacement(data.get("replacement")),
        database=parse_database(data.get("database")),
        log_level=str((data.get("logging") or {}).get("level", "INFO")).upper(),
        checksum=compute_checksum(data),
    )


def load_workflow_config(path: Path) -> WorkflowConfig:
    """Load and parse one configuration file."""
    return parse_workflow_config(load_yaml_file(path))
