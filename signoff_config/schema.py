"""
Workflow configuration schema.

Frozen dataclasses the YAML configuration is parsed into.  Nothing here
reads files; ``signoff_config.loader`` does that.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from signoff_kernel.domain.signature import SignatureStatus, SignerRole


@dataclass(frozen=True)
class NotificationSettings:
    """Which transitions notify whom, and how dispatch runs."""

    on_reject: bool = True
    on_reconsideration: bool = True
    dispatch_workers: int = 2


@dataclass(frozen=True)
class ReplacementSettings:
    """Aggregate statuses a version may be replaced from."""

    allowed_source_statuses: tuple[SignatureStatus, ...] = (
        SignatureStatus.REJECTED,
        SignatureStatus.APPROVED,
    )


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///:memory:"
    echo: bool = False


@dataclass(frozen=True)
class WorkflowConfig:
    """The runtime sign-off configuration.

    ``required_roles`` lists the signature slots every submission must fill,
    in the order they are created.
    """

    config_id: str
    version: int
    required_roles: tuple[SignerRole, ...]
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    replacement: ReplacementSettings = field(default_factory=ReplacementSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    log_level: str = "INFO"
    checksum: str = ""
