"""
Signature domain types (``signoff_kernel.domain.signature``).

Responsibility
--------------
Pure value objects for one signer's stance on one document version, the
closed role/status vocabularies, and the merged per-person view produced by
signer resolution.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``SIGNATURE_TRANSITIONS`` defines the only legal per-signature status
  changes.  ``APPROVED`` is terminal; ``REJECTED`` only goes back to
  ``PENDING`` (reconsideration).
* ``role`` never changes after a signature is created.
* A ``REJECTED`` signature always carries a non-empty justification.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class SignerRole(str, Enum):
    """Role a signer holds on a document version."""

    ADVISOR = "ADVISOR"
    COORDINATOR = "COORDINATOR"
    ADMIN = "ADMIN"
    STUDENT = "STUDENT"


class SignatureStatus(str, Enum):
    """Lifecycle of a single signature."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


SIGNATURE_TRANSITIONS: dict[SignatureStatus, frozenset[SignatureStatus]] = {
    SignatureStatus.PENDING: frozenset({
        SignatureStatus.APPROVED,
        SignatureStatus.REJECTED,
    }),
    SignatureStatus.REJECTED: frozenset({
        SignatureStatus.PENDING,
    }),
    SignatureStatus.APPROVED: frozenset(),
}


ROLE_LABELS: dict[SignerRole, str] = {
    SignerRole.COORDINATOR: "Coordinator",
    SignerRole.ADVISOR: "Advisor",
    SignerRole.STUDENT: "Student",
    SignerRole.ADMIN: "Administrator",
}

# Display order of roles inside a merged label
_ROLE_ORDER: tuple[SignerRole, ...] = (
    SignerRole.COORDINATOR,
    SignerRole.ADVISOR,
    SignerRole.ADMIN,
    SignerRole.STUDENT,
)


def role_label(roles: frozenset[SignerRole] | set[SignerRole]) -> str:
    """Human-readable label for the roles one person holds on a document.

    A coordinator who is also the advisor is shown as a single
    "Coordinator and Advisor" entry.
    """
    ordered = [r for r in _ROLE_ORDER if r in roles]
    if not ordered:
        return ""
    if len(ordered) == 1:
        return ROLE_LABELS[ordered[0]]
    labels = [ROLE_LABELS[r] for r in ordered]
    return ", ".join(labels[:-1]) + " and " + labels[-1]


@dataclass(frozen=True)
class Signature:
    """One signer's stance on one document version. Immutable snapshot.

    ``approver_id`` is ``None`` until the slot is assigned.  ``timestamp`` is
    the time of the last status change and is absent while ``PENDING``.
    """

    signature_id: UUID
    role: SignerRole
    approver_id: UUID | None = None
    status: SignatureStatus = SignatureStatus.PENDING
    justification: str | None = None
    timestamp: datetime | None = None

    @property
    def is_assigned(self) -> bool:
        return self.approver_id is not None


@dataclass(frozen=True)
class LogicalSigner:
    """One physical person's merged view across every role they hold.

    Derived, never persisted.  A signature with no approver is always its
    own logical signer.
    """

    approver_id: UUID | None
    roles: frozenset[SignerRole]
    status: SignatureStatus
    signature_ids: tuple[UUID, ...]
    justification: str | None = None
    timestamp: datetime | None = None

    @property
    def label(self) -> str:
        return role_label(self.roles)

    @property
    def is_coordinator_also_advisor(self) -> bool:
        return {SignerRole.COORDINATOR, SignerRole.ADVISOR} <= self.roles
