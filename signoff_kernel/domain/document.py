"""
Document version domain types (``signoff_kernel.domain.document``).

Responsibility
--------------
Pure value objects for submitted document versions, the explicit actor
context passed into every gate and transition, the read models returned by
the query surface, and the payloads exchanged with the registration and
notification collaborators.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  May import only
from ``domain/signature``.

Invariants enforced
-------------------
* ``DocumentVersion`` is immutable once created except for its signatures'
  status fields; a changed signature set produces a new snapshot with a
  bumped ``signature_set_version``.
* Aggregate status is never a field here -- it is always recomputed from
  ``signatures`` by the aggregation engine.
* A superseded version (``superseded_at`` set) is retained for history but
  excluded from "current" queries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from signoff_kernel.domain.signature import (
    LogicalSigner,
    Signature,
    SignatureStatus,
    SignerRole,
)


class DocumentStatus(str, Enum):
    """Display status of a document version."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    INACTIVE = "INACTIVE"


class DocumentType(str, Enum):
    """Kind of academic document awaiting sign-off."""

    MINUTES = "minutes"
    EVALUATION = "evaluation"


class SignatureEventType(str, Enum):
    """Kinds of append-only history records."""

    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    RECONSIDERATION_REQUESTED = "reconsideration_requested"
    SUPERSEDED = "superseded"
    REGISTERED = "registered"
    APPROVER_NOTIFIED = "approver_notified"


class VerificationStatus(str, Enum):
    """Answer to "is this file a signed document?"."""

    NOT_FOUND = "NOT_FOUND"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    INACTIVE = "INACTIVE"


class NotificationKind(str, Enum):
    """Notifications the engine hands to the notification collaborator."""

    DOCUMENT_REJECTED = "document_rejected"
    RECONSIDERATION_REQUESTED = "reconsideration_requested"
    APPROVAL_REMINDER = "approval_reminder"


@dataclass(frozen=True)
class ActorContext:
    """The person performing a gate check or transition.

    Passed explicitly; the engine never reads an ambient current user.
    """

    actor_id: UUID
    role: SignerRole


@dataclass(frozen=True)
class DocumentVersion:
    """One submitted artifact awaiting sign-off. Immutable snapshot."""

    document_version_id: UUID
    lineage_id: UUID
    version: int
    document_type: DocumentType
    created_at: datetime
    signatures: tuple[Signature, ...] = ()
    change_reason: str | None = None
    content_ref: str | None = None
    content_hash: str | None = None
    final_grade: Decimal | None = None
    previous_version_id: UUID | None = None
    superseded_at: datetime | None = None
    superseded_reason: str | None = None
    registration_id: str | None = None
    registered_at: datetime | None = None
    signature_set_version: int = 1

    @property
    def is_current(self) -> bool:
        return self.superseded_at is None

    def signature(self, signature_id: UUID) -> Signature | None:
        for sig in self.signatures:
            if sig.signature_id == signature_id:
                return sig
        return None


@dataclass(frozen=True)
class AggregateView:
    """Result of ``GetAggregate``: the derived state of one version."""

    document_version_id: UUID
    status: SignatureStatus
    document_status: DocumentStatus
    approved_count: int
    total_count: int
    merged_signers: tuple[LogicalSigner, ...] = ()
    signature_set_version: int = 1


@dataclass(frozen=True)
class DocumentSummary:
    """One row of a "pending mine / approved / rejected" listing."""

    document_version_id: UUID
    lineage_id: UUID
    version: int
    document_type: DocumentType
    status: SignatureStatus
    approved_count: int
    total_count: int
    my_signature_id: UUID | None = None
    my_status: SignatureStatus | None = None
    can_evaluate: bool = False
    blocked_reason: str | None = None
    pending_roles: str = ""
    rejected_signature_id: UUID | None = None
    rejection_justification: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class RegistrationSnapshot:
    """Final signature snapshot handed to the registration collaborator."""

    document_version_id: UUID
    lineage_id: UUID
    version: int
    content_hash: str | None
    signatures: tuple[Signature, ...]
    snapshot_hash: str


@dataclass(frozen=True)
class VerificationResult:
    """Result of looking a document up by its content hash.

    Only an APPROVED current version is valid; the version fields are empty
    when nothing matched.
    """

    content_hash: str
    status: VerificationStatus
    document_version_id: UUID | None = None
    lineage_id: UUID | None = None
    version: int | None = None
    document_type: DocumentType | None = None
    registration_id: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.status == VerificationStatus.APPROVED


@dataclass(frozen=True)
class RegistrationReceipt:
    """What the registration collaborator returns; recorded on the version."""

    registration_id: str
    registered_at: datetime


@dataclass(frozen=True)
class Notification:
    """A fire-and-forget message for the notification collaborator."""

    kind: NotificationKind
    document_version_id: UUID
    recipients: tuple[UUID, ...]
    signature_id: UUID | None = None
    message: str = ""
    requested_by: UUID | None = None


@dataclass(frozen=True)
class SignatureEvent:
    """Append-only history record for a document version."""

    event_id: UUID
    event_type: SignatureEventType
    document_version_id: UUID
    occurred_at: datetime
    signature_id: UUID | None = None
    actor_id: UUID | None = None
    detail: str | None = None
    sequence: int = 0


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a workflow transition."""

    document_version_id: UUID
    view: AggregateView
    notifications: tuple[Notification, ...] = field(default_factory=tuple)
    registration: RegistrationReceipt | None = None
    new_version: DocumentVersion | None = None
