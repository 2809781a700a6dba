"""
Pure domain layer.

Signatures, document versions, the signature ledger and the read models
exchanged with callers and collaborators.  No dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (beyond the injectable Clock interface)
- I/O
"""

from signoff_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from signoff_kernel.domain.document import (
    ActorContext,
    AggregateView,
    DocumentStatus,
    DocumentSummary,
    DocumentType,
    DocumentVersion,
    Notification,
    NotificationKind,
    RegistrationReceipt,
    RegistrationSnapshot,
    SignatureEvent,
    SignatureEventType,
    TransitionResult,
    VerificationResult,
    VerificationStatus,
)
from signoff_kernel.domain.ledger import SignatureLedger
from signoff_kernel.domain.signature import (
    ROLE_LABELS,
    SIGNATURE_TRANSITIONS,
    LogicalSigner,
    Signature,
    SignatureStatus,
    SignerRole,
    role_label,
)

__all__ = [
    "ActorContext",
    "AggregateView",
    "Clock",
    "DeterministicClock",
    "DocumentStatus",
    "DocumentSummary",
    "DocumentType",
    "DocumentVersion",
    "LogicalSigner",
    "Notification",
    "NotificationKind",
    "ROLE_LABELS",
    "RegistrationReceipt",
    "RegistrationSnapshot",
    "SIGNATURE_TRANSITIONS",
    "Signature",
    "SignatureEvent",
    "SignatureEventType",
    "SignatureLedger",
    "SignatureStatus",
    "SignerRole",
    "SystemClock",
    "TransitionResult",
    "VerificationResult",
    "VerificationStatus",
    "role_label",
]
