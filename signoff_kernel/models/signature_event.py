"""
Module: signoff_kernel.models.signature_event
Responsibility: Append-only history of everything that happened to a
    document version (submission, approvals, rejections, reconsideration
    requests, supersession, registration, reminders).

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: ORM listeners refuse UPDATE and DELETE.
    - Events of one version are totally ordered by ``sequence``.

Failure modes:
    - ImmutabilityViolationError on event UPDATE/DELETE.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from signoff_kernel.db.base import Base, UUIDString, as_utc
from signoff_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from signoff_kernel.domain.document import SignatureEvent


class SignatureEventModel(Base):
    """Persistent history record. Append-only."""

    __tablename__ = "signature_events"

    __table_args__ = (
        UniqueConstraint(
            "document_version_id", "sequence",
            name="uq_signature_events_version_sequence",
        ),
    )

    document_version_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("document_versions.id"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    signature_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<SignatureEvent {self.id} {self.event_type} "
            f"version={self.document_version_id}>"
        )

    def to_dto(self) -> SignatureEvent:
        """Convert ORM model to frozen domain DTO."""
        from signoff_kernel.domain.document import (
            SignatureEvent as SignatureEventDTO,
            SignatureEventType,
        )

        return SignatureEventDTO(
            event_id=self.id,
            event_type=SignatureEventType(self.event_type),
            document_version_id=self.document_version_id,
            occurred_at=as_utc(self.occurred_at),
            signature_id=self.signature_id,
            actor_id=self.actor_id,
            detail=self.detail,
            sequence=self.sequence,
        )


@event.listens_for(SignatureEventModel, "before_update")
def prevent_event_update(mapper, connection, target):
    """Prevent updates to signature history records."""
    raise ImmutabilityViolationError(
        entity_type="SignatureEvent",
        entity_id=str(target.id),
        reason="Signature history is append-only -- cannot modify",
    )


@event.listens_for(SignatureEventModel, "before_delete")
def prevent_event_delete(mapper, connection, target):
    """Prevent deletion of signature history records."""
    raise ImmutabilityViolationError(
        entity_type="SignatureEvent",
        entity_id=str(target.id),
        reason="Signature history is append-only -- cannot delete",
    )
