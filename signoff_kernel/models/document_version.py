"""
Module: signoff_kernel.models.document_version
Responsibility: ORM persistence for document versions and their signatures.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One version number per lineage: UNIQUE(lineage_id, version).
    - One signature per role slot: UNIQUE(document_version_id, role).
    - A rejected signature carries a justification (check constraint).
    - Optimistic concurrency: ``signature_set_version`` is the mapper's
      version counter.  Every UPDATE of a version row is guarded by
      ``WHERE signature_set_version = <loaded value>``; a concurrent writer
      surfaces as ``StaleDataError``.  The counter is bumped by the
      signature store whenever the signature set changes.

Failure modes:
    - IntegrityError on a duplicate lineage/version or role slot.
    - StaleDataError when the version row changed since it was loaded.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from signoff_kernel.db.base import Base, UUIDString, as_utc

if TYPE_CHECKING:
    from signoff_kernel.domain.document import DocumentVersion
    from signoff_kernel.domain.signature import Signature


class DocumentVersionModel(Base):
    """Persistent document version.

    Contract:
        Immutable once created except for supersession, registration
        receipt, and the signatures it owns.  Superseded rows are never
        deleted.
    """

    __tablename__ = "document_versions"

    __table_args__ = (
        UniqueConstraint(
            "lineage_id", "version",
            name="uq_document_versions_lineage_version",
        ),
        CheckConstraint(
            "document_type IN ('minutes', 'evaluation')",
            name="ck_document_versions_valid_type",
        ),
        CheckConstraint(
            "version >= 1",
            name="ck_document_versions_positive_version",
        ),
        # Current-version lookups per lineage
        Index(
            "ix_document_versions_lineage_current",
            "lineage_id", "superseded_at",
        ),
    )

    lineage_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    document_type: Mapped[str] = mapped_column(String(20), nullable=False)
    content_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)
    content_hash: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    final_grade: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    change_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    previous_version_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    superseded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    superseded_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    registration_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    registered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    signature_set_version: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=1,
    )

    signatures: Mapped[list["SignatureModel"]] = relationship(
        "SignatureModel",
        back_populates="document_version",
        order_by="SignatureModel.position",
        lazy="selectin",
    )

    __mapper_args__ = {
        "version_id_col": signature_set_version,
        "version_id_generator": False,
    }

    def __repr__(self) -> str:
        return (
            f"<DocumentVersion {self.id} lineage={self.lineage_id} "
            f"v{self.version} set_version={self.signature_set_version}>"
        )

    def to_dto(self) -> DocumentVersion:
        """Convert ORM model to frozen domain DTO."""
        from signoff_kernel.domain.document import (
            DocumentType,
            DocumentVersion as DocumentVersionDTO,
        )

        return DocumentVersionDTO(
            document_version_id=self.id,
            lineage_id=self.lineage_id,
            version=self.version,
            document_type=DocumentType(self.document_type),
            created_at=as_utc(self.created_at),
            signatures=tuple(s.to_dto() for s in self.signatures),
            change_reason=self.change_reason,
            content_ref=self.content_ref,
            content_hash=self.content_hash,
            final_grade=self.final_grade,
            previous_version_id=self.previous_version_id,
            superseded_at=as_utc(self.superseded_at),
            superseded_reason=self.superseded_reason,
            registration_id=self.registration_id,
            registered_at=as_utc(self.registered_at),
            signature_set_version=self.signature_set_version,
        )


class SignatureModel(Base):
    """Persistent signature slot of a document version.

    Contract:
        ``role`` never changes.  ``status``, ``justification`` and
        ``status_changed_at`` are written only through the signature store.
    """

    __tablename__ = "signatures"

    __table_args__ = (
        UniqueConstraint(
            "document_version_id", "role",
            name="uq_signatures_version_role",
        ),
        CheckConstraint(
            "role IN ('ADVISOR', 'COORDINATOR', 'ADMIN', 'STUDENT')",
            name="ck_signatures_valid_role",
        ),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_signatures_valid_status",
        ),
        CheckConstraint(
            "status <> 'REJECTED' OR "
            "(justification IS NOT NULL AND justification <> '')",
            name="ck_signatures_rejection_justified",
        ),
        # "pending mine / approved" listings
        Index("ix_signatures_approver_status", "approver_id", "status"),
    )

    document_version_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("document_versions.id"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    approver_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    justification: Mapped[str | None] = mapped_column(Text, nullable=True)
    status_changed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    document_version: Mapped["DocumentVersionModel"] = relationship(
        "DocumentVersionModel",
        back_populates="signatures",
    )

    def __repr__(self) -> str:
        return f"<Signature {self.id} {self.role} status={self.status}>"

    def to_dto(self) -> Signature:
        """Convert ORM model to frozen domain DTO."""
        from signoff_kernel.domain.signature import (
            Signature as SignatureDTO,
            SignatureStatus,
            SignerRole,
        )

        return SignatureDTO(
            signature_id=self.id,
            role=SignerRole(self.role),
            approver_id=self.approver_id,
            status=SignatureStatus(self.status),
            justification=self.justification,
            timestamp=as_utc(self.status_changed_at),
        )

    @classmethod
    def from_dto(
        cls,
        dto: Signature,
        document_version_id: UUID,
        position: int,
    ) -> SignatureModel:
        """Create ORM model from domain DTO."""
        return cls(
            id=dto.signature_id,
            document_version_id=document_version_id,
            position=position,
            role=dto.role.value,
            approver_id=dto.approver_id,
            status=dto.status.value,
            justification=dto.justification,
            status_changed_at=dto.timestamp,
        )

    def apply(self, dto: Signature) -> None:
        """Copy the mutable fields of ``dto`` onto this row."""
        self.approver_id = dto.approver_id
        self.status = dto.status.value
        self.justification = dto.justification
        self.status_changed_at = dto.timestamp
