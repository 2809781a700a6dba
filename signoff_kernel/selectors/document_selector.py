"""
Module: signoff_kernel.selectors.document_selector
Responsibility: Read-only queries over document versions, their signatures
    and their history.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - "Current" means ``superseded_at IS NULL``.  Superseded versions are
      only returned by the lineage history and content hash queries.
"""

from uuid import UUID

from sqlalchemy import select

from signoff_kernel.domain.document import DocumentVersion, SignatureEvent
from signoff_kernel.models.document_version import DocumentVersionModel, SignatureModel
from signoff_kernel.models.signature_event import SignatureEventModel
from signoff_kernel.selectors.base import BaseSelector


class DocumentSelector(BaseSelector):
    """Queries document versions as frozen DTOs."""

    def get_version(self, document_version_id: UUID) -> DocumentVersion | None:
        model = self.session.get(DocumentVersionModel, document_version_id)
        return model.to_dto() if model is not None else None

    def current_version(self, lineage_id: UUID) -> DocumentVersion | None:
        """The non-superseded version of a lineage, if any."""
        model = self.session.execute(
            select(DocumentVersionModel)
            .where(DocumentVersionModel.lineage_id == lineage_id)
            .where(DocumentVersionModel.superseded_at.is_(None))
            .order_by(DocumentVersionModel.version.desc())
            .limit(1)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def lineage_versions(self, lineage_id: UUID) -> list[DocumentVersion]:
        """Every version of a lineage, oldest first, superseded ones included."""
        models = self.session.execute(
            select(DocumentVersionModel)
            .where(DocumentVersionModel.lineage_id == lineage_id)
            .order_by(DocumentVersionModel.version)
        ).scalars().all()
        return [m.to_dto() for m in models]

    def current_versions_for_approver(self, approver_id: UUID) -> list[DocumentVersion]:
        """Current versions on which ``approver_id`` holds a signature, newest first."""
        participating = (
            select(SignatureModel.document_version_id)
            .where(SignatureModel.approver_id == approver_id)
        )
        models = self.session.execute(
            select(DocumentVersionModel)
            .where(DocumentVersionModel.id.in_(participating))
            .where(DocumentVersionModel.superseded_at.is_(None))
            .order_by(
                DocumentVersionModel.created_at.desc(),
                DocumentVersionModel.version.desc(),
            )
        ).scalars().all()
        return [m.to_dto() for m in models]

    def events(self, document_version_id: UUID) -> list[SignatureEvent]:
        """History of one version, in the order it happened."""
        models = self.session.execute(
            select(SignatureEventModel)
            .where(SignatureEventModel.document_version_id == document_version_id)
            .order_by(SignatureEventModel.sequence)
        ).scalars().all()
        return [m.to_dto() for m in models]

    def version_by_content_hash(self, content_hash: str) -> DocumentVersion | None:
        """The version whose file has this hash.

        When several versions share the file, the current one wins, then the
        newest.
        """
        model = self.session.execute(
            select(DocumentVersionModel)
            .where(DocumentVersionModel.content_hash == content_hash)
            .order_by(
                DocumentVersionModel.superseded_at.is_(None).desc(),
                DocumentVersionModel.created_at.desc(),
                DocumentVersionModel.version.desc(),
            )
            .limit(1)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None
