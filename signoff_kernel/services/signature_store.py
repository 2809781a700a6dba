"""
signoff_kernel.services.signature_store -- Persistence collaborator for the
signature ledger.

Responsibility:
    Loads and saves the signature set of a document version, creates new
    versions, records supersession and registration receipts, and appends
    history events.  This is the only writer of the ``document_versions``,
    ``signatures`` and ``signature_events`` tables.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Optimistic concurrency: ``save_signatures`` compares the caller's
      ``expected_version`` with the stored ``signature_set_version`` and
      bumps it on every write.  The mapper's version counter guards the
      final UPDATE against a writer that slipped in after the load.
    - Flush-only: the store never commits or rolls back.  The caller owns
      the transaction.
    - History is append-only and totally ordered per version.

Failure modes:
    - DocumentVersionNotFoundError if the version does not exist.
    - ``SaveResult.CONFLICT`` (not an exception) when the signature set
      changed since the caller read it.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from signoff_kernel.domain.document import (
    DocumentType,
    DocumentVersion,
    RegistrationReceipt,
    SignatureEvent,
    SignatureEventType,
)
from signoff_kernel.domain.signature import Signature
from signoff_kernel.exceptions import DocumentVersionNotFoundError
from signoff_kernel.logging_config import get_logger
from signoff_kernel.models.document_version import DocumentVersionModel, SignatureModel
from signoff_kernel.models.signature_event import SignatureEventModel

logger = get_logger("services.signature_store")


class SaveResult(str, Enum):
    """Outcome of ``save_signatures``."""

    OK = "OK"
    CONFLICT = "CONFLICT"


class SignatureStore:
    """Reads and writes document versions and their signatures."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_signatures(self, document_version_id: UUID) -> list[Signature]:
        """Current signatures of a version, in slot order."""
        model = self._load_model(document_version_id)
        return [s.to_dto() for s in model.signatures]

    def load_version(
        self,
        document_version_id: UUID,
        *,
        for_update: bool = False,
    ) -> DocumentVersion:
        """Load a version snapshot.

        With ``for_update`` the row is locked (``SELECT ... FOR UPDATE``) and
        re-read from the database, so the caller's read-validate-write runs
        against the latest committed state.
        """
        return self._load_model(document_version_id, for_update=for_update).to_dto()

    def next_version_number(self, lineage_id: UUID) -> int:
        current = self._session.execute(
            select(func.max(DocumentVersionModel.version)).where(
                DocumentVersionModel.lineage_id == lineage_id,
            )
        ).scalar_one()
        return (current or 0) + 1

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_signatures(
        self,
        document_version_id: UUID,
        signatures: list[Signature] | tuple[Signature, ...],
        expected_version: int,
    ) -> SaveResult:
        """Persist the signature set of a version.

        Slots present in ``signatures`` but not yet stored are inserted;
        stored slots are updated in place.  Stored slots missing from
        ``signatures`` are left untouched.

        Returns:
            ``SaveResult.OK`` after the write was flushed, or
            ``SaveResult.CONFLICT`` if the stored signature-set version no
            longer matches ``expected_version``.
        """
        model = self._load_model(document_version_id)

        if model.signature_set_version != expected_version:
            logger.warning(
                "signature_save_conflict",
                extra={
                    "document_version_id": str(document_version_id),
                    "expected_version": expected_version,
                    "actual_version": model.signature_set_version,
                },
            )
            return SaveResult.CONFLICT

        stored = {row.id: row for row in model.signatures}
        for position, sig in enumerate(signatures):
            row = stored.get(sig.signature_id)
            if row is None:
                model.signatures.append(
                    SignatureModel.from_dto(sig, document_version_id, position)
                )
            else:
                row.apply(sig)

        model.signature_set_version = expected_version + 1

        try:
            self._session.flush()
        except StaleDataError:
            logger.warning(
                "signature_save_conflict",
                extra={
                    "document_version_id": str(document_version_id),
                    "expected_version": expected_version,
                },
            )
            return SaveResult.CONFLICT

        logger.debug(
            "signatures_saved",
            extra={
                "document_version_id": str(document_version_id),
                "signature_set_version": model.signature_set_version,
            },
        )
        return SaveResult.OK

    def create_version(
        self,
        *,
        lineage_id: UUID,
        version: int,
        document_type: DocumentType,
        created_at: datetime,
        signatures: list[Signature] | tuple[Signature, ...],
        content_ref: str | None = None,
        content_hash: str | None = None,
        final_grade: Decimal | None = None,
        change_reason: str | None = None,
        previous_version_id: UUID | None = None,
        document_version_id: UUID | None = None,
    ) -> DocumentVersion:
        """Insert a new document version with its signature slots."""
        version_id = document_version_id or uuid4()
        model = DocumentVersionModel(
            id=version_id,
            lineage_id=lineage_id,
            version=version,
            document_type=document_type.value,
            created_at=created_at,
            content_ref=content_ref,
            content_hash=content_hash,
            final_grade=final_grade,
            change_reason=change_reason,
            previous_version_id=previous_version_id,
            signature_set_version=1,
        )
        model.signatures = [
            SignatureModel.from_dto(sig, version_id, position)
            for position, sig in enumerate(signatures)
        ]
        self._session.add(model)
        self._session.flush()

        logger.info(
            "document_version_created",
            extra={
                "document_version_id": str(version_id),
                "lineage_id": str(lineage_id),
                "version": version,
                "signature_count": len(model.signatures),
            },
        )
        return model.to_dto()

    def mark_superseded(
        self,
        document_version_id: UUID,
        superseded_at: datetime,
        reason: str | None,
    ) -> DocumentVersion:
        """Retire a version.  It stays readable but is no longer current."""
        model = self._load_model(document_version_id)
        model.superseded_at = superseded_at
        model.superseded_reason = reason
        model.signature_set_version = model.signature_set_version + 1
        self._session.flush()
        return model.to_dto()

    def record_registration(
        self,
        document_version_id: UUID,
        receipt: RegistrationReceipt,
    ) -> DocumentVersion:
        """Store the registration collaborator's receipt on the version."""
        model = self._load_model(document_version_id)
        model.registration_id = receipt.registration_id
        model.registered_at = receipt.registered_at
        self._session.flush()
        return model.to_dto()

    def append_event(
        self,
        document_version_id: UUID,
        event_type: SignatureEventType,
        occurred_at: datetime,
        *,
        signature_id: UUID | None = None,
        actor_id: UUID | None = None,
        detail: str | None = None,
    ) -> SignatureEvent:
        """Append one history record to a version."""
        last = self._session.execute(
            select(func.max(SignatureEventModel.sequence)).where(
                SignatureEventModel.document_version_id == document_version_id,
            )
        ).scalar_one()

        model = SignatureEventModel(
            document_version_id=document_version_id,
            sequence=(last or 0) + 1,
            event_type=event_type.value,
            signature_id=signature_id,
            actor_id=actor_id,
            detail=detail,
            occurred_at=occurred_at,
        )
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load_model(
        self,
        document_version_id: UUID,
        *,
        for_update: bool = False,
    ) -> DocumentVersionModel:
        stmt = select(DocumentVersionModel).where(
            DocumentVersionModel.id == document_version_id,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        model = self._session.execute(stmt).scalar_one_or_none()
        if model is None:
            raise DocumentVersionNotFoundError(str(document_version_id))
        return model
