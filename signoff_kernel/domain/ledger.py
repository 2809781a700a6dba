"""
SignatureLedger -- authoritative signature list of one document version.

Responsibility:
    Holds the signatures of a single document version and exposes the pure
    read/write primitives the workflow builds on: adding a role slot,
    resolving a late-bound approver, and setting a signature's status.

Architecture position:
    Kernel > Domain -- pure, in-memory.  Loaded from and saved back to the
    signature store by the services layer; the ledger itself never touches
    the database.

Invariants enforced:
    - At most one signature per role slot.
    - ``set_status`` fails for unknown signatures.
    - ``REJECTED`` requires a non-empty justification.
    - Resetting to ``PENDING`` discards justification and timestamp.

    No other validation lives here.  Who may change a status, and when, is
    decided by the Evaluation Gate and the workflow service.

Failure modes:
    - DuplicateRoleSlotError from ``add_signature``.
    - SignatureNotFoundError / MissingJustificationError from ``set_status``
      (both are InvalidTransitionError).
    - InvalidTransitionError from ``assign_approver`` on an assigned slot.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from uuid import UUID, uuid4

from signoff_kernel.domain.signature import Signature, SignatureStatus, SignerRole
from signoff_kernel.exceptions import (
    DuplicateRoleSlotError,
    InvalidTransitionError,
    MissingJustificationError,
    SignatureNotFoundError,
)


class SignatureLedger:
    """Mutable holder of immutable ``Signature`` snapshots.

    ``expected_version`` is the signature-set version the ledger was loaded
    at; the store compares it on save to detect concurrent writers.
    """

    def __init__(
        self,
        document_version_id: UUID,
        signatures: tuple[Signature, ...] | list[Signature] = (),
        expected_version: int = 0,
    ) -> None:
        self.document_version_id = document_version_id
        self.expected_version = expected_version
        self._signatures: list[Signature] = list(signatures)
        self._changed: set[UUID] = set()

    @property
    def signatures(self) -> tuple[Signature, ...]:
        return tuple(self._signatures)

    @property
    def is_dirty(self) -> bool:
        return bool(self._changed)

    @property
    def changed_ids(self) -> frozenset[UUID]:
        return frozenset(self._changed)

    def get(self, signature_id: UUID) -> Signature:
        """Return the signature with this id or raise SignatureNotFoundError."""
        return self._signatures[self._index_of(signature_id)]

    def add_signature(
        self,
        role: SignerRole,
        approver_id: UUID | None = None,
        signature_id: UUID | None = None,
    ) -> Signature:
        """Create a PENDING slot for ``role``."""
        if any(s.role == role for s in self._signatures):
            raise DuplicateRoleSlotError(role.value)
        sig = Signature(
            signature_id=signature_id or uuid4(),
            role=role,
            approver_id=approver_id,
        )
        self._signatures.append(sig)
        self._changed.add(sig.signature_id)
        return sig

    def assign_approver(self, signature_id: UUID, approver_id: UUID) -> Signature:
        """Resolve the approver of a slot created without one."""
        idx = self._index_of(signature_id)
        current = self._signatures[idx]
        if current.approver_id is not None:
            raise InvalidTransitionError(
                f"Signature {signature_id} is already assigned to {current.approver_id}"
            )
        updated = replace(current, approver_id=approver_id)
        self._signatures[idx] = updated
        self._changed.add(signature_id)
        return updated

    def set_status(
        self,
        signature_id: UUID,
        status: SignatureStatus,
        justification: str | None = None,
        timestamp: datetime | None = None,
    ) -> Signature:
        """Set a signature's status.

        Preconditions: the signature exists; a REJECTED status comes with a
            non-empty justification.
        Postconditions: the stored snapshot is replaced.  PENDING clears
            justification and timestamp.
        """
        idx = self._index_of(signature_id)

        if status == SignatureStatus.REJECTED and not (justification or "").strip():
            raise MissingJustificationError()

        if status == SignatureStatus.PENDING:
            updated = replace(
                self._signatures[idx],
                status=status,
                justification=None,
                timestamp=None,
            )
        else:
            updated = replace(
                self._signatures[idx],
                status=status,
                justification=(justification or "").strip() or None,
                timestamp=timestamp,
            )

        self._signatures[idx] = updated
        self._changed.add(signature_id)
        return updated

    def _index_of(self, signature_id: UUID) -> int:
        for idx, sig in enumerate(self._signatures):
            if sig.signature_id == signature_id:
                return idx
        raise SignatureNotFoundError(str(signature_id))
