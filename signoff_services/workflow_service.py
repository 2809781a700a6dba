"""
signoff_services.workflow_service -- Signature workflow transitions.

Responsibility:
    Implements submission, approve, reject, reconsideration, replacement
    with a new version, approver assignment and the "notify approver"
    reminder.  Each method validates through the pure engines, mutates a
    ``SignatureLedger`` and saves it through the signature store.

Architecture position:
    Services layer.  May import from signoff_engines/, signoff_kernel/ and
    signoff_config/.  Thin coordinator: no status arithmetic here, the
    engines own it.

Invariants enforced:
    - Flush-only: the service never commits or rolls back.  The caller
      (``WorkflowExecutor`` or a test) owns the transaction.
    - Every transition re-reads the version under a row lock and checks the
      caller's ``expected_version`` before validating.
    - Superseded versions accept no transition.
    - Registration happens exactly once, on the transition that moves the
      aggregate into APPROVED, inside the same transaction.
    - Notifications are returned, never sent from here.

Failure modes:
    - EvaluationRefusedError subclasses from the Evaluation Gate.
    - InvalidTransitionError subclasses for illegal transitions.
    - DocumentVersionNotFoundError for unknown versions.
    - ConflictRetryError when the signature set changed under the caller.
    - RegistrationFailedError when the registration collaborator fails.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from signoff_config import WorkflowConfig, get_active_config
from signoff_engines.aggregation import aggregate_status, build_aggregate_view
from signoff_engines.evaluation_gate import assert_can_evaluate
from signoff_kernel.domain.clock import Clock, SystemClock
from signoff_kernel.domain.document import (
    ActorContext,
    DocumentType,
    DocumentVersion,
    Notification,
    NotificationKind,
    RegistrationReceipt,
    RegistrationSnapshot,
    SignatureEventType,
    TransitionResult,
)
from signoff_kernel.domain.ledger import SignatureLedger
from signoff_kernel.domain.signature import SignatureStatus, SignerRole
from signoff_kernel.exceptions import (
    ConflictRetryError,
    InvalidSourceStateError,
    InvalidTransitionError,
    MissingJustificationError,
    NotRejectedError,
    RegistrationFailedError,
    SignatureNotFoundError,
    VersionSupersededError,
)
from signoff_kernel.logging_config import get_logger
from signoff_kernel.services.signature_store import SaveResult, SignatureStore
from signoff_kernel.utils.hashing import hash_signature_snapshot
from signoff_services.collaborators import RegistrationCollaborator

logger = get_logger("services.workflow")


def registration_idempotency_key(document_version_id: UUID) -> str:
    """Key the registry deduplicates on.

    A version is registered at most once: APPROVED is terminal and a
    replacement gets a new id.  The snapshot hash is left out because a
    retried approval carries a new decision timestamp.
    """
    return f"signoff-registration:{document_version_id}"


class SignatureWorkflowService:
    """Workflow transitions over one session."""

    def __init__(
        self,
        session: Session,
        store: SignatureStore | None = None,
        registration: RegistrationCollaborator | None = None,
        clock: Clock | None = None,
        config: WorkflowConfig | None = None,
    ) -> None:
        self._session = session
        self._store = store or SignatureStore(session)
        self._registration = registration
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_document(
        self,
        document_type: DocumentType,
        assignments: Mapping[SignerRole, UUID | None],
        actor: ActorContext,
        lineage_id: UUID | None = None,
        content_ref: str | None = None,
        content_hash: str | None = None,
        final_grade: Decimal | None = None,
    ) -> TransitionResult:
        """Create version 1 of a new document with one PENDING slot per role.

        ``assignments`` maps each role to its approver; ``None`` leaves the
        slot to be assigned later.  Every configured required role must be
        present.  Required roles come first, in configured order, then any
        extra roles in the order given.
        """
        missing = [r for r in self._config.required_roles if r not in assignments]
        if missing:
            raise InvalidTransitionError(
                "Missing signer assignment for required roles: "
                + ", ".join(r.value for r in missing)
            )

        lineage = lineage_id or uuid4()
        if self._store.next_version_number(lineage) != 1:
            raise InvalidTransitionError(
                f"Document {lineage} was already submitted; replace its current version instead"
            )

        version_id = uuid4()
        ledger = SignatureLedger(version_id)
        ordered = list(self._config.required_roles) + [
            r for r in assignments if r not in self._config.required_roles
        ]
        for role in ordered:
            ledger.add_signature(role, assignments[role])

        now = self._clock.now()
        version = self._store.create_version(
            document_version_id=version_id,
            lineage_id=lineage,
            version=1,
            document_type=document_type,
            created_at=now,
            signatures=ledger.signatures,
            content_ref=content_ref,
            content_hash=content_hash,
            final_grade=final_grade,
        )
        self._store.append_event(
            version_id,
            SignatureEventType.SUBMITTED,
            now,
            actor_id=actor.actor_id,
        )

        logger.info(
            "document_submitted",
            extra={
                "document_version_id": str(version_id),
                "lineage_id": str(lineage),
                "document_type": document_type.value,
                "roles": [r.value for r in ordered],
            },
        )
        return TransitionResult(
            document_version_id=version_id,
            view=build_aggregate_view(version),
            new_version=version,
        )

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def approve(
        self,
        document_version_id: UUID,
        signature_id: UUID,
        actor: ActorContext,
        justification: str | None = None,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Approve the actor's signature; register if the version is now approved."""
        version, ledger = self._load_for_transition(document_version_id, expected_version)
        sig = assert_can_evaluate(actor, version.signatures, signature_id, document_version_id)

        before = aggregate_status(version.signatures)
        now = self._clock.now()
        ledger.set_status(sig.signature_id, SignatureStatus.APPROVED, justification, now)
        self._save(ledger)
        self._store.append_event(
            document_version_id,
            SignatureEventType.APPROVED,
            now,
            signature_id=sig.signature_id,
            actor_id=actor.actor_id,
            detail=justification,
        )

        updated = self._store.load_version(document_version_id)
        after = aggregate_status(updated.signatures)

        logger.info(
            "signature_approved",
            extra={
                "document_version_id": str(document_version_id),
                "signature_id": str(sig.signature_id),
                "role": sig.role.value,
                "aggregate_status": after.value,
            },
        )

        receipt = None
        if (
            after == SignatureStatus.APPROVED
            and before != SignatureStatus.APPROVED
            and updated.registration_id is None
        ):
            receipt = self._register(updated, actor)
            updated = self._store.load_version(document_version_id)

        return TransitionResult(
            document_version_id=document_version_id,
            view=build_aggregate_view(updated),
            registration=receipt,
        )

    def reject(
        self,
        document_version_id: UUID,
        signature_id: UUID,
        actor: ActorContext,
        justification: str,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Reject the actor's signature.  The justification is mandatory."""
        version, ledger = self._load_for_transition(document_version_id, expected_version)
        sig = assert_can_evaluate(actor, version.signatures, signature_id, document_version_id)

        now = self._clock.now()
        rejected = ledger.set_status(
            sig.signature_id, SignatureStatus.REJECTED, justification, now,
        )
        self._save(ledger)
        self._store.append_event(
            document_version_id,
            SignatureEventType.REJECTED,
            now,
            signature_id=sig.signature_id,
            actor_id=actor.actor_id,
            detail=rejected.justification,
        )
        updated = self._store.load_version(document_version_id)

        notifications: list[Notification] = []
        if self._config.notifications.on_reject:
            counterparts: list[UUID] = []
            for other in updated.signatures:
                if (
                    other.approver_id is not None
                    and other.approver_id != actor.actor_id
                    and other.approver_id not in counterparts
                ):
                    counterparts.append(other.approver_id)
            if counterparts:
                notifications.append(
                    Notification(
                        kind=NotificationKind.DOCUMENT_REJECTED,
                        document_version_id=document_version_id,
                        recipients=tuple(counterparts),
                        signature_id=sig.signature_id,
                        message=rejected.justification or "",
                        requested_by=actor.actor_id,
                    )
                )

        logger.info(
            "signature_rejected",
            extra={
                "document_version_id": str(document_version_id),
                "signature_id": str(sig.signature_id),
                "role": sig.role.value,
                "notified": sum(len(n.recipients) for n in notifications),
            },
        )
        return TransitionResult(
            document_version_id=document_version_id,
            view=build_aggregate_view(updated),
            notifications=tuple(notifications),
        )

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def request_reconsideration(
        self,
        document_version_id: UUID,
        signature_id: UUID,
        actor: ActorContext,
        reason: str,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Reset a rejected signature to PENDING and notify the rejecter.

        The reason is delivered to the rejecter and kept in the history; it
        is not stored on the signature.
        """
        version, ledger = self._load_for_transition(document_version_id, expected_version)
        sig = ledger.get(signature_id)
        if sig.status != SignatureStatus.REJECTED:
            raise NotRejectedError(str(signature_id), sig.status.value)
        if not (reason or "").strip():
            raise MissingJustificationError(field="reason")

        now = self._clock.now()
        ledger.set_status(signature_id, SignatureStatus.PENDING)
        self._save(ledger)
        self._store.append_event(
            document_version_id,
            SignatureEventType.RECONSIDERATION_REQUESTED,
            now,
            signature_id=signature_id,
            actor_id=actor.actor_id,
            detail=reason.strip(),
        )
        updated = self._store.load_version(document_version_id)

        notifications: tuple[Notification, ...] = ()
        if self._config.notifications.on_reconsideration and sig.approver_id is not None:
            notifications = (
                Notification(
                    kind=NotificationKind.RECONSIDERATION_REQUESTED,
                    document_version_id=document_version_id,
                    recipients=(sig.approver_id,),
                    signature_id=signature_id,
                    message=reason.strip(),
                    requested_by=actor.actor_id,
                ),
            )

        logger.info(
            "reconsideration_requested",
            extra={
                "document_version_id": str(document_version_id),
                "signature_id": str(signature_id),
                "rejecter_id": str(sig.approver_id) if sig.approver_id else None,
            },
        )
        return TransitionResult(
            document_version_id=document_version_id,
            view=build_aggregate_view(updated),
            notifications=notifications,
        )

    def replace_with_new_version(
        self,
        document_version_id: UUID,
        actor: ActorContext,
        change_reason: str,
        content_ref: str | None = None,
        content_hash: str | None = None,
        final_grade: Decimal | None = None,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Supersede a rejected or approved version with a fresh one.

        The new version mirrors the old version's ``(role, approver)`` slots,
        all PENDING.  The old version is retained as INACTIVE.
        """
        old, _ = self._load_for_transition(document_version_id, expected_version)

        status = aggregate_status(old.signatures)
        if status not in self._config.replacement.allowed_source_statuses:
            raise InvalidSourceStateError(str(document_version_id), status.value)
        if not (change_reason or "").strip():
            raise MissingJustificationError(field="change_reason")
        reason = change_reason.strip()

        new_id = uuid4()
        ledger = SignatureLedger(new_id)
        for sig in old.signatures:
            ledger.add_signature(sig.role, sig.approver_id)

        now = self._clock.now()
        self._store.mark_superseded(document_version_id, now, reason)
        new_version = self._store.create_version(
            document_version_id=new_id,
            lineage_id=old.lineage_id,
            version=self._store.next_version_number(old.lineage_id),
            document_type=old.document_type,
            created_at=now,
            signatures=ledger.signatures,
            content_ref=content_ref,
            content_hash=content_hash,
            final_grade=final_grade if final_grade is not None else old.final_grade,
            change_reason=reason,
            previous_version_id=document_version_id,
        )
        self._store.append_event(
            document_version_id,
            SignatureEventType.SUPERSEDED,
            now,
            actor_id=actor.actor_id,
            detail=reason,
        )
        self._store.append_event(
            new_id,
            SignatureEventType.SUBMITTED,
            now,
            actor_id=actor.actor_id,
            detail=reason,
        )

        logger.info(
            "document_version_replaced",
            extra={
                "document_version_id": str(document_version_id),
                "new_document_version_id": str(new_id),
                "lineage_id": str(old.lineage_id),
                "new_version": new_version.version,
                "source_status": status.value,
            },
        )
        return TransitionResult(
            document_version_id=new_id,
            view=build_aggregate_view(new_version),
            new_version=new_version,
        )

    # ------------------------------------------------------------------
    # Assignment and reminders
    # ------------------------------------------------------------------

    def assign_approver(
        self,
        document_version_id: UUID,
        signature_id: UUID,
        approver_id: UUID,
        actor: ActorContext,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Resolve the approver of a slot submitted without one."""
        _, ledger = self._load_for_transition(document_version_id, expected_version)
        assigned = ledger.assign_approver(signature_id, approver_id)
        self._save(ledger)

        logger.info(
            "approver_assigned",
            extra={
                "document_version_id": str(document_version_id),
                "signature_id": str(signature_id),
                "role": assigned.role.value,
                "assigned_by": str(actor.actor_id),
            },
        )
        return TransitionResult(
            document_version_id=document_version_id,
            view=build_aggregate_view(self._store.load_version(document_version_id)),
        )

    def notify_approver(
        self,
        document_version_id: UUID,
        signature_id: UUID,
        actor: ActorContext,
        message: str = "",
    ) -> TransitionResult:
        """Remind an assigned signer whose signature is still PENDING."""
        version = self._store.load_version(document_version_id)
        if not version.is_current:
            raise VersionSupersededError(str(document_version_id))

        sig = version.signature(signature_id)
        if sig is None:
            raise SignatureNotFoundError(str(signature_id))
        if sig.status != SignatureStatus.PENDING or sig.approver_id is None:
            raise InvalidTransitionError(
                f"Signature {signature_id} is not awaiting an assigned approver"
            )

        self._store.append_event(
            document_version_id,
            SignatureEventType.APPROVER_NOTIFIED,
            self._clock.now(),
            signature_id=signature_id,
            actor_id=actor.actor_id,
            detail=message or None,
        )
        notification = Notification(
            kind=NotificationKind.APPROVAL_REMINDER,
            document_version_id=document_version_id,
            recipients=(sig.approver_id,),
            signature_id=signature_id,
            message=message,
            requested_by=actor.actor_id,
        )
        return TransitionResult(
            document_version_id=document_version_id,
            view=build_aggregate_view(version),
            notifications=(notification,),
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load_for_transition(
        self,
        document_version_id: UUID,
        expected_version: int | None,
    ) -> tuple[DocumentVersion, SignatureLedger]:
        version = self._store.load_version(document_version_id, for_update=True)

        if (
            expected_version is not None
            and expected_version != version.signature_set_version
        ):
            raise ConflictRetryError(
                str(document_version_id),
                expected_version=expected_version,
                actual_version=version.signature_set_version,
            )
        if not version.is_current:
            raise VersionSupersededError(str(document_version_id))

        ledger = SignatureLedger(
            document_version_id,
            version.signatures,
            expected_version=version.signature_set_version,
        )
        return version, ledger

    def _save(self, ledger: SignatureLedger) -> None:
        result = self._store.save_signatures(
            ledger.document_version_id,
            ledger.signatures,
            ledger.expected_version,
        )
        if result == SaveResult.CONFLICT:
            raise ConflictRetryError(
                str(ledger.document_version_id),
                expected_version=ledger.expected_version,
            )

    def _register(
        self,
        version: DocumentVersion,
        actor: ActorContext,
    ) -> RegistrationReceipt:
        if self._registration is None:
            raise RegistrationFailedError(
                str(version.document_version_id),
                "no registration collaborator configured",
            )

        snapshot = RegistrationSnapshot(
            document_version_id=version.document_version_id,
            lineage_id=version.lineage_id,
            version=version.version,
            content_hash=version.content_hash,
            signatures=version.signatures,
            snapshot_hash=hash_signature_snapshot(
                version.document_version_id,
                version.content_hash,
                version.signatures,
            ),
        )

        key = registration_idempotency_key(version.document_version_id)
        try:
            receipt = self._registration.register(
                version.document_version_id, snapshot, idempotency_key=key,
            )
        except RegistrationFailedError:
            raise
        except Exception as exc:
            raise RegistrationFailedError(
                str(version.document_version_id), str(exc),
            ) from exc

        self._store.record_registration(version.document_version_id, receipt)
        self._store.append_event(
            version.document_version_id,
            SignatureEventType.REGISTERED,
            self._clock.now(),
            actor_id=actor.actor_id,
            detail=receipt.registration_id,
        )
        logger.info(
            "document_registered",
            extra={
                "document_version_id": str(version.document_version_id),
                "registration_id": receipt.registration_id,
                "snapshot_hash": snapshot.snapshot_hash,
                "idempotency_key": key,
            },
        )
        return receipt
