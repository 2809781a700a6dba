"""
signoff_engines.evaluation_gate -- May this actor evaluate this version now?

Responsibility:
    Decide whether an actor may currently approve or reject a document
    version, and explain the refusal when not.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import signoff_kernel/domain/ types and kernel exceptions.

Invariants enforced:
    - The actor must hold a PENDING signature on the version.
    - A coordinator evaluates last: never while another signature is
      REJECTED, and only once every signature held by someone else is
      APPROVED.
    - Other roles may evaluate as soon as their own signature is PENDING.
    - The actor is always passed in explicitly.

Failure modes:
    ``check_evaluation`` never raises; it returns a refused ``GateDecision``.
    ``assert_can_evaluate`` raises:
    - NotAnAssignedSignerError
    - BlockedByExistingRejectionError
    - WaitingOnOtherApprovalsError
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from signoff_engines.tracer import traced_engine
from signoff_kernel.domain.document import ActorContext
from signoff_kernel.domain.signature import Signature, SignatureStatus, SignerRole
from signoff_kernel.exceptions import (
    BlockedByExistingRejectionError,
    NotAnAssignedSignerError,
    WaitingOnOtherApprovalsError,
)


@dataclass(frozen=True)
class GateDecision:
    """Outcome of an Evaluation Gate check.

    ``refusal_code`` matches the ``code`` of the exception
    ``assert_can_evaluate`` would raise.
    """

    allowed: bool
    signature: Signature | None = None
    refusal_code: str | None = None
    reason: str | None = None
    blocking_signature_ids: tuple[UUID, ...] = ()


def my_pending_signature(
    actor: ActorContext,
    signatures: Iterable[Signature],
    signature_id: UUID | None = None,
) -> Signature | None:
    """The actor's pending signature, or the targeted one if it qualifies."""
    for sig in signatures:
        if sig.approver_id != actor.actor_id or sig.status != SignatureStatus.PENDING:
            continue
        if signature_id is None or sig.signature_id == signature_id:
            return sig
    return None


@traced_engine("evaluation_gate", "1.0", fingerprint_fields=("actor", "signatures", "signature_id"))
def check_evaluation(
    actor: ActorContext,
    signatures: Iterable[Signature],
    signature_id: UUID | None = None,
) -> GateDecision:
    """Check whether ``actor`` may approve or reject now.

    Args:
        actor: Who is asking.
        signatures: Raw signature list of the version.
        signature_id: The slot the actor wants to act on.  When omitted the
            actor's first pending signature is used.
    """
    sigs = tuple(signatures)
    mine = my_pending_signature(actor, sigs, signature_id)
    if mine is None:
        return GateDecision(
            allowed=False,
            refusal_code=NotAnAssignedSignerError.code,
            reason="No pending signature for this actor",
        )

    if actor.role == SignerRole.COORDINATOR:
        rejected = tuple(
            s.signature_id
            for s in sigs
            if s.status == SignatureStatus.REJECTED and s.signature_id != mine.signature_id
        )
        if rejected:
            return GateDecision(
                allowed=False,
                signature=mine,
                refusal_code=BlockedByExistingRejectionError.code,
                reason="Waiting for the rejection to be resolved before evaluating",
                blocking_signature_ids=rejected,
            )

        outstanding = tuple(
            s.signature_id
            for s in sigs
            if s.approver_id != actor.actor_id and s.status != SignatureStatus.APPROVED
        )
        if outstanding:
            return GateDecision(
                allowed=False,
                signature=mine,
                refusal_code=WaitingOnOtherApprovalsError.code,
                reason="Waiting on other approvals before evaluating",
                blocking_signature_ids=outstanding,
            )

    return GateDecision(allowed=True, signature=mine)


def assert_can_evaluate(
    actor: ActorContext,
    signatures: Iterable[Signature],
    signature_id: UUID | None = None,
    document_version_id: UUID | None = None,
) -> Signature:
    """Like ``check_evaluation`` but raises the typed refusal.

    Returns:
        The signature the actor may evaluate.
    """
    decision = check_evaluation(actor, signatures, signature_id)
    if decision.allowed:
        return decision.signature

    actor_id = str(actor.actor_id)
    version_id = str(document_version_id) if document_version_id else None
    blocking = [str(sid) for sid in decision.blocking_signature_ids]

    if decision.refusal_code == BlockedByExistingRejectionError.code:
        raise BlockedByExistingRejectionError(actor_id, version_id, blocking)
    if decision.refusal_code == WaitingOnOtherApprovalsError.code:
        raise WaitingOnOtherApprovalsError(actor_id, version_id, blocking)
    raise NotAnAssignedSignerError(
        actor_id,
        version_id,
        str(signature_id) if signature_id else None,
    )
