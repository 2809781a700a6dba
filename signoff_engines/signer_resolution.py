"""
signoff_engines.signer_resolution -- Merge signatures into logical signers.

Responsibility:
    Collapse the signatures a single person holds on one document version
    (typically a coordinator who is also the advisor) into one
    ``LogicalSigner`` with a merged role set, status, justification and
    timestamp.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import signoff_kernel/domain/ types.

Invariants enforced:
    - Signatures without an approver are never merged; each is its own
      logical signer.
    - Status precedence: REJECTED over PENDING over APPROVED.
    - Justification and timestamp come from the contributing signature(s)
      that decided the merged status; the latest timestamp wins.
    - Idempotent: ``merge_logical_signers(merge_logical_signers(x))`` equals
      ``merge_logical_signers(x)``.
    - Output order follows the first appearance of each person.

Failure modes:
    None.  Empty input yields an empty tuple.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from signoff_engines.tracer import traced_engine
from signoff_kernel.domain.signature import (
    LogicalSigner,
    Signature,
    SignatureStatus,
    SignerRole,
)

# Lower value wins when merging
_STATUS_PRECEDENCE: dict[SignatureStatus, int] = {
    SignatureStatus.REJECTED: 0,
    SignatureStatus.PENDING: 1,
    SignatureStatus.APPROVED: 2,
}

_ROLE_DISPLAY_ORDER: dict[SignerRole, int] = {
    SignerRole.COORDINATOR: 0,
    SignerRole.ADVISOR: 1,
    SignerRole.ADMIN: 2,
    SignerRole.STUDENT: 3,
}


def _as_logical(signature: Signature) -> LogicalSigner:
    return LogicalSigner(
        approver_id=signature.approver_id,
        roles=frozenset({signature.role}),
        status=signature.status,
        signature_ids=(signature.signature_id,),
        justification=signature.justification,
        timestamp=signature.timestamp,
    )


def _latest(parts: list[LogicalSigner]) -> LogicalSigner:
    """The part with the latest timestamp; untimed parts lose, ties keep order."""
    best = parts[0]
    for part in parts[1:]:
        if part.timestamp is None:
            continue
        if best.timestamp is None or part.timestamp > best.timestamp:
            best = part
    return best


def _merge_group(parts: list[LogicalSigner]) -> LogicalSigner:
    if len(parts) == 1:
        return parts[0]

    status = min((p.status for p in parts), key=_STATUS_PRECEDENCE.__getitem__)
    deciding = [p for p in parts if p.status == status]
    decisive = _latest(deciding)

    signature_ids: list[UUID] = []
    for part in parts:
        for sid in part.signature_ids:
            if sid not in signature_ids:
                signature_ids.append(sid)

    roles: frozenset[SignerRole] = frozenset()
    for part in parts:
        roles = roles | part.roles

    timestamps: list[datetime] = [p.timestamp for p in deciding if p.timestamp is not None]

    return LogicalSigner(
        approver_id=parts[0].approver_id,
        roles=roles,
        status=status,
        signature_ids=tuple(signature_ids),
        justification=decisive.justification,
        timestamp=max(timestamps) if timestamps else None,
    )


def merge_logical_signers(
    signers: Iterable[LogicalSigner],
) -> tuple[LogicalSigner, ...]:
    """Merge logical signers that share an approver.

    Accepts an already-merged view, which it returns unchanged.
    """
    groups: dict[UUID, list[LogicalSigner]] = {}
    ordered: list[UUID | LogicalSigner] = []

    for signer in signers:
        if signer.approver_id is None:
            ordered.append(signer)
            continue
        if signer.approver_id not in groups:
            groups[signer.approver_id] = []
            ordered.append(signer.approver_id)
        groups[signer.approver_id].append(signer)

    result: list[LogicalSigner] = []
    for entry in ordered:
        if isinstance(entry, LogicalSigner):
            result.append(entry)
        else:
            result.append(_merge_group(groups[entry]))
    return tuple(result)


@traced_engine("signer_resolution", "1.0", fingerprint_fields=("signatures",))
def resolve_signers(signatures: Iterable[Signature]) -> tuple[LogicalSigner, ...]:
    """Group a version's signatures by person.

    Args:
        signatures: Raw signature list of one document version.

    Returns:
        One ``LogicalSigner`` per assigned person plus one per unassigned
        slot, in order of first appearance.
    """
    return merge_logical_signers(_as_logical(s) for s in signatures)


def display_signers(signatures: Iterable[Signature]) -> tuple[LogicalSigner, ...]:
    """Signers as shown to users: one entry per person, coordinator first.

    A coordinator who also advises appears once, labelled "Coordinator and
    Advisor".  Only the listing collapses; both underlying signatures still
    count toward aggregation and progress.
    """
    resolved = resolve_signers(tuple(signatures))
    return tuple(
        sorted(
            resolved,
            key=lambda s: min(_ROLE_DISPLAY_ORDER[r] for r in s.roles),
        )
    )


def pending_roles_label(signers: Iterable[LogicalSigner]) -> str:
    """Comma-separated labels of the signers still pending."""
    return ", ".join(s.label for s in signers if s.status == SignatureStatus.PENDING)
