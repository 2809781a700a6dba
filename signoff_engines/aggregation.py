"""
signoff_engines.aggregation -- Derive a document version's status.

Responsibility:
    Compute the aggregate status and the (approved, total) progress pair of
    a document version from its raw signature list, and assemble the
    ``AggregateView`` returned by the query surface.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import signoff_kernel/domain/ types.

Invariants enforced:
    - REJECTED if and only if at least one signature is REJECTED.
    - Without rejections, APPROVED if and only if every signature is
      APPROVED; PENDING otherwise.
    - Progress counts raw signatures, never the merged view, so a
      coordinator who also advises contributes two sign-offs.
    - Aggregate status is never cached; it is recomputed on every call.

Failure modes:
    None.  An empty signature set aggregates to APPROVED (nothing is
    outstanding); submission never creates one.
"""

from __future__ import annotations

from collections.abc import Iterable

from signoff_engines.signer_resolution import display_signers
from signoff_engines.tracer import traced_engine
from signoff_kernel.domain.document import AggregateView, DocumentStatus, DocumentVersion
from signoff_kernel.domain.signature import Signature, SignatureStatus


def aggregate_status(signatures: Iterable[Signature]) -> SignatureStatus:
    """Overall status of a signature set."""
    statuses = [s.status for s in signatures]
    if SignatureStatus.REJECTED in statuses:
        return SignatureStatus.REJECTED
    if all(status == SignatureStatus.APPROVED for status in statuses):
        return SignatureStatus.APPROVED
    return SignatureStatus.PENDING


def progress(signatures: Iterable[Signature]) -> tuple[int, int]:
    """``(approved_count, total_count)`` over raw signatures."""
    sigs = list(signatures)
    approved = sum(1 for s in sigs if s.status == SignatureStatus.APPROVED)
    return approved, len(sigs)


def document_status(version: DocumentVersion) -> DocumentStatus:
    """Display status: INACTIVE once superseded, otherwise the aggregate."""
    if not version.is_current:
        return DocumentStatus.INACTIVE
    return DocumentStatus(aggregate_status(version.signatures).value)


@traced_engine("aggregation", "1.0", fingerprint_fields=("version",))
def build_aggregate_view(version: DocumentVersion) -> AggregateView:
    """Everything ``GetAggregate`` reports for one version."""
    approved, total = progress(version.signatures)
    return AggregateView(
        document_version_id=version.document_version_id,
        status=aggregate_status(version.signatures),
        document_status=document_status(version),
        approved_count=approved,
        total_count=total,
        merged_signers=display_signers(version.signatures),
        signature_set_version=version.signature_set_version,
    )
