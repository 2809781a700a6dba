"""
signoff_services.document_query -- Query surface for callers.

Responsibility:
    ``GetAggregate`` and ``ListByStatus`` (the "pending mine / approved /
    rejected" tabs), version history lookups and verification of a file by
    its content hash.  Read-only.

Architecture position:
    Services layer.  Reads through ``DocumentSelector`` and derives every
    status through the engines; nothing here is cached.

Invariants enforced:
    - Listings only include current (non-superseded) versions.
    - Progress and status come from the raw signature list.
    - ``can_evaluate`` and ``blocked_reason`` come from the Evaluation Gate,
      so the UI can explain a disabled action.

Failure modes:
    - DocumentVersionNotFoundError from ``get_aggregate`` / ``get_version``.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from signoff_engines.aggregation import (
    aggregate_status,
    build_aggregate_view,
    document_status,
    progress,
)
from signoff_engines.evaluation_gate import check_evaluation
from signoff_engines.signer_resolution import display_signers, pending_roles_label
from signoff_kernel.domain.document import (
    ActorContext,
    AggregateView,
    DocumentSummary,
    DocumentVersion,
    SignatureEvent,
    VerificationResult,
    VerificationStatus,
)
from signoff_kernel.domain.signature import Signature, SignatureStatus, SignerRole
from signoff_kernel.exceptions import DocumentVersionNotFoundError
from signoff_kernel.selectors.document_selector import DocumentSelector


class DocumentQueryService:
    """Read-side entrypoint over one session."""

    def __init__(self, session: Session) -> None:
        self._selector = DocumentSelector(session)

    def get_version(self, document_version_id: UUID) -> DocumentVersion:
        version = self._selector.get_version(document_version_id)
        if version is None:
            raise DocumentVersionNotFoundError(str(document_version_id))
        return version

    def get_aggregate(self, document_version_id: UUID) -> AggregateView:
        """Status, progress and merged signers of one version."""
        return build_aggregate_view(self.get_version(document_version_id))

    def get_current_version(self, lineage_id: UUID) -> DocumentVersion | None:
        return self._selector.current_version(lineage_id)

    def list_versions(self, lineage_id: UUID) -> list[DocumentVersion]:
        """Version history of a document, oldest first, inactive ones included."""
        return self._selector.lineage_versions(lineage_id)

    def get_history(self, document_version_id: UUID) -> list[SignatureEvent]:
        return self._selector.events(document_version_id)

    def verify_document(self, content_hash: str) -> VerificationResult:
        """Is the file with this hash a signed document?

        Status is the display status of the matching version: APPROVED for a
        fully signed current version, INACTIVE once superseded, NOT_FOUND when
        no version carries the hash.
        """
        normalized = (content_hash or "").strip()
        version = self._selector.version_by_content_hash(normalized) if normalized else None
        if version is None:
            return VerificationResult(
                content_hash=normalized,
                status=VerificationStatus.NOT_FOUND,
            )
        return VerificationResult(
            content_hash=normalized,
            status=VerificationStatus(document_status(version).value),
            document_version_id=version.document_version_id,
            lineage_id=version.lineage_id,
            version=version.version,
            document_type=version.document_type,
            registration_id=version.registration_id,
        )

    def list_by_status(
        self,
        actor_id: UUID,
        status: SignatureStatus,
        actor_role: SignerRole | None = None,
    ) -> list[DocumentSummary]:
        """Current versions the actor signs, filtered for one tab.

        PENDING: the actor still has a pending signature.
        APPROVED: every signature the actor holds is approved.
        REJECTED: the version as a whole is rejected.

        Args:
            actor_id: Whose tab this is.
            status: Which tab.
            actor_role: Role used for the gate check.  Defaults to the role
                of the actor's own signature on each version.

        Returns:
            Summaries, newest first.
        """
        summaries: list[DocumentSummary] = []
        for version in self._selector.current_versions_for_approver(actor_id):
            sigs = version.signatures
            mine = [s for s in sigs if s.approver_id == actor_id]
            overall = aggregate_status(sigs)

            my_sig = _pick_own_signature(mine, status, overall)
            if my_sig is None:
                continue

            summaries.append(
                self._summarize(version, overall, my_sig, actor_id, actor_role)
            )
        return summaries

    def _summarize(
        self,
        version: DocumentVersion,
        overall: SignatureStatus,
        my_sig: Signature,
        actor_id: UUID,
        actor_role: SignerRole | None,
    ) -> DocumentSummary:
        sigs = version.signatures
        approved, total = progress(sigs)

        can_evaluate = False
        blocked_reason = None
        if my_sig.status == SignatureStatus.PENDING:
            actor = ActorContext(actor_id=actor_id, role=actor_role or my_sig.role)
            decision = check_evaluation(actor, sigs, my_sig.signature_id)
            can_evaluate = decision.allowed
            blocked_reason = decision.refusal_code

        rejected = _latest_rejection(sigs)

        return DocumentSummary(
            document_version_id=version.document_version_id,
            lineage_id=version.lineage_id,
            version=version.version,
            document_type=version.document_type,
            status=overall,
            approved_count=approved,
            total_count=total,
            my_signature_id=my_sig.signature_id,
            my_status=my_sig.status,
            can_evaluate=can_evaluate,
            blocked_reason=blocked_reason,
            pending_roles=pending_roles_label(display_signers(sigs)),
            rejected_signature_id=rejected.signature_id if rejected else None,
            rejection_justification=rejected.justification if rejected else None,
            created_at=version.created_at,
        )


def _pick_own_signature(
    mine: list[Signature],
    status: SignatureStatus,
    overall: SignatureStatus,
) -> Signature | None:
    if not mine:
        return None
    if status == SignatureStatus.PENDING:
        return next((s for s in mine if s.status == SignatureStatus.PENDING), None)
    if status == SignatureStatus.APPROVED:
        if all(s.status == SignatureStatus.APPROVED for s in mine):
            return mine[0]
        return None
    if overall != SignatureStatus.REJECTED:
        return None
    return next((s for s in mine if s.status == SignatureStatus.REJECTED), mine[0])


def _latest_rejection(signatures: tuple[Signature, ...]) -> Signature | None:
    rejected = [s for s in signatures if s.status == SignatureStatus.REJECTED]
    if not rejected:
        return None
    return max(rejected, key=lambda s: (s.timestamp is not None, s.timestamp or 0))
