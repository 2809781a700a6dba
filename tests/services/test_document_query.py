"""
Tests for DocumentQueryService.

Covers:
- get_aggregate (status, progress, merged signers)
- list_by_status tabs: pending mine, approved, rejected
- can_evaluate / blocked_reason for the coordinator
- Superseded versions are excluded from listings
- Version lists and history
- Verification of a file by its content hash
"""

from uuid import uuid4

import pytest

from signoff_kernel.domain.document import (
    ActorContext,
    DocumentType,
    SignatureEventType,
    VerificationStatus,
)
from signoff_kernel.domain.signature import SignatureStatus, SignerRole
from signoff_kernel.exceptions import DocumentVersionNotFoundError

from tests.support import slot


class TestGetAggregate:
    def test_fresh_submission(self, submit, query):
        version = submit()

        view = query().get_aggregate(version.document_version_id)

        assert view.status == SignatureStatus.PENDING
        assert (view.approved_count, view.total_count) == (0, 2)
        assert [s.label for s in view.merged_signers] == ["Coordinator", "Advisor"]

    def test_unknown_version(self, engine, query):
        with pytest.raises(DocumentVersionNotFoundError):
            query().get_aggregate(uuid4())


class TestListByStatus:
    def test_pending_tab(self, submit, query, advisor_id, coordinator_id, deterministic_clock):
        older = submit()
        deterministic_clock.advance(60)
        newer = submit()

        advisor_tab = query().list_by_status(advisor_id, SignatureStatus.PENDING)
        assert [s.document_version_id for s in advisor_tab] == [
            newer.document_version_id,
            older.document_version_id,
        ]
        assert all(s.can_evaluate for s in advisor_tab)
        assert all(s.blocked_reason is None for s in advisor_tab)
        assert advisor_tab[0].pending_roles == "Coordinator, Advisor"

        coordinator_tab = query().list_by_status(coordinator_id, SignatureStatus.PENDING)
        assert len(coordinator_tab) == 2
        assert not coordinator_tab[0].can_evaluate
        assert coordinator_tab[0].blocked_reason == "WAITING_ON_OTHER_APPROVALS"

    def test_coordinator_unblocked_after_advisor(
        self, submit, executor, advisor, coordinator_id, query,
    ):
        version = submit()
        executor.approve(version.document_version_id, slot(version, SignerRole.ADVISOR).signature_id, advisor)

        [summary] = query().list_by_status(coordinator_id, SignatureStatus.PENDING)

        assert summary.can_evaluate
        assert (summary.approved_count, summary.total_count) == (1, 2)
        assert summary.pending_roles == "Coordinator"

    def test_approved_tab(self, submit, executor, advisor, advisor_id, query):
        version = submit()
        executor.approve(version.document_version_id, slot(version, SignerRole.ADVISOR).signature_id, advisor)

        q = query()
        assert q.list_by_status(advisor_id, SignatureStatus.PENDING) == []
        [summary] = q.list_by_status(advisor_id, SignatureStatus.APPROVED)
        assert summary.my_status == SignatureStatus.APPROVED
        assert summary.status == SignatureStatus.PENDING
        assert not summary.can_evaluate

    def test_rejected_tab(self, submit, executor, advisor, advisor_id, coordinator_id, query):
        version = submit()
        advisor_sig = slot(version, SignerRole.ADVISOR).signature_id
        executor.reject(version.document_version_id, advisor_sig, advisor, "missing signatures page")

        for person in (advisor_id, coordinator_id):
            [summary] = query().list_by_status(person, SignatureStatus.REJECTED)
            assert summary.rejected_signature_id == advisor_sig
            assert summary.rejection_justification == "missing signatures page"

        [blocked] = query().list_by_status(coordinator_id, SignatureStatus.PENDING)
        assert blocked.blocked_reason == "BLOCKED_BY_EXISTING_REJECTION"

    def test_superseded_versions_excluded(self, submit, executor, advisor, advisor_id, student, query):
        version = submit()
        executor.reject(
            version.document_version_id,
            slot(version, SignerRole.ADVISOR).signature_id,
            advisor,
            "wrong student name",
        )
        new = executor.replace_with_new_version(
            version.document_version_id, student, "name fixed",
        ).new_version

        q = query()
        assert q.list_by_status(advisor_id, SignatureStatus.REJECTED) == []
        [pending] = q.list_by_status(advisor_id, SignatureStatus.PENDING)
        assert pending.document_version_id == new.document_version_id
        assert pending.version == 2

    def test_coordinator_also_advisor(self, submit, executor, coordinator_id, query):
        version = submit({
            SignerRole.ADVISOR: coordinator_id,
            SignerRole.COORDINATOR: coordinator_id,
        })

        [summary] = query().list_by_status(coordinator_id, SignatureStatus.PENDING)
        assert summary.can_evaluate
        assert summary.pending_roles == "Coordinator and Advisor"
        assert summary.total_count == 2

        both = ActorContext(actor_id=coordinator_id, role=SignerRole.COORDINATOR)
        executor.approve(version.document_version_id, slot(version, SignerRole.ADVISOR).signature_id, both)

        [summary] = query().list_by_status(coordinator_id, SignatureStatus.PENDING)
        assert summary.my_signature_id == slot(version, SignerRole.COORDINATOR).signature_id
        assert query().list_by_status(coordinator_id, SignatureStatus.APPROVED) == []

    def test_unrelated_actor_sees_nothing(self, submit, query):
        submit()

        for status in SignatureStatus:
            assert query().list_by_status(uuid4(), status) == []


class TestVersionsAndHistory:
    def test_history_is_ordered(self, submit, executor, advisor, student, query):
        version = submit()
        sig_id = slot(version, SignerRole.ADVISOR).signature_id
        executor.reject(version.document_version_id, sig_id, advisor, "rework")
        executor.request_reconsideration(version.document_version_id, sig_id, student, "done")

        history = query().get_history(version.document_version_id)

        assert [e.event_type for e in history] == [
            SignatureEventType.SUBMITTED,
            SignatureEventType.REJECTED,
            SignatureEventType.RECONSIDERATION_REQUESTED,
        ]
        assert [e.sequence for e in history] == [1, 2, 3]
        assert history[1].detail == "rework"

    def test_current_version_of_unknown_lineage(self, engine, query):
        assert query().get_current_version(uuid4()) is None
        assert query().list_versions(uuid4()) == []


MINUTES_HASH = "9f2c" * 16
REVISED_HASH = "41ab" * 16


class TestVerifyDocument:
    def test_unknown_hash(self, submit, query):
        submit(content_hash=MINUTES_HASH)

        result = query().verify_document("00" * 32)

        assert result.status == VerificationStatus.NOT_FOUND
        assert not result.is_valid
        assert result.document_version_id is None

    def test_blank_hash(self, engine, query):
        assert query().verify_document("  ").status == VerificationStatus.NOT_FOUND

    def test_pending_document(self, submit, query):
        version = submit(content_hash=MINUTES_HASH)

        result = query().verify_document(f" {MINUTES_HASH}\n")

        assert result.status == VerificationStatus.PENDING
        assert not result.is_valid
        assert result.document_version_id == version.document_version_id
        assert result.document_type == DocumentType.MINUTES

    def test_approved_document_is_valid(self, submit, executor, advisor, coordinator, query):
        version = submit(content_hash=MINUTES_HASH)
        vid = version.document_version_id
        executor.approve(vid, slot(version, SignerRole.ADVISOR).signature_id, advisor)
        final = executor.approve(vid, slot(version, SignerRole.COORDINATOR).signature_id, coordinator)

        result = query().verify_document(MINUTES_HASH)

        assert result.status == VerificationStatus.APPROVED
        assert result.is_valid
        assert result.registration_id == final.registration.registration_id

    def test_rejected_document(self, submit, executor, advisor, query):
        version = submit(content_hash=MINUTES_HASH)
        executor.reject(
            version.document_version_id,
            slot(version, SignerRole.ADVISOR).signature_id,
            advisor,
            "grade is wrong",
        )

        assert query().verify_document(MINUTES_HASH).status == VerificationStatus.REJECTED

    def test_replaced_file_is_inactive(self, submit, executor, advisor, coordinator, student, query):
        version = submit(content_hash=MINUTES_HASH)
        vid = version.document_version_id
        executor.approve(vid, slot(version, SignerRole.ADVISOR).signature_id, advisor)
        executor.approve(vid, slot(version, SignerRole.COORDINATOR).signature_id, coordinator)
        new = executor.replace_with_new_version(
            vid, student, "grade corrected", content_hash=REVISED_HASH,
        ).new_version

        q = query()
        old_result = q.verify_document(MINUTES_HASH)
        assert old_result.status == VerificationStatus.INACTIVE
        assert old_result.document_version_id == vid
        assert not old_result.is_valid
        new_result = q.verify_document(REVISED_HASH)
        assert new_result.status == VerificationStatus.PENDING
        assert new_result.version == new.version == 2

    def test_current_version_wins_for_shared_hash(self, submit, executor, advisor, student, query):
        version = submit(content_hash=MINUTES_HASH)
        executor.reject(
            version.document_version_id,
            slot(version, SignerRole.ADVISOR).signature_id,
            advisor,
            "signature page missing",
        )
        new = executor.replace_with_new_version(
            version.document_version_id, student, "resubmitted unchanged",
            content_hash=MINUTES_HASH,
        ).new_version

        result = query().verify_document(MINUTES_HASH)

        assert result.document_version_id == new.document_version_id
        assert result.status == VerificationStatus.PENDING
