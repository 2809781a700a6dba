"""
End-to-end sign-off scenarios through the WorkflowExecutor.

Covers:
- Scenario A: advisor then coordinator approve; registration exactly once
- Scenario B: coordinator tries first and is told to wait
- Scenario C: advisor rejects, student requests reconsideration
- Scenario D: one person as coordinator and advisor signs both slots
"""

from signoff_kernel.domain.document import (
    ActorContext,
    DocumentStatus,
    NotificationKind,
    SignatureEventType,
)
from signoff_kernel.domain.signature import SignatureStatus, SignerRole
from signoff_kernel.exceptions import WaitingOnOtherApprovalsError

import pytest

from tests.support import slot


class TestScenarioA:
    def test_full_approval_registers_once(
        self, submit, executor, advisor, coordinator, registration, query,
    ):
        version = submit()
        vid = version.document_version_id
        assert query().get_aggregate(vid).status == SignatureStatus.PENDING

        after_advisor = executor.approve(vid, slot(version, SignerRole.ADVISOR).signature_id, advisor)
        assert after_advisor.view.status == SignatureStatus.PENDING
        assert after_advisor.registration is None
        assert registration.calls == []

        final = executor.approve(vid, slot(version, SignerRole.COORDINATOR).signature_id, coordinator)

        assert final.view.status == SignatureStatus.APPROVED
        assert final.view.document_status == DocumentStatus.APPROVED
        assert (final.view.approved_count, final.view.total_count) == (2, 2)
        assert len(registration.calls) == 1
        registered_id, snapshot = registration.calls[0]
        assert registered_id == vid
        assert {s.status for s in snapshot.signatures} == {SignatureStatus.APPROVED}
        assert len(snapshot.snapshot_hash) == 64

        stored = query().get_version(vid)
        assert stored.registration_id == final.registration.registration_id
        history = [e.event_type for e in query().get_history(vid)]
        assert history == [
            SignatureEventType.SUBMITTED,
            SignatureEventType.APPROVED,
            SignatureEventType.APPROVED,
            SignatureEventType.REGISTERED,
        ]


class TestScenarioB:
    def test_coordinator_must_wait(self, submit, executor, coordinator, query, registration):
        version = submit()

        with pytest.raises(WaitingOnOtherApprovalsError) as exc_info:
            executor.approve(
                version.document_version_id,
                slot(version, SignerRole.COORDINATOR).signature_id,
                coordinator,
            )

        assert exc_info.value.code == "WAITING_ON_OTHER_APPROVALS"
        view = query().get_aggregate(version.document_version_id)
        assert view.status == SignatureStatus.PENDING
        assert view.approved_count == 0
        assert view.signature_set_version == 1
        assert registration.calls == []


class TestScenarioC:
    def test_reject_then_reconsider(
        self, submit, executor, advisor, student, advisor_id, coordinator_id, notifier, query,
    ):
        version = submit()
        vid = version.document_version_id
        advisor_sig = slot(version, SignerRole.ADVISOR).signature_id

        rejected = executor.reject(vid, advisor_sig, advisor, "missing methodology")

        assert rejected.view.status == SignatureStatus.REJECTED
        assert notifier.sent[0].kind == NotificationKind.DOCUMENT_REJECTED
        assert notifier.sent[0].recipients == (coordinator_id,)
        assert notifier.sent[0].message == "missing methodology"

        reconsidered = executor.request_reconsideration(
            vid, advisor_sig, student, "methodology chapter was attached as an appendix",
        )

        assert reconsidered.view.status == SignatureStatus.PENDING
        sig = query().get_version(vid).signature(advisor_sig)
        assert sig.status == SignatureStatus.PENDING
        assert sig.justification is None
        assert sig.timestamp is None

        reminder = notifier.sent[-1]
        assert reminder.kind == NotificationKind.RECONSIDERATION_REQUESTED
        assert reminder.recipients == (advisor_id,)
        assert reminder.requested_by == student.actor_id
        assert "appendix" in reminder.message


class TestScenarioD:
    def test_coordinator_also_advisor(self, submit, executor, coordinator_id, registration, query):
        both = ActorContext(actor_id=coordinator_id, role=SignerRole.COORDINATOR)
        version = submit({
            SignerRole.ADVISOR: coordinator_id,
            SignerRole.COORDINATOR: coordinator_id,
        })
        vid = version.document_version_id

        view = query().get_aggregate(vid)
        assert len(view.merged_signers) == 1
        assert view.merged_signers[0].roles == {SignerRole.COORDINATOR, SignerRole.ADVISOR}
        assert view.merged_signers[0].label == "Coordinator and Advisor"
        assert view.total_count == 2

        first = executor.approve(vid, slot(version, SignerRole.COORDINATOR).signature_id, both)
        assert first.view.status == SignatureStatus.PENDING
        assert first.view.approved_count == 1
        assert registration.calls == []

        second = executor.approve(vid, slot(version, SignerRole.ADVISOR).signature_id, both)
        assert second.view.status == SignatureStatus.APPROVED
        assert len(registration.calls) == 1
