"""
Tests for the signature domain types.

Covers:
- Closed role/status vocabularies and the per-signature transition table
- Role labels, including the merged "Coordinator and Advisor" label
- LogicalSigner helpers
- Frozen value objects
"""

from dataclasses import FrozenInstanceError
from uuid import uuid4

import pytest

from signoff_kernel.domain.document import ActorContext, DocumentType, DocumentVersion
from signoff_kernel.domain.signature import (
    SIGNATURE_TRANSITIONS,
    LogicalSigner,
    Signature,
    SignatureStatus,
    SignerRole,
    role_label,
)


class TestVocabularies:
    def test_roles_are_closed(self):
        assert {r.value for r in SignerRole} == {"ADVISOR", "COORDINATOR", "ADMIN", "STUDENT"}

    def test_unknown_role_is_refused(self):
        with pytest.raises(ValueError):
            SignerRole("BOARD_MEMBER")

    def test_statuses_are_closed(self):
        assert {s.value for s in SignatureStatus} == {"PENDING", "APPROVED", "REJECTED"}

    def test_every_status_has_transition_entry(self):
        assert set(SIGNATURE_TRANSITIONS) == set(SignatureStatus)

    def test_approved_is_terminal(self):
        assert SIGNATURE_TRANSITIONS[SignatureStatus.APPROVED] == frozenset()

    def test_rejected_only_returns_to_pending(self):
        assert SIGNATURE_TRANSITIONS[SignatureStatus.REJECTED] == {SignatureStatus.PENDING}

    def test_pending_can_be_decided(self):
        assert SIGNATURE_TRANSITIONS[SignatureStatus.PENDING] == {
            SignatureStatus.APPROVED,
            SignatureStatus.REJECTED,
        }


class TestRoleLabel:
    def test_single_role(self):
        assert role_label({SignerRole.ADVISOR}) == "Advisor"

    def test_coordinator_and_advisor(self):
        assert role_label({SignerRole.ADVISOR, SignerRole.COORDINATOR}) == "Coordinator and Advisor"

    def test_three_roles(self):
        label = role_label({SignerRole.ADMIN, SignerRole.ADVISOR, SignerRole.COORDINATOR})
        assert label == "Coordinator, Advisor and Administrator"

    def test_no_roles(self):
        assert role_label(set()) == ""


class TestLogicalSigner:
    def test_coordinator_also_advisor(self):
        signer = LogicalSigner(
            approver_id=uuid4(),
            roles=frozenset({SignerRole.COORDINATOR, SignerRole.ADVISOR}),
            status=SignatureStatus.PENDING,
            signature_ids=(uuid4(), uuid4()),
        )
        assert signer.is_coordinator_also_advisor
        assert signer.label == "Coordinator and Advisor"

    def test_plain_advisor(self):
        signer = LogicalSigner(
            approver_id=uuid4(),
            roles=frozenset({SignerRole.ADVISOR}),
            status=SignatureStatus.APPROVED,
            signature_ids=(uuid4(),),
        )
        assert not signer.is_coordinator_also_advisor


class TestValueObjects:
    def test_signature_is_frozen(self):
        sig = Signature(signature_id=uuid4(), role=SignerRole.ADVISOR)
        with pytest.raises(FrozenInstanceError):
            sig.status = SignatureStatus.APPROVED

    def test_new_signature_defaults_to_pending_unassigned(self):
        sig = Signature(signature_id=uuid4(), role=SignerRole.ADMIN)
        assert sig.status == SignatureStatus.PENDING
        assert not sig.is_assigned
        assert sig.timestamp is None

    def test_actor_context_is_frozen(self):
        actor = ActorContext(actor_id=uuid4(), role=SignerRole.STUDENT)
        with pytest.raises(FrozenInstanceError):
            actor.role = SignerRole.COORDINATOR

    def test_document_version_lookup(self, deterministic_clock):
        sig = Signature(signature_id=uuid4(), role=SignerRole.ADVISOR)
        version = DocumentVersion(
            document_version_id=uuid4(),
            lineage_id=uuid4(),
            version=1,
            document_type=DocumentType.EVALUATION,
            created_at=deterministic_clock.now(),
            signatures=(sig,),
        )
        assert version.is_current
        assert version.signature(sig.signature_id) == sig
        assert version.signature(uuid4()) is None
