"""Test doubles and small helpers shared across the suite."""

from concurrent.futures import Executor, Future
from datetime import datetime, timezone
from uuid import uuid4

from signoff_kernel.domain.document import RegistrationReceipt
from signoff_kernel.domain.signature import Signature, SignatureStatus, SignerRole


class FakeRegistration:
    """Registry that deduplicates on the idempotency key; optionally fails.

    ``calls`` records every successful invocation, ``receipts`` every
    distinct registration.
    """

    def __init__(self):
        self.calls = []
        self.keys = []
        self.receipts = {}
        self.fail_with: Exception | None = None

    def register(self, document_version_id, snapshot, idempotency_key):
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append((document_version_id, snapshot))
        self.keys.append(idempotency_key)
        if idempotency_key not in self.receipts:
            self.receipts[idempotency_key] = RegistrationReceipt(
                registration_id=f"0xreg{len(self.receipts) + 1:04d}",
                registered_at=datetime(2024, 11, 5, 9, 0, tzinfo=timezone.utc),
            )
        return self.receipts[idempotency_key]


class FakeNotifier:
    """Collects delivered notifications; optionally fails every delivery."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, notification):
        if self.fail:
            raise RuntimeError("mail relay unreachable")
        self.sent.append(notification)


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        try:
            result = fn(*args, **kwargs)
        except BaseException as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)
        return future


def slot(version, role):
    """The signature of ``version`` holding ``role``."""
    return next(s for s in version.signatures if s.role == role)


def make_signature(
    role=SignerRole.ADVISOR,
    approver_id=None,
    status=SignatureStatus.PENDING,
    justification=None,
    timestamp=None,
):
    """Build a Signature; rejected ones get a default justification."""
    if status == SignatureStatus.REJECTED and justification is None:
        justification = "needs changes"
    return Signature(
        signature_id=uuid4(),
        role=role,
        approver_id=approver_id,
        status=status,
        justification=justification,
        timestamp=timestamp,
    )
