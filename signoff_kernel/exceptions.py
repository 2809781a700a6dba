"""
Typed Exception Hierarchy for the Sign-off Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A blocked approval has to be explained to the person who tried it. The UI
cannot parse message strings to find out whether the document is "waiting on
other approvals" or "blocked by a rejection", so:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        executor.approve(version_id, signature_id, actor)
    except WaitingOnOtherApprovalsError as e:
        api_response(code=e.code, pending=e.pending_signature_ids)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SignoffKernelError (base)
    |
    +-- WorkflowValidationError            caller-correctable, surfaced verbatim
    |   +-- EvaluationRefusedError
    |   |   +-- NotAnAssignedSignerError
    |   |   +-- BlockedByExistingRejectionError
    |   |   +-- WaitingOnOtherApprovalsError
    |   +-- InvalidTransitionError
    |       +-- SignatureNotFoundError
    |       +-- MissingJustificationError
    |       +-- NotRejectedError
    |       +-- InvalidSourceStateError
    |       +-- DuplicateRoleSlotError
    |       +-- VersionSupersededError
    |
    +-- DocumentVersionNotFoundError
    |
    +-- ConcurrencyError
    |   +-- ConflictRetryError              re-fetch and retry (caller's job)
    |
    +-- InfrastructureError
    |   +-- PersistenceUnavailableError     fatal for the current request
    |
    +-- CollaboratorError
    |   +-- NotificationFailedError         never fails a transition, logged only
    |   +-- RegistrationFailedError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                          | When Raised
--------------|-------------------------------|-----------------------------------
Evaluation    | NOT_AN_ASSIGNED_SIGNER        | Actor has no pending signature
              | BLOCKED_BY_EXISTING_REJECTION | Coordinator acting during rejection
              | WAITING_ON_OTHER_APPROVALS    | Coordinator acting before others
--------------|-------------------------------|-----------------------------------
Transition    | INVALID_TRANSITION            | Ledger primitive refused
              | SIGNATURE_NOT_FOUND           | Signature id not on the version
              | MISSING_JUSTIFICATION         | Reject / replace without a reason
              | NOT_REJECTED                  | Reconsidering a non-rejected slot
              | INVALID_SOURCE_STATE          | Replacing a still-pending version
              | DUPLICATE_ROLE_SLOT           | Second slot for the same role
              | VERSION_SUPERSEDED            | Acting on an inactive version
--------------|-------------------------------|-----------------------------------
Lookup        | DOCUMENT_VERSION_NOT_FOUND    | Version id does not exist
--------------|-------------------------------|-----------------------------------
Concurrency   | CONFLICT_RETRY                | Signature set changed under caller
--------------|-------------------------------|-----------------------------------
Infra         | PERSISTENCE_UNAVAILABLE       | Database unreachable
--------------|-------------------------------|-----------------------------------
Collaborator  | NOTIFICATION_FAILED           | Notification delivery failed
              | REGISTRATION_FAILED           | Ledger registration failed
--------------|-------------------------------|-----------------------------------
Immutability  | IMMUTABILITY_VIOLATION        | Editing signature history
"""


class SignoffKernelError(Exception):
    """
    Base exception for all sign-off kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "SIGNOFF_KERNEL_ERROR"


# Validation errors (caller-correctable)


class WorkflowValidationError(SignoffKernelError):
    """Base for errors the caller can fix by changing its request."""

    code: str = "WORKFLOW_VALIDATION_ERROR"


class EvaluationRefusedError(WorkflowValidationError):
    """The Evaluation Gate refused to let the actor approve or reject."""

    code: str = "EVALUATION_REFUSED"

    def __init__(self, actor_id: str, document_version_id: str | None, reason: str):
        self.actor_id = actor_id
        self.document_version_id = document_version_id
        self.reason = reason
        super().__init__(reason)


class NotAnAssignedSignerError(EvaluationRefusedError):
    """Actor has no pending signature on the document version."""

    code: str = "NOT_AN_ASSIGNED_SIGNER"

    def __init__(
        self,
        actor_id: str,
        document_version_id: str | None = None,
        signature_id: str | None = None,
    ):
        self.signature_id = signature_id
        target = f" (signature {signature_id})" if signature_id else ""
        super().__init__(
            actor_id,
            document_version_id,
            f"Actor {actor_id} has no pending signature to evaluate{target}",
        )


class BlockedByExistingRejectionError(EvaluationRefusedError):
    """Coordinator cannot evaluate while another signature is rejected."""

    code: str = "BLOCKED_BY_EXISTING_REJECTION"

    def __init__(
        self,
        actor_id: str,
        document_version_id: str | None,
        rejected_signature_ids: list[str],
    ):
        self.rejected_signature_ids = rejected_signature_ids
        super().__init__(
            actor_id,
            document_version_id,
            "Waiting for the rejection to be resolved before evaluating",
        )


class WaitingOnOtherApprovalsError(EvaluationRefusedError):
    """Coordinator evaluates last, after every other signer approved."""

    code: str = "WAITING_ON_OTHER_APPROVALS"

    def __init__(
        self,
        actor_id: str,
        document_version_id: str | None,
        pending_signature_ids: list[str],
    ):
        self.pending_signature_ids = pending_signature_ids
        super().__init__(
            actor_id,
            document_version_id,
            f"Waiting on other approvals before evaluating "
            f"({len(pending_signature_ids)} pending)",
        )


class InvalidTransitionError(WorkflowValidationError):
    """A signature or document transition is not legal in its current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class SignatureNotFoundError(InvalidTransitionError):
    """Signature id does not exist on the document version."""

    code: str = "SIGNATURE_NOT_FOUND"

    def __init__(self, signature_id: str):
        self.signature_id = signature_id
        super().__init__(f"Signature not found: {signature_id}")


class MissingJustificationError(InvalidTransitionError):
    """A rejection (or a replacement) requires a non-empty reason."""

    code: str = "MISSING_JUSTIFICATION"

    def __init__(self, field: str = "justification"):
        self.field = field
        super().__init__(f"A non-empty {field} is required")


class NotRejectedError(InvalidTransitionError):
    """Reconsideration is only legal on a rejected signature."""

    code: str = "NOT_REJECTED"

    def __init__(self, signature_id: str, current_status: str):
        self.signature_id = signature_id
        self.current_status = current_status
        super().__init__(
            f"Signature {signature_id} is {current_status}, not REJECTED"
        )


class InvalidSourceStateError(InvalidTransitionError):
    """A document version cannot be replaced from its current aggregate status."""

    code: str = "INVALID_SOURCE_STATE"

    def __init__(self, document_version_id: str, current_status: str):
        self.document_version_id = document_version_id
        self.current_status = current_status
        super().__init__(
            f"Document version {document_version_id} is {current_status} "
            "and cannot be replaced yet"
        )


class DuplicateRoleSlotError(InvalidTransitionError):
    """At most one signature per role slot on a document version."""

    code: str = "DUPLICATE_ROLE_SLOT"

    def __init__(self, role: str):
        self.role = role
        super().__init__(f"A signature slot for role {role} already exists")


class VersionSupersededError(InvalidTransitionError):
    """The document version was replaced and no longer accepts transitions."""

    code: str = "VERSION_SUPERSEDED"

    def __init__(self, document_version_id: str, superseded_by: str | None = None):
        self.document_version_id = document_version_id
        self.superseded_by = superseded_by
        super().__init__(
            f"Document version {document_version_id} has been superseded"
        )


# Lookup errors


class DocumentVersionNotFoundError(SignoffKernelError):
    """Document version with given ID was not found."""

    code: str = "DOCUMENT_VERSION_NOT_FOUND"

    def __init__(self, document_version_id: str):
        self.document_version_id = document_version_id
        super().__init__(f"Document version not found: {document_version_id}")


# Concurrency errors


class ConcurrencyError(SignoffKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConflictRetryError(ConcurrencyError):
    """The signature set changed since the caller read it."""

    code: str = "CONFLICT_RETRY"

    def __init__(
        self,
        document_version_id: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        self.document_version_id = document_version_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Signature set of {document_version_id} was modified by another "
            f"transaction (expected version {expected_version}, "
            f"found {actual_version}); re-fetch and retry"
        )


# Infrastructure errors


class InfrastructureError(SignoffKernelError):
    """Base exception for infrastructure failures."""

    code: str = "INFRASTRUCTURE_ERROR"


class PersistenceUnavailableError(InfrastructureError):
    """The signature store could not be reached. Nothing was written."""

    code: str = "PERSISTENCE_UNAVAILABLE"

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Persistence unavailable during {operation}: {detail}")


# Collaborator errors


class CollaboratorError(SignoffKernelError):
    """Base exception for external collaborator failures."""

    code: str = "COLLABORATOR_ERROR"


class NotificationFailedError(CollaboratorError):
    """A notification could not be delivered. Reported, never raised to callers."""

    code: str = "NOTIFICATION_FAILED"

    def __init__(self, kind: str, document_version_id: str, detail: str):
        self.kind = kind
        self.document_version_id = document_version_id
        self.detail = detail
        super().__init__(
            f"Notification {kind} for {document_version_id} failed: {detail}"
        )


class RegistrationFailedError(CollaboratorError):
    """The registration collaborator failed; the approving transition is rolled back."""

    code: str = "REGISTRATION_FAILED"

    def __init__(self, document_version_id: str, detail: str):
        self.document_version_id = document_version_id
        self.detail = detail
        super().__init__(
            f"Registration of {document_version_id} failed: {detail}"
        )


# Immutability errors


class ImmutabilityViolationError(SignoffKernelError):
    """Attempted to modify an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
