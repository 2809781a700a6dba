"""
signoff_services.workflow_executor -- One transaction per transition.

Responsibility:
    Runs each workflow transition as a single atomic unit: opens a session,
    lets ``SignatureWorkflowService`` read (under a row lock), validate and
    write, commits, and only then hands the resulting notifications to the
    ``NotificationDispatcher``.

Architecture position:
    Services layer.  The only component in the project that commits.

Invariants enforced:
    - All-or-nothing: any failure rolls the whole transition back.
    - Serialization is per document version (row lock on the version),
      never global.  Different signers approving different slots of the
      same version both succeed.
    - A concurrent write detected at flush time surfaces as
      ConflictRetryError; the executor never retries.
    - Notifications are dispatched after commit and never fail the
      transition, even when the dispatcher itself refuses them.

Failure modes:
    - Every SignoffKernelError raised by the service propagates unchanged.
    - ConflictRetryError for ``StaleDataError`` and ``IntegrityError``.
    - PersistenceUnavailableError for ``OperationalError`` and
      ``InterfaceError``; nothing is written.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from signoff_config import WorkflowConfig, get_active_config
from signoff_kernel.domain.clock import Clock, SystemClock
from signoff_kernel.domain.document import (
    ActorContext,
    DocumentType,
    TransitionResult,
)
from signoff_kernel.domain.signature import SignerRole
from signoff_kernel.exceptions import (
    ConflictRetryError,
    NotificationFailedError,
    PersistenceUnavailableError,
    SignoffKernelError,
)
from signoff_kernel.logging_config import LogContext, get_logger
from signoff_kernel.services.signature_store import SignatureStore
from signoff_services.collaborators import (
    NotificationCollaborator,
    NotificationDispatcher,
    RegistrationCollaborator,
)
from signoff_services.workflow_service import SignatureWorkflowService

logger = get_logger("services.workflow_executor")

TRACE_TYPE_SIGNOFF_TRANSITION = "SIGNOFF_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_REFUSED = "refused"
OUTCOME_CONFLICT = "conflict"
OUTCOME_UNAVAILABLE = "unavailable"


class WorkflowExecutor:
    """Transaction-owning facade over ``SignatureWorkflowService``.

    Args:
        session_factory: Callable returning a new ``Session``
            (``signoff_kernel.db.get_session_factory()``).
        registration: Registration collaborator.
        notifier: Notification collaborator.  Ignored when ``dispatcher``
            is given.
        config: Workflow configuration; defaults to ``get_active_config()``.
        clock: Time source; defaults to the system clock.
        dispatcher: Pre-built dispatcher (tests pass one with an inline
            executor).
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        registration: RegistrationCollaborator,
        notifier: NotificationCollaborator | None = None,
        config: WorkflowConfig | None = None,
        clock: Clock | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._registration = registration
        self._config = config or get_active_config()
        self._clock = clock or SystemClock()
        if dispatcher is None:
            if notifier is None:
                raise ValueError("Either a notifier or a dispatcher is required")
            dispatcher = NotificationDispatcher(
                notifier,
                max_workers=self._config.notifications.dispatch_workers,
            )
        self._dispatcher = dispatcher

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
        return self._run(
            "submit_document",
            actor,
            None,
            None,
            lambda svc: svc.submit_document(
                document_type,
                assignments,
                actor,
                lineage_id=lineage_id,
                content_ref=content_ref,
                content_hash=content_hash,
                final_grade=final_grade,
            ),
        )

    def approve(
        self,
        document_version_id: UUID,
        signature_id: UUID,
        actor: ActorContext,
        justification: str | None = None,
        expected_version: int | None = None,
    ) -> TransitionResult:
        return self._run(
            "approve",
            actor,
            document_version_id,
            signature_id,
            lambda svc: svc.approve(
                document_version_id, signature_id, actor,
                justification=justification,
                expected_version=expected_version,
            ),
        )

    def reject(
        self,
        document_version_id: UUID,
        signature_id: UUID,
        actor: ActorContext,
        justification: str,
        expected_version: int | None = None,
    ) -> TransitionResult:
        return self._run(
            "reject",
            actor,
            document_version_id,
            signature_id,
            lambda svc: svc.reject(
                document_version_id, signature_id, actor,
                justification=justification,
                expected_version=expected_version,
            ),
        )

    def request_reconsideration(
        self,
        document_version_id: UUID,
        signature_id: UUID,
        actor: ActorContext,
        reason: str,
        expected_version: int | None = None,
    ) -> TransitionResult:
        return self._run(
            "request_reconsideration",
            actor,
            document_version_id,
            signature_id,
            lambda svc: svc.request_reconsideration(
                document_version_id, signature_id, actor,
                reason=reason,
                expected_version=expected_version,
            ),
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
        return self._run(
            "replace_with_new_version",
            actor,
            document_version_id,
            None,
            lambda svc: svc.replace_with_new_version(
                document_version_id, actor,
                change_reason=change_reason,
                content_ref=content_ref,
                content_hash=content_hash,
                final_grade=final_grade,
                expected_version=expected_version,
            ),
        )

    def assign_approver(
        self,
        document_version_id: UUID,
        signature_id: UUID,
        approver_id: UUID,
        actor: ActorContext,
        expected_version: int | None = None,
    ) -> TransitionResult:
        return self._run(
            "assign_approver",
            actor,
            document_version_id,
            signature_id,
            lambda svc: svc.assign_approver(
                document_version_id, signature_id, approver_id, actor,
                expected_version=expected_version,
            ),
        )

    def notify_approver(
        self,
        document_version_id: UUID,
        signature_id: UUID,
        actor: ActorContext,
        message: str = "",
    ) -> TransitionResult:
        return self._run(
            "notify_approver",
            actor,
            document_version_id,
            signature_id,
            lambda svc: svc.notify_approver(
                document_version_id, signature_id, actor, message=message,
            ),
        )

    def shutdown(self, wait: bool = True) -> None:
        self._dispatcher.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(
        self,
        action: str,
        actor: ActorContext,
        document_version_id: UUID | None,
        signature_id: UUID | None,
        transition: Callable[[SignatureWorkflowService], TransitionResult],
    ) -> TransitionResult:
        t0 = time.monotonic()
        with LogContext.bind(
            actor_id=actor.actor_id,
            document_version_id=document_version_id,
            signature_id=signature_id,
        ):
            session = self._session_factory()
            try:
                service = SignatureWorkflowService(
                    session,
                    store=SignatureStore(session),
                    registration=self._registration,
                    clock=self._clock,
                    config=self._config,
                )
                result = transition(service)
                session.commit()
            except (StaleDataError, IntegrityError) as exc:
                session.rollback()
                self._trace(action, document_version_id, OUTCOME_CONFLICT, t0, str(exc))
                raise ConflictRetryError(
                    str(document_version_id) if document_version_id else "new",
                ) from exc
            except (OperationalError, InterfaceError) as exc:
                session.rollback()
                self._trace(action, document_version_id, OUTCOME_UNAVAILABLE, t0, str(exc))
                raise PersistenceUnavailableError(action, str(exc.orig or exc)) from exc
            except SignoffKernelError as exc:
                session.rollback()
                self._trace(action, document_version_id, OUTCOME_REFUSED, t0, exc.code)
                raise
            except Exception:
                session.rollback()
                logger.exception("transition_failed", extra={"action": action})
                raise
            finally:
                session.close()

            self._trace(action, result.document_version_id, OUTCOME_SUCCESS, t0, "")

            if result.notifications:
                self._dispatch(result)
        return result

    def _dispatch(self, result: TransitionResult) -> None:
        """Hand notifications over; the transition is already committed."""
        try:
            self._dispatcher.dispatch(result.notifications)
        except Exception as exc:
            for notification in result.notifications:
                logger.warning(
                    "notification_failed",
                    extra={
                        "error_code": NotificationFailedError.code,
                        "kind": notification.kind.value,
                        "document_version_id": str(notification.document_version_id),
                        "recipients": [str(r) for r in notification.recipients],
                        "detail": str(exc),
                    },
                )

    def _trace(
        self,
        action: str,
        document_version_id: UUID | None,
        outcome: str,
        t0: float,
        reason: str,
    ) -> None:
        logger.info(
            "signoff_transition",
            extra={
                "trace_type": TRACE_TYPE_SIGNOFF_TRANSITION,
                "action": action,
                "target_version_id": str(document_version_id) if document_version_id else None,
                "outcome": outcome,
                "reason": reason,
                "duration_ms": round((time.monotonic() - t0) * 1000, 3),
            },
        )
