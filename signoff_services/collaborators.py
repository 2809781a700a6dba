"""
signoff_services.collaborators -- External collaborator boundaries.

Responsibility:
    Declares the registration and notification collaborators the workflow
    talks to, and dispatches notifications without blocking transitions.

Architecture position:
    Services layer.  Implementations of the protocols live outside this
    project (ledger registration, e-mail delivery); tests inject fakes.

Invariants enforced:
    - Notification dispatch is fire-and-forget: ``dispatch`` returns as soon
      as the notifications are queued.
    - A failed delivery is logged as NOTIFICATION_FAILED and never raised.
    - The caller's LogContext travels with each delivery.

Failure modes:
    - None raised from ``dispatch``.  Delivery failures are reported through
      the ``notification_failed`` log record only.
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Protocol, runtime_checkable
from uuid import UUID

from signoff_kernel.domain.document import (
    Notification,
    RegistrationReceipt,
    RegistrationSnapshot,
)
from signoff_kernel.exceptions import NotificationFailedError
from signoff_kernel.logging_config import get_logger

logger = get_logger("services.notifications")


@runtime_checkable
class RegistrationCollaborator(Protocol):
    """Writes the final signature snapshot to the external registry.

    Registration runs before the approving transaction commits, so a failed
    commit followed by a retry calls ``register`` again for the same version.
    Implementations MUST deduplicate on ``idempotency_key``: a repeated key
    returns the receipt of the first registration and writes nothing.
    """

    def register(
        self,
        document_version_id: UUID,
        snapshot: RegistrationSnapshot,
        idempotency_key: str,
    ) -> RegistrationReceipt: ...


@runtime_checkable
class NotificationCollaborator(Protocol):
    """Delivers one notification.  May raise; the dispatcher absorbs it."""

    def send(self, notification: Notification) -> None: ...


class NotificationDispatcher:
    """Hands notifications to the notification collaborator off-thread.

    Args:
        notifier: The collaborator that performs delivery.
        executor: Optional executor.  When omitted a ``ThreadPoolExecutor``
            owned by the dispatcher is created.
        max_workers: Pool size for the owned executor.
    """

    def __init__(
        self,
        notifier: NotificationCollaborator,
        executor: Executor | None = None,
        max_workers: int = 2,
    ) -> None:
        self._notifier = notifier
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="signoff-notify",
        )

    def dispatch(self, notifications: Iterable[Notification]) -> list[Future]:
        """Queue every notification for delivery and return immediately."""
        futures: list[Future] = []
        for notification in notifications:
            ctx = contextvars.copy_context()
            futures.append(self._executor.submit(ctx.run, self._deliver, notification))
        return futures

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def _deliver(self, notification: Notification) -> bool:
        try:
            self._notifier.send(notification)
        except Exception as exc:
            error = NotificationFailedError(
                kind=notification.kind.value,
                document_version_id=str(notification.document_version_id),
                detail=str(exc),
            )
            logger.warning(
                "notification_failed",
                extra={
                    "error_code": error.code,
                    "kind": error.kind,
                    "document_version_id": error.document_version_id,
                    "recipients": [str(r) for r in notification.recipients],
                    "detail": error.detail,
                },
            )
            return False

        logger.info(
            "notification_sent",
            extra={
                "kind": notification.kind.value,
                "document_version_id": str(notification.document_version_id),
                "recipient_count": len(notification.recipients),
            },
        )
        return True
