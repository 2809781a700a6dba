"""
Sign-off services.

``WorkflowExecutor`` runs transitions transactionally,
``SignatureWorkflowService`` implements them inside a caller-owned
transaction, and ``DocumentQueryService`` is the read surface.
"""

from signoff_services.collaborators import (
    NotificationCollaborator,
    NotificationDispatcher,
    RegistrationCollaborator,
)
from signoff_services.document_query import DocumentQueryService
from signoff_services.workflow_executor import WorkflowExecutor
from signoff_services.workflow_service import SignatureWorkflowService

__all__ = [
    "DocumentQueryService",
    "NotificationCollaborator",
    "NotificationDispatcher",
    "RegistrationCollaborator",
    "SignatureWorkflowService",
    "WorkflowExecutor",
]
