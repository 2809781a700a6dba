"""ORM models. Importing this package registers every table on ``Base.metadata``."""

from signoff_kernel.models.document_version import DocumentVersionModel, SignatureModel
from signoff_kernel.models.signature_event import SignatureEventModel

__all__ = [
    "DocumentVersionModel",
    "SignatureEventModel",
    "SignatureModel",
]
