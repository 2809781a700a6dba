"""Kernel services: flush-only writers of the sign-off tables."""

from signoff_kernel.services.signature_store import SaveResult, SignatureStore

__all__ = ["SaveResult", "SignatureStore"]
