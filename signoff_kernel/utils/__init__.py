"""Kernel utilities."""

from signoff_kernel.utils.hashing import canonicalize_json, hash_signature_snapshot

__all__ = ["canonicalize_json", "hash_signature_snapshot"]
