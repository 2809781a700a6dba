"""
Deterministic hashing utilities.

The snapshot handed to the registration collaborator is hashed here so the
same final signature set always yields the same digest, whatever order the
signatures were loaded in.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for types not natively supported.

    Raises:
        TypeError: If object type is not supported.
    """
    if isinstance(obj, Decimal):
        # Normalize so 9.50 and 9.5 hash the same
        return str(obj.normalize())
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: dict | list | Any) -> str:
    """
    Convert data to canonical JSON string.

    Keys are sorted, whitespace is stripped, and Decimal/datetime/UUID/Enum
    values are rendered consistently.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def hash_payload(payload: dict) -> str:
    """Hex-encoded SHA-256 of the canonical JSON form of ``payload``."""
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hash_signature_snapshot(
    document_version_id: UUID,
    content_hash: str | None,
    signatures: Iterable[Any],
) -> str:
    """
    Compute the digest of a final signature snapshot.

    Args:
        document_version_id: Version being registered.
        content_hash: Hash of the document file, if known.
        signatures: ``Signature`` objects (anything with the same fields).

    Returns:
        Hex-encoded SHA-256 hash.
    """
    rows = sorted(
        (
            {
                "signature_id": sig.signature_id,
                "role": sig.role,
                "approver_id": sig.approver_id,
                "status": sig.status,
                "justification": sig.justification,
                "timestamp": sig.timestamp,
            }
            for sig in signatures
        ),
        key=lambda row: str(row["signature_id"]),
    )
    return hash_payload({
        "document_version_id": document_version_id,
        "content_hash": content_hash,
        "signatures": rows,
    })
