"""
Pure sign-off engines.

Signer Resolution, the Aggregation Engine and the Evaluation Gate.  No I/O,
no clock, no database: every function works on domain value objects only.
"""

from signoff_engines.aggregation import (
    aggregate_status,
    build_aggregate_view,
    document_status,
    progress,
)
from signoff_engines.evaluation_gate import (
    GateDecision,
    assert_can_evaluate,
    check_evaluation,
    my_pending_signature,
)
from signoff_engines.signer_resolution import (
    display_signers,
    merge_logical_signers,
    pending_roles_label,
    resolve_signers,
)

__all__ = [
    "GateDecision",
    "aggregate_status",
    "assert_can_evaluate",
    "build_aggregate_view",
    "check_evaluation",
    "display_signers",
    "document_status",
    "merge_logical_signers",
    "my_pending_signature",
    "pending_roles_label",
    "progress",
    "resolve_signers",
]
