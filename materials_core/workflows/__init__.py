# materials_core/workflows/__init__.py
"""
Public workflow API.

The controller and its tables are pure Python. Database-facing pieces live
in `executor`, `evidence`, `guards` and `divergence` and are imported from
their modules directly.
"""

from __future__ import annotations

from .controller import (
    TransitionResult,
    allowed_decisions,
    attempt_transition,
    authorized_roles,
    can_record_evidence,
    check_invariants,
    force_set_state,
    is_terminal,
    next_stage,
    previous_stage,
    required_evidence,
    role_can_act,
    stage_index,
    visible_stages,
    workflow_definition,
)
from .errors import (
    InvalidDecision,
    InvalidState,
    MissingEvidence,
    Terminal,
    TransitionError,
    Unauthorized,
    VersionConflict,
)
from .rules import (
    ACCEPT,
    DECISIONS,
    EVIDENCE_KINDS,
    REJECT,
    ROLES,
    STAGE_ORDER,
    STATUSES,
    normalize_decision,
    normalize_role,
    normalize_stage,
    normalize_status,
)


__all__ = [
    "ACCEPT",
    "REJECT",
    "DECISIONS",
    "EVIDENCE_KINDS",
    "ROLES",
    "STAGE_ORDER",
    "STATUSES",
    "TransitionResult",
    "TransitionError",
    "Unauthorized",
    "Terminal",
    "MissingEvidence",
    "InvalidDecision",
    "InvalidState",
    "VersionConflict",
    "attempt_transition",
    "force_set_state",
    "allowed_decisions",
    "authorized_roles",
    "can_record_evidence",
    "check_invariants",
    "is_terminal",
    "next_stage",
    "previous_stage",
    "required_evidence",
    "role_can_act",
    "stage_index",
    "visible_stages",
    "workflow_definition",
    "normalize_role",
    "normalize_stage",
    "normalize_status",
    "normalize_decision",
]
