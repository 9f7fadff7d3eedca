"""
Authoritative lifecycle rules for materials.

Defines:
- Stage order and status universe
- Roles and role normalization
- Who may act on each stage
- Which stages may reject
- Evidence required before leaving a stage
- Read-side stage visibility per role
"""

from __future__ import annotations

import re
from typing import Dict, FrozenSet, Optional, Tuple


# ===============================================================
# STAGES
# ===============================================================
RECEIVED = "received"
TESTING = "testing"
REVIEW = "review"
QC = "qc"
ACCOUNTING = "accounting"
FINAL_APPROVAL = "final_approval"
COMPLETED = "completed"

STAGE_ORDER: Tuple[str, ...] = (
    RECEIVED,
    TESTING,
    REVIEW,
    QC,
    ACCOUNTING,
    FINAL_APPROVAL,
    COMPLETED,
)

STAGE_LABELS: Dict[str, str] = {
    RECEIVED: "Received",
    TESTING: "Testing",
    REVIEW: "Manager Review",
    QC: "Quality Control",
    ACCOUNTING: "Accounting",
    FINAL_APPROVAL: "Final Approval",
    COMPLETED: "Completed",
}

TERMINAL_STAGES: FrozenSet[str] = frozenset({COMPLETED})

# Stages from which the acting role may send the material one step back.
REJECTABLE_STAGES: FrozenSet[str] = frozenset(
    {TESTING, REVIEW, QC, ACCOUNTING, FINAL_APPROVAL}
)


# ===============================================================
# STATUSES
# ===============================================================
PENDING = "pending"
IN_PROGRESS = "in_progress"
REJECTED = "rejected"
STATUS_COMPLETED = "completed"

STATUSES: Tuple[str, ...] = (PENDING, IN_PROGRESS, REJECTED, STATUS_COMPLETED)


# ===============================================================
# DECISIONS
# ===============================================================
ACCEPT = "accept"
REJECT = "reject"

DECISIONS: Tuple[str, ...] = (ACCEPT, REJECT)

DECISION_ALIASES: Dict[str, str] = {
    "ACCEPT": ACCEPT,
    "APPROVE": ACCEPT,
    "APPROVED": ACCEPT,
    "SUBMIT": ACCEPT,
    "REJECT": REJECT,
    "REJECTED": REJECT,
}


# ===============================================================
# ROLES
# ===============================================================
SECRETARY = "secretary"
TESTER = "tester"
MANAGER = "manager"
QC_ROLE = "qc"
ACCOUNTING_ROLE = "accounting"
UNCLE = "uncle"

ROLES: Tuple[str, ...] = (SECRETARY, TESTER, MANAGER, QC_ROLE, ACCOUNTING_ROLE, UNCLE)

# Normalize user-provided / DB roles into canonical roles.
#
# Examples handled:
# - "Tester" -> tester
# - "Lab Technician" -> tester
# - "QA" -> qc
# - "Admin" -> uncle
ROLE_ALIASES: Dict[str, str] = {
    "SECRETARY": SECRETARY,
    "RECEPTION": SECRETARY,
    "RECEPTIONIST": SECRETARY,
    "TESTER": TESTER,
    "TECHNICIAN": TESTER,
    "LAB_TECH": TESTER,
    "LAB_TECHNICIAN": TESTER,
    "MANAGER": MANAGER,
    "LAB_MANAGER": MANAGER,
    "QC": QC_ROLE,
    "QA": QC_ROLE,
    "QUALITY_CONTROL": QC_ROLE,
    "ACCOUNTING": ACCOUNTING_ROLE,
    "ACCOUNTANT": ACCOUNTING_ROLE,
    "UNCLE": UNCLE,
    "ADMIN": UNCLE,
    "SUPERUSER": UNCLE,
}


def normalize_role(role: Optional[str]) -> str:
    """
    Canonicalize role strings so that small formatting differences
    do not break permission logic.

    Unknown roles are returned lowercased; they authorize nothing.
    """
    r = (role or "").strip().upper()
    if not r:
        return ""

    r = re.sub(r"[\s\-]+", "_", r)
    r = re.sub(r"_+", "_", r)

    return ROLE_ALIASES.get(r, r.lower())


def normalize_stage(stage: Optional[str]) -> str:
    s = (stage or "").strip().lower()
    return re.sub(r"[\s\-]+", "_", s)


def normalize_status(status: Optional[str]) -> str:
    s = (status or "").strip().lower()
    return re.sub(r"[\s\-]+", "_", s)


def normalize_decision(decision: Optional[str]) -> str:
    d = (decision or "").strip().upper()
    return DECISION_ALIASES.get(d, d.lower())


# ===============================================================
# TRANSITION AUTHORIZATION
# ===============================================================
# Roles allowed to move a material OUT of the given stage. uncle is
# appended below so the table stays readable.
_STAGE_ACTORS: Dict[str, FrozenSet[str]] = {
    RECEIVED: frozenset({TESTER}),
    TESTING: frozenset({MANAGER}),
    REVIEW: frozenset({QC_ROLE}),
    QC: frozenset({ACCOUNTING_ROLE}),
    ACCOUNTING: frozenset({SECRETARY}),
    FINAL_APPROVAL: frozenset({SECRETARY}),
    COMPLETED: frozenset(),
}

STAGE_ACTORS: Dict[str, FrozenSet[str]] = {
    stage: (roles | {UNCLE}) if stage not in TERMINAL_STAGES else roles
    for stage, roles in _STAGE_ACTORS.items()
}


# ===============================================================
# EVIDENCE
# ===============================================================
EVIDENCE_TEST = "test"
EVIDENCE_QC_INSPECTION = "qc_inspection"
EVIDENCE_QUOTE = "quote"
EVIDENCE_FINAL_APPROVAL = "final_approval"
EVIDENCE_PAYMENT = "payment"
EVIDENCE_CERTIFICATE = "certificate"

EVIDENCE_KINDS: Tuple[str, ...] = (
    EVIDENCE_TEST,
    EVIDENCE_QC_INSPECTION,
    EVIDENCE_QUOTE,
    EVIDENCE_FINAL_APPROVAL,
    EVIDENCE_PAYMENT,
    EVIDENCE_CERTIFICATE,
)

# Evidence that must exist before an accept may leave the stage.
# Hard gate: a missing record refuses the transition.
REQUIRED_EVIDENCE: Dict[str, str] = {
    RECEIVED: EVIDENCE_TEST,
    TESTING: EVIDENCE_TEST,
    REVIEW: EVIDENCE_QC_INSPECTION,
    QC: EVIDENCE_QUOTE,
    ACCOUNTING: EVIDENCE_FINAL_APPROVAL,
    FINAL_APPROVAL: EVIDENCE_PAYMENT,
}

# Roles allowed to record each kind of evidence.
EVIDENCE_ROLES: Dict[str, FrozenSet[str]] = {
    EVIDENCE_TEST: frozenset({TESTER, UNCLE}),
    EVIDENCE_QC_INSPECTION: frozenset({QC_ROLE, UNCLE}),
    EVIDENCE_QUOTE: frozenset({ACCOUNTING_ROLE, UNCLE}),
    EVIDENCE_FINAL_APPROVAL: frozenset({SECRETARY, UNCLE}),
    EVIDENCE_PAYMENT: frozenset({SECRETARY, UNCLE}),
    EVIDENCE_CERTIFICATE: frozenset({TESTER, MANAGER, QC_ROLE, UNCLE}),
}


# ===============================================================
# READ VISIBILITY
# ===============================================================
STAGE_VISIBILITY: Dict[str, FrozenSet[str]] = {
    SECRETARY: frozenset({RECEIVED, COMPLETED}),
    TESTER: frozenset({RECEIVED, TESTING}),
    MANAGER: frozenset({TESTING, REVIEW}),
    QC_ROLE: frozenset({REVIEW, QC}),
    ACCOUNTING_ROLE: frozenset({QC, ACCOUNTING}),
    UNCLE: frozenset(STAGE_ORDER),
}

# Roles allowed to register new materials.
REGISTRAR_ROLES: FrozenSet[str] = frozenset({SECRETARY, UNCLE})

# Quotes carry pricing; only these roles may read them.
QUOTE_READER_ROLES: FrozenSet[str] = frozenset({ACCOUNTING_ROLE, UNCLE})


__all__ = [
    "STAGE_ORDER",
    "STAGE_LABELS",
    "TERMINAL_STAGES",
    "REJECTABLE_STAGES",
    "STATUSES",
    "DECISIONS",
    "ROLES",
    "STAGE_ACTORS",
    "EVIDENCE_KINDS",
    "REQUIRED_EVIDENCE",
    "EVIDENCE_ROLES",
    "STAGE_VISIBILITY",
    "REGISTRAR_ROLES",
    "QUOTE_READER_ROLES",
    "normalize_role",
    "normalize_stage",
    "normalize_status",
    "normalize_decision",
]
