# materials_core/workflows/controller.py
"""
Material lifecycle controller.

A pure function of (stage, status, role, decision, evidence) to the next
(stage, status) pair. No database access, no side effects: callers persist
the result and create evidence records themselves.
"""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Iterable, List, NamedTuple, Optional

from .errors import (
    InvalidDecision,
    InvalidState,
    MissingEvidence,
    Terminal,
    Unauthorized,
)
from .rules import (
    ACCEPT,
    COMPLETED,
    DECISIONS,
    EVIDENCE_KINDS,
    EVIDENCE_ROLES,
    IN_PROGRESS,
    REJECT,
    REJECTABLE_STAGES,
    REJECTED,
    REQUIRED_EVIDENCE,
    ROLES,
    STAGE_ACTORS,
    STAGE_LABELS,
    STAGE_ORDER,
    STAGE_VISIBILITY,
    STATUS_COMPLETED,
    STATUSES,
    TERMINAL_STAGES,
    UNCLE,
    normalize_decision,
    normalize_role,
    normalize_stage,
    normalize_status,
)


class TransitionResult(NamedTuple):
    stage: str
    status: str


# ===============================================================
# Stage order helpers
# ===============================================================

def is_terminal(stage: str) -> bool:
    return normalize_stage(stage) in TERMINAL_STAGES


def stage_index(stage: str) -> int:
    s = normalize_stage(stage)
    if s not in STAGE_ORDER:
        raise InvalidState(f"Unknown stage: {stage!r}")
    return STAGE_ORDER.index(s)


def next_stage(stage: str) -> Optional[str]:
    idx = stage_index(stage)
    if idx + 1 >= len(STAGE_ORDER):
        return None
    return STAGE_ORDER[idx + 1]


def previous_stage(stage: str) -> Optional[str]:
    idx = stage_index(stage)
    if idx == 0:
        return None
    return STAGE_ORDER[idx - 1]


def authorized_roles(stage: str) -> FrozenSet[str]:
    """
    Roles that may move a material out of `stage`.
    """
    return STAGE_ACTORS.get(normalize_stage(stage), frozenset())


def role_can_act(stage: str, role: str) -> bool:
    return normalize_role(role) in authorized_roles(stage)


def visible_stages(role: str) -> FrozenSet[str]:
    return STAGE_VISIBILITY.get(normalize_role(role), frozenset())


def can_record_evidence(kind: str, role: str) -> bool:
    return normalize_role(role) in EVIDENCE_ROLES.get(kind, frozenset())


def required_evidence(stage: str) -> Optional[str]:
    return REQUIRED_EVIDENCE.get(normalize_stage(stage))


def check_invariants(stage: str, status: str) -> None:
    """
    Raises InvalidState if (stage, status) is not a legal pair.
    """
    s = normalize_stage(stage)
    st = normalize_status(status)

    if s not in STAGE_ORDER:
        raise InvalidState(f"Unknown stage: {stage!r}")
    if st not in STATUSES:
        raise InvalidState(f"Unknown status: {status!r}")

    if (s == COMPLETED) != (st == STATUS_COMPLETED):
        raise InvalidState(
            f"Status '{st}' is not valid at stage '{s}': "
            "status is 'completed' exactly when stage is 'completed'."
        )


# ===============================================================
# Core decision function
# ===============================================================

def attempt_transition(
    stage: str,
    status: str,
    actor_role: str,
    decision: str,
    evidence: Iterable[str] = (),
) -> TransitionResult:
    """
    Decide the next (stage, status) for a material.

    Checks, in order:
      1) known stage, status and decision
      2) terminal stage (every role and decision is refused)
      3) role authorized for the current stage
      4) reject only from a rejectable stage
      5) accept only once the required evidence exists

    `evidence` is the collection of evidence kinds recorded for the
    material. The caller reads it from storage; this function owns none.
    """
    cur = normalize_stage(stage)
    cur_status = normalize_status(status)
    role = normalize_role(actor_role)
    dec = normalize_decision(decision)

    check_invariants(cur, cur_status)

    if dec not in DECISIONS:
        raise InvalidDecision(f"Unknown decision: {decision!r}")

    if cur in TERMINAL_STAGES:
        raise Terminal(f"Material is in terminal stage '{cur}' and cannot be modified.")

    if role not in authorized_roles(cur):
        raise Unauthorized(f"Role '{role or 'none'}' cannot act on stage '{cur}'.")

    if dec == REJECT:
        if cur not in REJECTABLE_STAGES:
            raise InvalidDecision(f"Materials cannot be rejected at stage '{cur}'.")
        return TransitionResult(previous_stage(cur), REJECTED)

    needed = REQUIRED_EVIDENCE.get(cur)
    if needed and needed not in set(evidence or ()):
        raise MissingEvidence(
            f"A {needed.replace('_', ' ')} record is required before leaving stage '{cur}'.",
            missing=[needed],
        )

    target = next_stage(cur)
    result_status = STATUS_COMPLETED if target == COMPLETED else IN_PROGRESS
    return TransitionResult(target, result_status)


def force_set_state(stage: str, status: str, actor_role: str) -> TransitionResult:
    """
    Administrative override. Bypasses the transition table entirely.

    Only uncle may use it, and the target pair must still be a legal pair.
    """
    role = normalize_role(actor_role)
    if role != UNCLE:
        raise Unauthorized(f"Role '{role or 'none'}' cannot override material state.")

    s = normalize_stage(stage)
    st = normalize_status(status)
    check_invariants(s, st)
    return TransitionResult(s, st)


# ===============================================================
# Introspection
# ===============================================================

def allowed_decisions(
    stage: str,
    status: str,
    actor_role: str,
    evidence: Iterable[str] = (),
) -> List[str]:
    """
    Decisions `actor_role` could make right now, given recorded evidence.
    """
    evidence = tuple(evidence or ())
    out: List[str] = []
    for dec in DECISIONS:
        try:
            attempt_transition(stage, status, actor_role, dec, evidence)
        except (Unauthorized, Terminal, InvalidDecision, MissingEvidence):
            continue
        out.append(dec)
    return out


def workflow_definition() -> Dict[str, Any]:
    """
    Stable JSON-serializable definition for UI.
    """
    transitions = {}
    for stage in STAGE_ORDER:
        if stage in TERMINAL_STAGES:
            transitions[stage] = {}
            continue
        entry = {
            ACCEPT: next_stage(stage),
            "roles": sorted(authorized_roles(stage)),
            "required_evidence": REQUIRED_EVIDENCE.get(stage),
        }
        if stage in REJECTABLE_STAGES:
            entry[REJECT] = previous_stage(stage)
        transitions[stage] = entry

    return {
        "stages": [
            {"key": s, "label": STAGE_LABELS[s], "index": i}
            for i, s in enumerate(STAGE_ORDER)
        ],
        "statuses": list(STATUSES),
        "decisions": list(DECISIONS),
        "roles": list(ROLES),
        "terminal_stages": sorted(TERMINAL_STAGES),
        "transitions": transitions,
        "evidence_kinds": list(EVIDENCE_KINDS),
        "evidence_roles": {k: sorted(v) for k, v in EVIDENCE_ROLES.items()},
        "visibility": {
            role: [s for s in STAGE_ORDER if s in stages]
            for role, stages in STAGE_VISIBILITY.items()
        },
    }
