# materials_core/workflows/evidence.py
"""
Evidence lookup for the lifecycle controller.

The controller is pure and only receives the set of evidence kinds that
exist; this module is the one place that reads them from the database.
"""

from __future__ import annotations

from typing import Dict, Optional, Set

from materials_core.models import EVIDENCE_MODELS, Decision

from .rules import EVIDENCE_FINAL_APPROVAL, EVIDENCE_KINDS, EVIDENCE_QC_INSPECTION


# Inspection-style records only count while the newest one approves.
_APPROVAL_ONLY_KINDS = {EVIDENCE_QC_INSPECTION, EVIDENCE_FINAL_APPROVAL}


def _evidence_queryset(kind: str, material, since=None):
    qs = EVIDENCE_MODELS[kind].objects.filter(material=material)
    if since is not None:
        qs = qs.filter(created_at__gt=since)
    return qs


def _satisfying_record(kind: str, material, since=None):
    """
    The record that satisfies `kind` for `material`, or None.

    Plain kinds: the newest record of that kind.
    Approval kinds: the newest record, and only if its decision is approve;
    a later rejection withdraws any earlier approval.
    """
    record = (
        _evidence_queryset(kind, material, since)
        .order_by("-created_at", "-id")
        .first()
    )
    if record is None:
        return None
    if kind in _APPROVAL_ONLY_KINDS and record.decision != Decision.APPROVE:
        return None
    return record


def evidence_for(material, since=None) -> Set[str]:
    """
    Evidence kinds recorded for `material` (optionally after `since`).
    """
    return {
        kind
        for kind in EVIDENCE_KINDS
        if _satisfying_record(kind, material, since) is not None
    }


def evidence_counts(material) -> Dict[str, int]:
    """
    Raw record counts per kind, including rejecting inspections.
    """
    return {
        kind: EVIDENCE_MODELS[kind].objects.filter(material=material).count()
        for kind in EVIDENCE_KINDS
    }


def latest_evidence_at(material, kind: str, since=None) -> Optional[object]:
    record = _satisfying_record(kind, material, since)
    return record.created_at if record else None
