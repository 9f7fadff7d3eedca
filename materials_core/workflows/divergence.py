# materials_core/workflows/divergence.py
"""
Stale-stage detection.

Recording evidence and moving the material are two separate requests. If
the second one never lands, the material keeps its old stage while the
evidence for leaving it already exists. The scanner surfaces those
materials to operators as WorkflowAlert rows; it never moves them itself.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from materials_core.models import Material, WorkflowAlert, WorkflowTransition

from .evidence import latest_evidence_at
from .rules import REQUIRED_EVIDENCE, TERMINAL_STAGES


logger = logging.getLogger(__name__)


def _grace() -> timedelta:
    minutes = int(getattr(settings, "STALE_STAGE_GRACE_MINUTES", 30))
    return timedelta(minutes=max(minutes, 0))


def stage_entered_at(material):
    """
    When the material entered its current stage.
    WorkflowTransition is the single source of truth; a material that
    never moved entered its stage at creation.
    """
    t = (
        WorkflowTransition.objects.filter(material=material, to_stage=material.stage)
        .order_by("-created_at", "-id")
        .first()
    )
    return t.created_at if t else material.created_at


def resolve_open_alerts(*, material, stage: str, now=None) -> int:
    """
    Resolve unresolved alerts for this material at the given stage.
    Returns number of rows updated.
    """
    now = now or timezone.now()
    return WorkflowAlert.objects.filter(
        material=material,
        stage=stage,
        resolved_at__isnull=True,
    ).update(resolved_at=now)


def check_stale_stage(material, *, now=None, grace: Optional[timedelta] = None) -> Optional[WorkflowAlert]:
    """
    Create an open alert if `material` has evidence to leave its stage
    that is older than the grace period. Idempotent per (material, stage).
    """
    now = now or timezone.now()
    grace = _grace() if grace is None else grace

    if material.stage in TERMINAL_STAGES:
        return None

    kind = REQUIRED_EVIDENCE.get(material.stage)
    if not kind:
        return None

    entered_at = stage_entered_at(material)
    recorded_at = latest_evidence_at(material, kind, since=entered_at)
    if recorded_at is None or now - recorded_at <= grace:
        return None

    with transaction.atomic():
        if WorkflowAlert.objects.filter(
            material=material,
            stage=material.stage,
            resolved_at__isnull=True,
        ).exists():
            return None

        alert = WorkflowAlert.objects.create(
            material=material,
            stage=material.stage,
            evidence_kind=kind,
            message=(
                f"Material {material.pk} has a {kind} record from {recorded_at.isoformat()} "
                f"but is still at stage '{material.stage}'."
            ),
            meta={
                "entered_at": entered_at.isoformat() if entered_at else None,
                "evidence_at": recorded_at.isoformat(),
                "status": material.status,
                "version": material.version,
                "grace_seconds": int(grace.total_seconds()),
            },
        )

    logger.warning("Stale stage detected: %s", alert.message)
    return alert


def detect_stale_stages(*, now=None, grace: Optional[timedelta] = None) -> int:
    """
    Scan all non-terminal materials.

    Returns:
        int: number of newly created alerts
    """
    now = now or timezone.now()
    created = 0

    qs = Material.objects.exclude(stage__in=TERMINAL_STAGES).order_by("received_at")
    for material in qs.iterator():
        if check_stale_stage(material, now=now, grace=grace):
            created += 1

    logger.info("Stale-stage scan finished: %d new alert(s)", created)
    return created
