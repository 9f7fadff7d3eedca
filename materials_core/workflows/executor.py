# materials_core/workflows/executor.py

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from rest_framework import status
from rest_framework.exceptions import APIException, PermissionDenied, ValidationError

from materials_core.models import Material, WorkflowTransition
from materials_core.permissions import resolve_role

from .controller import (
    allowed_decisions,
    attempt_transition,
    force_set_state,
    required_evidence,
    role_can_act,
)
from .divergence import resolve_open_alerts
from .errors import TransitionError, Unauthorized, VersionConflict
from .evidence import evidence_for
from .rules import TERMINAL_STAGES, normalize_decision


logger = logging.getLogger(__name__)


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Material was modified by another request. Reload and retry."
    default_code = "version_conflict"


def _api_error(exc: TransitionError) -> APIException:
    """
    Map controller refusals onto DRF errors. Never fatal: the caller
    shows the reason and stays where it is.
    """
    payload = exc.as_dict()
    if isinstance(exc, Unauthorized):
        return PermissionDenied(payload)
    if isinstance(exc, VersionConflict):
        return Conflict(payload)
    return ValidationError(payload)


def _lock(material) -> Material:
    return Material.objects.select_for_update().get(pk=material.pk)


def _check_version(locked: Material, expected_version: Optional[int]) -> None:
    if expected_version is None:
        return
    if int(expected_version) != locked.version:
        raise _api_error(
            VersionConflict(
                f"Material is at version {locked.version}, "
                f"request was based on version {expected_version}."
            )
        )


def _apply(locked: Material, stage: str, status_value: str, now) -> None:
    # Conditional write: a concurrent writer that got past the lock
    # (e.g. databases without SELECT ... FOR UPDATE) loses here.
    updated = Material.objects.filter(pk=locked.pk, version=locked.version).update(
        stage=stage,
        status=status_value,
        version=F("version") + 1,
        updated_at=now,
    )
    if not updated:
        raise _api_error(
            VersionConflict("Material was modified concurrently. Reload and retry.")
        )


def execute_transition(
    *,
    material,
    user,
    decision: str,
    comment: str = "",
    expected_version: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Run one accept/reject decision on a material and persist the outcome.

    1) resolve the actor role
    2) lock the row and check the optional expected version
    3) gather evidence and ask the controller
    4) write stage/status/version and the transition log atomically
    5) resolve stale-stage alerts for the stage that was left
    """
    role = resolve_role(user)
    decision = normalize_decision(decision)
    now = timezone.now()

    with transaction.atomic():
        locked = _lock(material)
        _check_version(locked, expected_version)

        from_stage, from_status = locked.stage, locked.status

        try:
            result = attempt_transition(
                from_stage,
                from_status,
                role,
                decision,
                evidence_for(locked),
            )
        except TransitionError as exc:
            logger.warning(
                "Refused %s on material %s at %s/%s by %s (%s): %s",
                decision, locked.pk, from_stage, from_status,
                getattr(user, "pk", None), role or "no role", exc.code,
            )
            raise _api_error(exc) from exc

        _apply(locked, result.stage, result.status, now)

        transition = WorkflowTransition.objects.create(
            material=locked,
            from_stage=from_stage,
            from_status=from_status,
            to_stage=result.stage,
            to_status=result.status,
            decision=decision,
            role=role,
            comment=(comment or "").strip(),
            performed_by=user,
        )

        resolved = resolve_open_alerts(material=locked, stage=from_stage, now=now)

    logger.info(
        "Material %s %s: %s/%s -> %s/%s by %s (%s)",
        locked.pk, decision, from_stage, from_status,
        result.stage, result.status, getattr(user, "pk", None), role,
    )

    return {
        "id": str(locked.pk),
        "decision": decision,
        "from": {"stage": from_stage, "status": from_status},
        "to": {"stage": result.stage, "status": result.status},
        "version": locked.version + 1,
        "transition_id": transition.pk,
        "alerts_resolved": resolved,
    }


def force_material_state(
    *,
    material,
    user,
    stage: str,
    status: str,
    reason: str,
) -> Dict[str, Any]:
    """
    Administrative override: set any legal (stage, status) pair.

    Separate from execute_transition so the normal path never skips the
    transition table. Always logged and recorded with forced=True.
    """
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError({"reason": "A reason is required to override material state."})

    role = resolve_role(user)

    try:
        result = force_set_state(stage, status, role)
    except TransitionError as exc:
        logger.warning(
            "Refused state override on material %s by %s (%s): %s",
            material.pk, getattr(user, "pk", None), role or "no role", exc.code,
        )
        raise _api_error(exc) from exc

    now = timezone.now()

    with transaction.atomic():
        locked = _lock(material)
        from_stage, from_status = locked.stage, locked.status

        _apply(locked, result.stage, result.status, now)

        transition = WorkflowTransition.objects.create(
            material=locked,
            from_stage=from_stage,
            from_status=from_status,
            to_stage=result.stage,
            to_status=result.status,
            decision=WorkflowTransition.Decision.FORCE,
            role=role,
            forced=True,
            comment=reason,
            performed_by=user,
        )

        if from_stage != result.stage:
            resolve_open_alerts(material=locked, stage=from_stage, now=now)

    logger.warning(
        "Material %s state overridden: %s/%s -> %s/%s by %s. Reason: %s",
        locked.pk, from_stage, from_status, result.stage, result.status,
        getattr(user, "pk", None), reason,
    )

    return {
        "id": str(locked.pk),
        "decision": WorkflowTransition.Decision.FORCE.value,
        "from": {"stage": from_stage, "status": from_status},
        "to": {"stage": result.stage, "status": result.status},
        "version": locked.version + 1,
        "transition_id": transition.pk,
    }


def available_actions(material, role: str) -> Dict[str, Any]:
    """
    What `role` can do on `material` right now, for UI rendering.
    """
    evidence = evidence_for(material)
    needed = required_evidence(material.stage)
    terminal = material.stage in TERMINAL_STAGES

    return {
        "id": str(material.pk),
        "stage": material.stage,
        "status": material.status,
        "version": material.version,
        "role": role,
        "terminal": terminal,
        "can_act": (not terminal) and role_can_act(material.stage, role),
        "allowed": allowed_decisions(material.stage, material.status, role, evidence),
        "required_evidence": needed,
        "missing_evidence": [needed] if needed and needed not in evidence else [],
        "evidence": sorted(evidence),
    }
