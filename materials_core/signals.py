# materials_core/signals.py
from __future__ import annotations

import logging
from threading import local

from django.conf import settings
from django.core.mail import send_mail
from django.db.models.signals import post_save
from django.dispatch import receiver

from materials_core.models import (
    AuditLog,
    EVIDENCE_MODELS,
    Material,
    UserRole,
    WorkflowTransition,
)

logger = logging.getLogger(__name__)

# ===============================================================
# Thread-local user storage (safe + explicit)
# ===============================================================
_state = local()


def set_current_user(user):
    _state.user = user


def get_current_user():
    return getattr(_state, "user", None)


# ===============================================================
# Utilities
# ===============================================================
def _log(action: str, instance, details: dict | None = None):
    user = get_current_user()

    AuditLog.objects.create(
        user=user if user and user.is_authenticated else None,
        action=action,
        details=details or {
            "model": instance.__class__.__name__,
            "object_id": str(instance.pk),
        },
    )


def _safe_username(user) -> str:
    if not user:
        return "system"
    return user.get_username()


# ===============================================================
# CREATE / UPDATE audit (materials and roles)
# ===============================================================
@receiver(post_save, sender=Material)
@receiver(post_save, sender=UserRole)
def audit_create_update(sender, instance, created, **kwargs):
    _log("CREATE" if created else "UPDATE", instance)


# ===============================================================
# EVIDENCE (append-only, so only creation is ever seen)
# ===============================================================
def audit_evidence(sender, instance, created, **kwargs):
    if not created:
        return

    AuditLog.objects.create(
        user=instance.recorded_by,
        action=f"EVIDENCE {sender.EVIDENCE_KIND.upper()} {instance.material_id}",
        details={
            "kind": sender.EVIDENCE_KIND,
            "material": str(instance.material_id),
            "record_id": instance.pk,
        },
    )


for _model in EVIDENCE_MODELS.values():
    post_save.connect(
        audit_evidence,
        sender=_model,
        dispatch_uid=f"audit_evidence_{_model.EVIDENCE_KIND}",
    )


# ===============================================================
# WORKFLOW TRANSITIONS
# ===============================================================
@receiver(post_save, sender=WorkflowTransition)
def audit_workflow_transition(sender, instance: WorkflowTransition, created: bool, **kwargs):
    """
    Handles side effects of workflow transitions:
    - audit log entry
    - optional email notification
    """
    if not created:
        return

    prefix = "WORKFLOW OVERRIDE" if instance.forced else "WORKFLOW"
    AuditLog.objects.create(
        user=instance.performed_by,
        action=(
            f"{prefix} {instance.material_id}: "
            f"{instance.from_stage}/{instance.from_status} -> "
            f"{instance.to_stage}/{instance.to_status}"
        ),
        details={
            "material": str(instance.material_id),
            "decision": instance.decision,
            "role": instance.role,
            "forced": instance.forced,
            "from": {"stage": instance.from_stage, "status": instance.from_status},
            "to": {"stage": instance.to_stage, "status": instance.to_status},
            "comment": instance.comment,
        },
    )

    # -----------------------------------------------------------
    # Optional email notification (feature-flagged)
    # -----------------------------------------------------------
    if not getattr(settings, "WORKFLOW_EMAIL_NOTIFICATIONS", False):
        return

    recipients = getattr(settings, "WORKFLOW_NOTIFY_EMAILS", None)
    if not recipients:
        return

    subject = (
        f"[Materials] {instance.material_id} "
        f"{instance.from_stage} -> {instance.to_stage} ({instance.to_status})"
    )

    body = "\n".join(
        [
            "Workflow transition recorded.",
            "",
            f"Material: {instance.material_id}",
            f"From: {instance.from_stage} / {instance.from_status}",
            f"To: {instance.to_stage} / {instance.to_status}",
            f"Decision: {instance.decision}",
            f"By: {_safe_username(instance.performed_by)} ({instance.role})",
            f"At: {instance.created_at}",
        ]
    )

    sent = send_mail(
        subject=subject,
        message=body,
        from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
        recipient_list=list(recipients),
        fail_silently=True,
    )
    if not sent:
        logger.warning("Transition notification for %s was not delivered", instance.material_id)
