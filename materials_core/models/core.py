# materials_core/models/core.py

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

from materials_core.workflows import rules
from materials_core.workflows.guards import WorkflowWriteGuardMixin


# ============================================================
# Base
# ============================================================
class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# ============================================================
# User Roles
# ============================================================
class UserRole(TimeStampedModel):
    """One workflow role per user. Superusers act as uncle."""

    class Role(models.TextChoices):
        SECRETARY = rules.SECRETARY, "Secretary"
        TESTER = rules.TESTER, "Tester"
        MANAGER = rules.MANAGER, "Manager"
        QC = rules.QC_ROLE, "Quality Control"
        ACCOUNTING = rules.ACCOUNTING_ROLE, "Accounting"
        UNCLE = rules.UNCLE, "Uncle (all stages)"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="material_role",
    )
    role = models.CharField(max_length=32, choices=Role.choices)

    class Meta:
        ordering = ["user__username"]

    def __str__(self):
        return f"{self.user.get_username()} - {self.role}"


# ============================================================
# Material
# ============================================================
class Material(WorkflowWriteGuardMixin, TimeStampedModel):
    """A physical test sample tracked through the lifecycle."""

    class Stage(models.TextChoices):
        RECEIVED = rules.RECEIVED, "Received"
        TESTING = rules.TESTING, "Testing"
        REVIEW = rules.REVIEW, "Manager Review"
        QC = rules.QC, "Quality Control"
        ACCOUNTING = rules.ACCOUNTING, "Accounting"
        FINAL_APPROVAL = rules.FINAL_APPROVAL, "Final Approval"
        COMPLETED = rules.COMPLETED, "Completed"

    class Status(models.TextChoices):
        PENDING = rules.PENDING, "Pending"
        IN_PROGRESS = rules.IN_PROGRESS, "In progress"
        REJECTED = rules.REJECTED, "Rejected"
        COMPLETED = rules.STATUS_COMPLETED, "Completed"

    WORKFLOW_FIELDS = ("stage", "status", "version")

    # The id doubles as the QR-code payload printed on the physical item.
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    material_type = models.CharField(max_length=100, db_index=True)
    customer_name = models.CharField(max_length=255)
    customer_contact = models.CharField(max_length=255, blank=True)
    received_at = models.DateTimeField(default=timezone.now, db_index=True)

    stage = models.CharField(
        max_length=32,
        choices=Stage.choices,
        default=Stage.RECEIVED,
        editable=False,
        db_index=True,
    )
    status = models.CharField(
        max_length=32,
        choices=Status.choices,
        default=Status.PENDING,
        editable=False,
        db_index=True,
    )
    version = models.PositiveIntegerField(default=1, editable=False)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="materials_registered",
    )

    class Meta:
        ordering = ["-received_at"]
        constraints = [
            models.CheckConstraint(
                name="material_completed_status_matches_stage",
                condition=(
                    models.Q(stage=rules.COMPLETED, status=rules.STATUS_COMPLETED)
                    | (
                        ~models.Q(stage=rules.COMPLETED)
                        & ~models.Q(status=rules.STATUS_COMPLETED)
                    )
                ),
            ),
        ]
        indexes = [
            models.Index(fields=["stage", "status"], name="material_stage_status_idx"),
        ]

    @property
    def qr_payload(self) -> str:
        return str(self.id)

    def __str__(self):
        label = self.name or self.material_type
        return f"{label} ({self.customer_name})"


# ============================================================
# Audit Log
# ============================================================
class AuditLog(TimeStampedModel):
    """Track actions for compliance and traceability."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    action = models.CharField(max_length=255, db_index=True)
    details = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.action
