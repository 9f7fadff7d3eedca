from django.conf import settings
from django.db import models

from materials_core.workflows.guards import AppendOnlyMixin


class WorkflowTransition(AppendOnlyMixin, models.Model):
    """
    Immutable log of accepted transitions and forced state changes.
    Rows are written once by the executor and never updated or deleted.
    """

    class Decision(models.TextChoices):
        ACCEPT = "accept", "Accept"
        REJECT = "reject", "Reject"
        FORCE = "force", "Forced"

    material = models.ForeignKey(
        "materials_core.Material",
        on_delete=models.PROTECT,
        related_name="transitions",
    )
    from_stage = models.CharField(max_length=32)
    from_status = models.CharField(max_length=32)
    to_stage = models.CharField(max_length=32)
    to_status = models.CharField(max_length=32)
    decision = models.CharField(max_length=16, choices=Decision.choices)
    role = models.CharField(max_length=32)
    forced = models.BooleanField(default=False)
    comment = models.TextField(blank=True)

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="material_transitions",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["material", "to_stage"], name="transition_material_stage_idx"),
        ]

    def __str__(self):
        return (
            f"{self.material_id} "
            f"{self.from_stage}/{self.from_status} -> {self.to_stage}/{self.to_status}"
        )


class WorkflowAlert(models.Model):
    """
    Derived, operator-facing record created by the stale-stage scanner.

    Raised when evidence for leaving a stage was recorded but the material
    never moved (the follow-up stage update failed or was never sent).
    """

    material = models.ForeignKey(
        "materials_core.Material",
        on_delete=models.CASCADE,
        related_name="alerts",
    )
    stage = models.CharField(max_length=32)
    evidence_kind = models.CharField(max_length=32)
    message = models.TextField(blank=True)
    meta = models.JSONField(default=dict, blank=True)

    detected_at = models.DateTimeField(auto_now_add=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ("-detected_at",)
        indexes = [
            models.Index(fields=["material", "stage"], name="alert_material_stage_idx"),
        ]

    def __str__(self):
        return f"{self.material_id} {self.stage} STALE"
