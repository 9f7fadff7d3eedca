# materials_core/migrations/0001_initial.py

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import materials_core.models.evidence


STAGE_CHOICES = [
    ("received", "Received"),
    ("testing", "Testing"),
    ("review", "Manager Review"),
    ("qc", "Quality Control"),
    ("accounting", "Accounting"),
    ("final_approval", "Final Approval"),
    ("completed", "Completed"),
]

STATUS_CHOICES = [
    ("pending", "Pending"),
    ("in_progress", "In progress"),
    ("rejected", "Rejected"),
    ("completed", "Completed"),
]

DECISION_CHOICES = [("approve", "Approve"), ("reject", "Reject")]


def _evidence_fields(related_name):
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
        (
            "material",
            models.ForeignKey(
                on_delete=django.db.models.deletion.PROTECT,
                related_name=related_name,
                to="materials_core.material",
            ),
        ),
        (
            "recorded_by",
            models.ForeignKey(
                on_delete=django.db.models.deletion.PROTECT,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
    ]


EVIDENCE_OPTIONS = {
    "ordering": ["-created_at", "-id"],
    "abstract": False,
}


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        # ------------------------------------------------------------
        # Core
        # ------------------------------------------------------------
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("action", models.CharField(db_index=True, max_length=255)),
                ("details", models.JSONField(blank=True, default=dict)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="UserRole",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("secretary", "Secretary"),
                            ("tester", "Tester"),
                            ("manager", "Manager"),
                            ("qc", "Quality Control"),
                            ("accounting", "Accounting"),
                            ("uncle", "Uncle (all stages)"),
                        ],
                        max_length=32,
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="material_role",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["user__username"]},
        ),
        migrations.CreateModel(
            name="Material",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(blank=True, max_length=255)),
                ("description", models.TextField(blank=True)),
                ("material_type", models.CharField(db_index=True, max_length=100)),
                ("customer_name", models.CharField(max_length=255)),
                ("customer_contact", models.CharField(blank=True, max_length=255)),
                ("received_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "stage",
                    models.CharField(
                        choices=STAGE_CHOICES,
                        db_index=True,
                        default="received",
                        editable=False,
                        max_length=32,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES,
                        db_index=True,
                        default="pending",
                        editable=False,
                        max_length=32,
                    ),
                ),
                ("version", models.PositiveIntegerField(default=1, editable=False)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="materials_registered",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-received_at"],
                "indexes": [
                    models.Index(fields=["stage", "status"], name="material_stage_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(("stage", "completed"), ("status", "completed"))
                            | (~models.Q(("stage", "completed")) & ~models.Q(("status", "completed")))
                        ),
                        name="material_completed_status_matches_stage",
                    ),
                ],
            },
        ),
        # ------------------------------------------------------------
        # Workflow log + alerts
        # ------------------------------------------------------------
        migrations.CreateModel(
            name="WorkflowTransition",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("from_stage", models.CharField(max_length=32)),
                ("from_status", models.CharField(max_length=32)),
                ("to_stage", models.CharField(max_length=32)),
                ("to_status", models.CharField(max_length=32)),
                (
                    "decision",
                    models.CharField(
                        choices=[("accept", "Accept"), ("reject", "Reject"), ("force", "Forced")],
                        max_length=16,
                    ),
                ),
                ("role", models.CharField(max_length=32)),
                ("forced", models.BooleanField(default=False)),
                ("comment", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "material",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transitions",
                        to="materials_core.material",
                    ),
                ),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="material_transitions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["material", "to_stage"], name="transition_material_stage_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="WorkflowAlert",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("stage", models.CharField(max_length=32)),
                ("evidence_kind", models.CharField(max_length=32)),
                ("message", models.TextField(blank=True)),
                ("meta", models.JSONField(blank=True, default=dict)),
                ("detected_at", models.DateTimeField(auto_now_add=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "material",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="alerts",
                        to="materials_core.material",
                    ),
                ),
            ],
            options={
                "ordering": ("-detected_at",),
                "indexes": [
                    models.Index(fields=["material", "stage"], name="alert_material_stage_idx"),
                ],
            },
        ),
        # ------------------------------------------------------------
        # Evidence records (append-only)
        # ------------------------------------------------------------
        migrations.CreateModel(
            name="TestRecord",
            fields=_evidence_fields("testrecord_records") + [
                ("test_type", models.CharField(max_length=255)),
                ("result", models.TextField()),
                ("notes", models.TextField(blank=True)),
                ("performed_at", models.DateTimeField(blank=True, null=True)),
            ],
            options=EVIDENCE_OPTIONS,
        ),
        migrations.CreateModel(
            name="QCInspection",
            fields=_evidence_fields("qcinspection_records") + [
                ("decision", models.CharField(choices=DECISION_CHOICES, max_length=16)),
                ("comments", models.TextField(blank=True)),
            ],
            options=EVIDENCE_OPTIONS,
        ),
        migrations.CreateModel(
            name="Quote",
            fields=_evidence_fields("quote_records") + [
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("description", models.TextField(blank=True, default="Quote for material testing services")),
                ("terms", models.CharField(blank=True, default="Net 30 days", max_length=255)),
                ("validity_period", models.CharField(blank=True, default="30 days", max_length=100)),
            ],
            options=EVIDENCE_OPTIONS,
        ),
        migrations.CreateModel(
            name="FinalApproval",
            fields=_evidence_fields("finalapproval_records") + [
                ("decision", models.CharField(choices=DECISION_CHOICES, max_length=16)),
                ("comments", models.TextField(blank=True)),
            ],
            options=EVIDENCE_OPTIONS,
        ),
        migrations.CreateModel(
            name="Payment",
            fields=_evidence_fields("payment_records") + [
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("bank_transfer", "Bank transfer"),
                            ("card", "Card"),
                            ("cheque", "Cheque"),
                            ("mobile_money", "Mobile money"),
                        ],
                        max_length=32,
                    ),
                ),
                ("reference", models.CharField(blank=True, max_length=255)),
            ],
            options=EVIDENCE_OPTIONS,
        ),
        migrations.CreateModel(
            name="Certificate",
            fields=_evidence_fields("certificate_records") + [
                ("file", models.FileField(upload_to=materials_core.models.evidence.certificate_upload_to)),
                ("file_name", models.CharField(blank=True, max_length=255)),
                ("file_type", models.CharField(blank=True, max_length=100)),
                ("file_size", models.PositiveIntegerField(default=0)),
            ],
            options=EVIDENCE_OPTIONS,
        ),
    ]
