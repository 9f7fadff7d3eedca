from __future__ import annotations

from typing import Any, Dict

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import (
    AuditLog,
    Certificate,
    FinalApproval,
    Material,
    Payment,
    QCInspection,
    Quote,
    TestRecord,
    UserRole,
    WorkflowAlert,
    WorkflowTransition,
)
from .workflows import (
    DECISIONS,
    STAGE_ORDER,
    STATUSES,
    normalize_decision,
    normalize_stage,
    normalize_status,
)
from .workflows.rules import STAGE_LABELS


# ===============================================================
# Helpers
# ===============================================================

class UserSlimSerializer(serializers.ModelSerializer):
    class Meta:
        model = get_user_model()
        fields = ("id", "username", "email")
        read_only_fields = fields


class UserRoleSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True)

    class Meta:
        model = UserRole
        fields = ("id", "user", "username", "role", "created_at", "updated_at")
        read_only_fields = ("id", "created_at", "updated_at")


# ===============================================================
# Materials
# ===============================================================

class MaterialSerializer(serializers.ModelSerializer):
    """
    Stage, status and version are server-controlled: they change only
    through the workflow transition endpoints.
    """

    qr_payload = serializers.CharField(read_only=True)
    stage_label = serializers.SerializerMethodField()
    created_by = UserSlimSerializer(read_only=True)

    class Meta:
        model = Material
        fields = (
            "id",
            "qr_payload",
            "name",
            "description",
            "material_type",
            "customer_name",
            "customer_contact",
            "received_at",
            "stage",
            "stage_label",
            "status",
            "version",
            "created_by",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "stage",
            "status",
            "version",
            "created_at",
            "updated_at",
        )

    def get_stage_label(self, obj) -> str:
        return STAGE_LABELS.get(obj.stage, obj.stage)


class TransitionRequestSerializer(serializers.Serializer):
    decision = serializers.CharField()
    comment = serializers.CharField(required=False, allow_blank=True, default="")
    expected_version = serializers.IntegerField(required=False, min_value=1)

    def validate_decision(self, value: str) -> str:
        decision = normalize_decision(value)
        if decision not in DECISIONS:
            raise serializers.ValidationError(
                f"Unknown decision. Use one of: {', '.join(DECISIONS)}."
            )
        return decision


class ForceStateRequestSerializer(serializers.Serializer):
    stage = serializers.CharField()
    status = serializers.CharField()
    reason = serializers.CharField()

    def validate_stage(self, value: str) -> str:
        stage = normalize_stage(value)
        if stage not in STAGE_ORDER:
            raise serializers.ValidationError(f"Unknown stage: {value}")
        return stage

    def validate_status(self, value: str) -> str:
        status = normalize_status(value)
        if status not in STATUSES:
            raise serializers.ValidationError(f"Unknown status: {value}")
        return status


class WorkflowTransitionSerializer(serializers.ModelSerializer):
    performed_by = UserSlimSerializer(read_only=True)

    class Meta:
        model = WorkflowTransition
        fields = (
            "id",
            "from_stage",
            "from_status",
            "to_stage",
            "to_status",
            "decision",
            "role",
            "forced",
            "comment",
            "performed_by",
            "created_at",
        )
        read_only_fields = fields


class WorkflowAlertSerializer(serializers.ModelSerializer):
    class Meta:
        model = WorkflowAlert
        fields = (
            "id",
            "material",
            "stage",
            "evidence_kind",
            "message",
            "meta",
            "detected_at",
            "resolved_at",
        )
        read_only_fields = fields


# ===============================================================
# Evidence records (append-only)
# ===============================================================

class EvidenceSerializer(serializers.ModelSerializer):
    recorded_by = UserSlimSerializer(read_only=True)

    base_fields = ("id", "material", "recorded_by", "created_at")

    def validate_material(self, material: Material) -> Material:
        if material.stage == Material.Stage.COMPLETED:
            raise serializers.ValidationError(
                "Material is completed; no further records can be attached."
            )
        return material


class TestRecordSerializer(EvidenceSerializer):
    class Meta:
        model = TestRecord
        fields = EvidenceSerializer.base_fields + (
            "test_type",
            "result",
            "notes",
            "performed_at",
        )
        read_only_fields = ("id", "recorded_by", "created_at")


class QCInspectionSerializer(EvidenceSerializer):
    class Meta:
        model = QCInspection
        fields = EvidenceSerializer.base_fields + ("decision", "comments")
        read_only_fields = ("id", "recorded_by", "created_at")


class QuoteSerializer(EvidenceSerializer):
    class Meta:
        model = Quote
        fields = EvidenceSerializer.base_fields + (
            "amount",
            "description",
            "terms",
            "validity_period",
        )
        read_only_fields = ("id", "recorded_by", "created_at")

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be positive.")
        return value


class FinalApprovalSerializer(EvidenceSerializer):
    class Meta:
        model = FinalApproval
        fields = EvidenceSerializer.base_fields + ("decision", "comments")
        read_only_fields = ("id", "recorded_by", "created_at")


class PaymentSerializer(EvidenceSerializer):
    class Meta:
        model = Payment
        fields = EvidenceSerializer.base_fields + (
            "amount",
            "payment_method",
            "reference",
        )
        read_only_fields = ("id", "recorded_by", "created_at")

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be positive.")
        return value


class CertificateSerializer(EvidenceSerializer):
    class Meta:
        model = Certificate
        fields = EvidenceSerializer.base_fields + (
            "file",
            "file_name",
            "file_type",
            "file_size",
        )
        read_only_fields = (
            "id",
            "recorded_by",
            "created_at",
            "file_name",
            "file_type",
            "file_size",
        )

    def create(self, validated_data: Dict[str, Any]):
        upload = validated_data["file"]
        validated_data["file_name"] = getattr(upload, "name", "")[:255]
        validated_data["file_type"] = (getattr(upload, "content_type", "") or "")[:100]
        validated_data["file_size"] = getattr(upload, "size", 0) or 0
        return super().create(validated_data)


# ===============================================================
# Audit
# ===============================================================

class AuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLog
        fields = ("id", "user", "action", "details", "created_at")
        read_only_fields = fields
