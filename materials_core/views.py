# materials_core/views.py
from __future__ import annotations

import re
from typing import Optional

from django.db.models import Count
from django.shortcuts import get_object_or_404

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .filters import MaterialFilter, WorkflowAlertFilter
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
)
from .permissions import (
    CanViewQuotes,
    HasWorkflowRole,
    IsRegistrarOrReadOnly,
    IsUncle,
    resolve_role,
)
from .serializers import (
    AuditLogSerializer,
    CertificateSerializer,
    FinalApprovalSerializer,
    MaterialSerializer,
    PaymentSerializer,
    QCInspectionSerializer,
    QuoteSerializer,
    TestRecordSerializer,
    UserRoleSerializer,
    WorkflowAlertSerializer,
    WorkflowTransitionSerializer,
)
from .signals import set_current_user
from .workflows import STAGE_ORDER, can_record_evidence, visible_stages
from .workflows.evidence import evidence_counts, evidence_for
from .workflows.rules import STAGE_ACTORS


# ===============================================================
# Utilities
# ===============================================================
_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)


def extract_material_code(raw: Optional[str]) -> Optional[str]:
    """
    Pull the material id out of whatever a QR scanner decoded:
    a bare UUID, a detail-page URL, or free text containing one.
    """
    match = _UUID_RE.search(raw or "")
    return match.group(0).lower() if match else None


def _truthy(value) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def _acting_stages(role: str) -> list[str]:
    return [s for s in STAGE_ORDER if role in STAGE_ACTORS.get(s, ())]


# ===============================================================
# Health
# ===============================================================
class HealthCheckView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(tags=["System"])
    def get(self, request):
        return Response({"status": "ok", "service": "materials-tracker"})


# ===============================================================
# Materials
# ===============================================================
class MaterialViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Materials are registered here and read here. They are never updated
    or deleted through this endpoint; stage and status only change via the
    workflow transition API.

    Listing is restricted to the stages the caller's role may see.
    `?actionable=true` lists the stages the caller may act on instead.
    """

    queryset = Material.objects.select_related("created_by").all()
    serializer_class = MaterialSerializer
    permission_classes = [IsAuthenticated, IsRegistrarOrReadOnly]
    filterset_class = MaterialFilter

    def _listing_stages(self):
        role = resolve_role(self.request.user)
        if _truthy(self.request.query_params.get("actionable")):
            return _acting_stages(role)
        return visible_stages(role)

    def get_queryset(self):
        qs = super().get_queryset().order_by("-received_at", "-created_at")
        if self.action in {"list", "summary"}:
            qs = qs.filter(stage__in=list(self._listing_stages()))
        return qs

    def perform_create(self, serializer):
        set_current_user(self.request.user)
        serializer.save(created_by=self.request.user)

    @action(detail=False, methods=["get"])
    def summary(self, request):
        """
        Counts per stage and status for the caller's visible stages.
        """
        qs = self.filter_queryset(self.get_queryset())
        rows = qs.values("stage", "status").annotate(n=Count("id"))

        listing = self._listing_stages()
        stages = {s: {"total": 0} for s in STAGE_ORDER if s in listing}
        for row in rows:
            bucket = stages.setdefault(row["stage"], {"total": 0})
            bucket[row["status"]] = row["n"]
            bucket["total"] += row["n"]

        return Response(
            {
                "role": resolve_role(request.user),
                "total": sum(b["total"] for b in stages.values()),
                "stages": stages,
            }
        )

    @action(detail=False, methods=["get"])
    def scan(self, request):
        """
        Resolve a scanned QR code to its material.
        """
        raw = request.query_params.get("code")
        if not raw:
            raise ValidationError({"code": "This query parameter is required."})

        code = extract_material_code(raw)
        if not code:
            raise ValidationError({"code": "No material identifier found in scanned code."})

        material = get_object_or_404(self.get_queryset(), pk=code)
        return Response(self.get_serializer(material).data)

    @action(detail=True, methods=["get"])
    def timeline(self, request, pk=None):
        material = self.get_object()
        transitions = material.transitions.select_related("performed_by").order_by("created_at", "id")
        return Response(
            {
                "id": str(material.pk),
                "stage": material.stage,
                "status": material.status,
                "version": material.version,
                "timeline": WorkflowTransitionSerializer(transitions, many=True).data,
            }
        )

    @action(detail=True, methods=["get"])
    def evidence(self, request, pk=None):
        material = self.get_object()
        return Response(
            {
                "id": str(material.pk),
                "counts": evidence_counts(material),
                "satisfied": sorted(evidence_for(material)),
            }
        )


# ===============================================================
# Evidence records (append-only: list / retrieve / create)
# ===============================================================
class EvidenceViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated, HasWorkflowRole]
    filterset_fields = ["material"]
    evidence_kind = ""

    def get_queryset(self):
        return (
            self.queryset.select_related("material", "recorded_by")
            .order_by("-created_at", "-id")
        )

    def perform_create(self, serializer):
        role = resolve_role(self.request.user)
        if not can_record_evidence(self.evidence_kind, role):
            raise PermissionDenied(
                f"Role '{role or 'none'}' cannot record {self.evidence_kind.replace('_', ' ')} evidence."
            )
        set_current_user(self.request.user)
        serializer.save(recorded_by=self.request.user)


class TestRecordViewSet(EvidenceViewSet):
    queryset = TestRecord.objects.all()
    serializer_class = TestRecordSerializer
    evidence_kind = TestRecord.EVIDENCE_KIND


class QCInspectionViewSet(EvidenceViewSet):
    queryset = QCInspection.objects.all()
    serializer_class = QCInspectionSerializer
    evidence_kind = QCInspection.EVIDENCE_KIND


class QuoteViewSet(EvidenceViewSet):
    queryset = Quote.objects.all()
    serializer_class = QuoteSerializer
    evidence_kind = Quote.EVIDENCE_KIND
    permission_classes = [IsAuthenticated, CanViewQuotes]


class FinalApprovalViewSet(EvidenceViewSet):
    queryset = FinalApproval.objects.all()
    serializer_class = FinalApprovalSerializer
    evidence_kind = FinalApproval.EVIDENCE_KIND


class PaymentViewSet(EvidenceViewSet):
    queryset = Payment.objects.all()
    serializer_class = PaymentSerializer
    evidence_kind = Payment.EVIDENCE_KIND


class CertificateViewSet(EvidenceViewSet):
    queryset = Certificate.objects.all()
    serializer_class = CertificateSerializer
    evidence_kind = Certificate.EVIDENCE_KIND
    parser_classes = [MultiPartParser, FormParser, JSONParser]


# ===============================================================
# Administration (uncle only)
# ===============================================================
class UserRoleViewSet(viewsets.ModelViewSet):
    queryset = UserRole.objects.select_related("user").all()
    serializer_class = UserRoleSerializer
    permission_classes = [IsAuthenticated, IsUncle]

    def perform_create(self, serializer):
        set_current_user(self.request.user)
        serializer.save()

    def perform_update(self, serializer):
        set_current_user(self.request.user)
        serializer.save()


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = AuditLog.objects.select_related("user").all().order_by("-created_at", "-id")
    serializer_class = AuditLogSerializer
    permission_classes = [IsAuthenticated, IsUncle]


class WorkflowAlertViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = WorkflowAlert.objects.select_related("material").all()
    serializer_class = WorkflowAlertSerializer
    permission_classes = [IsAuthenticated, IsUncle]
    filterset_class = WorkflowAlertFilter


__all__ = [
    "extract_material_code",
    "HealthCheckView",
    "MaterialViewSet",
    "TestRecordViewSet",
    "QCInspectionViewSet",
    "QuoteViewSet",
    "FinalApprovalViewSet",
    "PaymentViewSet",
    "CertificateViewSet",
    "UserRoleViewSet",
    "AuditLogViewSet",
    "WorkflowAlertViewSet",
]
