# materials_core/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    AuditLogViewSet,
    CertificateViewSet,
    FinalApprovalViewSet,
    HealthCheckView,
    MaterialViewSet,
    PaymentViewSet,
    QCInspectionViewSet,
    QuoteViewSet,
    TestRecordViewSet,
    UserRoleViewSet,
    WorkflowAlertViewSet,
)
from .views_identity import WhoAmIView
from .views_workflow_api import (
    MaterialActionsView,
    MaterialForceStateView,
    MaterialTransitionView,
)
from .views_workflows import WorkflowDefinitionView


app_name = "materials_core"

# -------------------------------------------------
# Router (materials, evidence, administration)
# -------------------------------------------------
router = DefaultRouter()
router.register(r"materials", MaterialViewSet, basename="material")
router.register(r"tests", TestRecordViewSet, basename="test-record")
router.register(r"qc-inspections", QCInspectionViewSet, basename="qc-inspection")
router.register(r"quotes", QuoteViewSet, basename="quote")
router.register(r"approvals", FinalApprovalViewSet, basename="final-approval")
router.register(r"payments", PaymentViewSet, basename="payment")
router.register(r"certificates", CertificateViewSet, basename="certificate")
router.register(r"roles", UserRoleViewSet, basename="role")
router.register(r"audit-logs", AuditLogViewSet, basename="auditlog")
router.register(r"alerts", WorkflowAlertViewSet, basename="alert")


urlpatterns = [
    # ============================================================
    # System / identity
    # ============================================================
    path("health/", HealthCheckView.as_view(), name="health_check"),
    path("whoami/", WhoAmIView.as_view(), name="whoami"),

    # ============================================================
    # Workflow definition (static metadata)
    # ============================================================
    path("workflow/definition/", WorkflowDefinitionView.as_view(), name="workflow-definition"),

    # ============================================================
    # Workflow runtime (single material)
    # ============================================================
    path("materials/<uuid:pk>/actions/", MaterialActionsView.as_view(), name="material-actions"),
    path("materials/<uuid:pk>/transition/", MaterialTransitionView.as_view(), name="material-transition"),
    path("materials/<uuid:pk>/force-state/", MaterialForceStateView.as_view(), name="material-force-state"),

    # ============================================================
    # CRUD API
    # ============================================================
    path("", include(router.urls)),
]
